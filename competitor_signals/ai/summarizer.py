"""Competitive-intelligence report summarizer (structured JSON, preview, and newsletter)."""
import json
import logging
from typing import Any, Optional

from competitor_signals.ai.llm import LLMClient, parse_json_object
from competitor_signals.exceptions import LLMError, SummarizationError
from competitor_signals.schemas.signals import CompetitorSignalBundle, EnhancedData

logger = logging.getLogger(__name__)

# Cap on serialized signal context sent to the model.
MAX_CONTEXT_CHARS = 25000

REPORT_SYSTEM = """You are an expert competitive intelligence analyst. Given competitor signals, produce a report.
Output only valid JSON in this shape:
{"executive_summary": "2-3 sentences",
 "competitors": [{"competitor": "Name", "activity_level": "high|moderate|low",
   "recent_developments": [...], "funding_business": [...],
   "review_sentiment": {"rating": number or null, "overall_perception": "positive|neutral|negative"},
   "key_insights": [...]}],
 "strategic_insights": [...],
 "methodology": {"sources_analyzed": [...], "total_signals": number, "confidence_level": "high|medium|low"}}
Prioritize recent business developments (funding, partnerships, launches, positioning). Be specific and actionable."""

PREVIEW_SYSTEM = """You are a competitive intelligence analyst. From the signals, write a quick preview.
Output only valid JSON: {"headline": "one sentence", "highlights": ["up to 3 short bullets"]}"""

NEWSLETTER_SYSTEM = """You are writing a competitive-intelligence newsletter for a product team.
Write Markdown with: a title line, a short overview, one "## <Competitor>" section per competitor
with 2-4 bullets on the most important recent developments (cite links inline when available),
and a closing "## What to watch" section. Do not invent facts not present in the signals."""


def _signals_context(
    signals: list[CompetitorSignalBundle],
    competitor_names: list[str],
    enhanced: Optional[list[EnhancedData]] = None,
) -> str:
    context: dict[str, Any] = {
        "competitor_names": competitor_names,
        "total_signals": sum(len(b.items) for b in signals),
        "signals": [b.model_dump(exclude_none=True) for b in signals],
    }
    if enhanced:
        context["review_and_forum_sentiment"] = [e.model_dump(exclude_none=True) for e in enhanced]
    return json.dumps(context, default=str)[:MAX_CONTEXT_CHARS]


class ReportSummarizer:
    """Turns signal bundles into a report. High effort uses the summary model, low effort the fast one."""

    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm or LLMClient()

    async def summarize(
        self,
        signals: list[CompetitorSignalBundle],
        competitor_names: list[str],
        high_effort: bool = True,
        enhanced: Optional[list[EnhancedData]] = None,
    ) -> str:
        """Return the structured report serialized as JSON. Raises SummarizationError."""
        user = "Context:\n" + _signals_context(signals, competitor_names, enhanced) + "\n\nJSON:"
        try:
            raw = await self.llm.complete(
                REPORT_SYSTEM,
                user,
                tier="summary" if high_effort else "fast",
                max_tokens=3000 if high_effort else 1500,
                json_mode=True,
            )
            report = parse_json_object(raw)
        except LLMError as e:
            raise SummarizationError(f"Failed to generate competitive intelligence summary: {e}") from e
        report.setdefault("methodology", {})
        report["methodology"].setdefault("total_signals", sum(len(b.items) for b in signals))
        return json.dumps(report, indent=2)

    async def preview(self, signals: list[CompetitorSignalBundle], competitor_names: list[str]) -> dict[str, Any]:
        user = "Context:\n" + _signals_context(signals, competitor_names)[:8000] + "\n\nJSON:"
        try:
            raw = await self.llm.complete(PREVIEW_SYSTEM, user, tier="fast", max_tokens=300, json_mode=True)
            return parse_json_object(raw)
        except LLMError as e:
            raise SummarizationError(f"Preview failed: {e}") from e

    async def newsletter(self, signals: list[CompetitorSignalBundle], competitor_names: list[str]) -> str:
        user = "Signals:\n" + _signals_context(signals, competitor_names)
        try:
            text = await self.llm.complete(NEWSLETTER_SYSTEM, user, tier="summary", max_tokens=2500)
        except LLMError as e:
            raise SummarizationError(f"Newsletter generation failed: {e}") from e
        return text.strip()
