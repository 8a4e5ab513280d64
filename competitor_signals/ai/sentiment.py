"""Short LLM summaries of review and forum quotes."""
import logging
from typing import Optional

from competitor_signals.ai.llm import LLMClient
from competitor_signals.exceptions import LLMError

logger = logging.getLogger(__name__)

PLATFORM_LABELS = {"trustpilot": "Trustpilot", "hackernews": "Hacker News"}


def unavailable_summary(platform: str) -> str:
    return f"{PLATFORM_LABELS.get(platform, platform)} sentiment data collected but analysis unavailable."


class QuoteSentimentSummarizer:
    """Never raises: falls back to a fixed sentence when no model is available or the call fails."""

    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm

    async def summarize(self, competitor: str, platform: str, quotes: list[str]) -> str:
        label = PLATFORM_LABELS.get(platform, platform)
        if not quotes:
            return f"No {label} data available for sentiment analysis."
        if self.llm is None or not self.llm.available:
            return unavailable_summary(platform)
        numbered = "\n".join(f'{i + 1}. "{q}"' for i, q in enumerate(quotes[:5]))
        user = (
            f"Analyze the {label} sentiment for {competitor} based on these quotes:\n\n{numbered}\n\n"
            "Provide a concise 2-3 sentence summary of the overall sentiment, highlighting main "
            "strengths, common concerns, and overall market perception. Keep it factual and business-focused."
        )
        try:
            text = await self.llm.complete(
                "You summarize customer and developer sentiment for competitive intelligence.",
                user,
                tier="fast",
                max_tokens=150,
            )
        except LLMError as e:
            logger.warning("%s sentiment summary failed for %s: %s", label, competitor, e)
            return unavailable_summary(platform)
        return text.strip() or f"{label} sentiment analysis completed for {competitor}."
