"""Async OpenAI / Anthropic chat client used by the summarizers."""
import json
import logging
from typing import Any, Literal, Optional

import anthropic
from openai import AsyncOpenAI, OpenAIError

from competitor_signals.config import settings
from competitor_signals.exceptions import LLMError

logger = logging.getLogger(__name__)

Tier = Literal["summary", "fast"]


def strip_code_fence(raw: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one."""
    if "```" in raw:
        raw = raw.split("```")[1]
        if raw.strip().startswith("json"):
            raw = raw.strip()[4:]
    return raw.strip()


def parse_json_object(raw: str) -> dict[str, Any]:
    try:
        data = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as e:
        raise LLMError(f"Model returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("Model returned JSON that is not an object")
    return data


class LLMClient:
    """Call Anthropic when selected and configured, otherwise OpenAI."""

    def __init__(
        self,
        provider: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
    ):
        self.provider = (provider or settings.AI_PROVIDER or "openai").lower()
        self.openai_api_key = openai_api_key if openai_api_key is not None else settings.OPENAI_API_KEY
        self.anthropic_api_key = anthropic_api_key if anthropic_api_key is not None else settings.ANTHROPIC_API_KEY
        self._openai: Optional[AsyncOpenAI] = None
        self._anthropic: Optional[anthropic.AsyncAnthropic] = None

    @property
    def available(self) -> bool:
        return bool(self.openai_api_key or self.anthropic_api_key)

    def _model(self, vendor: str, tier: Tier) -> str:
        if vendor == "anthropic":
            return settings.ANTHROPIC_SUMMARY_MODEL if tier == "summary" else settings.ANTHROPIC_FAST_MODEL
        return settings.OPENAI_SUMMARY_MODEL if tier == "summary" else settings.OPENAI_FAST_MODEL

    async def complete(
        self,
        system: str,
        user: str,
        tier: Tier = "summary",
        max_tokens: int = 2000,
        json_mode: bool = False,
        temperature: float = 0.3,
    ) -> str:
        """Return the assistant text. Raises LLMError when no provider answers."""
        if self.provider == "anthropic" and self.anthropic_api_key:
            try:
                if self._anthropic is None:
                    self._anthropic = anthropic.AsyncAnthropic(api_key=self.anthropic_api_key)
                m = await self._anthropic.messages.create(
                    model=self._model("anthropic", tier),
                    max_tokens=max_tokens,
                    system=system,
                    temperature=temperature,
                    messages=[{"role": "user", "content": user}],
                )
                return m.content[0].text if m.content else ""
            except anthropic.AnthropicError as e:
                logger.warning("Anthropic call failed: %s", e)
                if not self.openai_api_key:
                    raise LLMError(f"Anthropic call failed: {e}") from e
        if self.openai_api_key:
            if self._openai is None:
                self._openai = AsyncOpenAI(api_key=self.openai_api_key)
            kwargs: dict[str, Any] = {}
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            try:
                r = await self._openai.chat.completions.create(
                    model=self._model("openai", tier),
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    **kwargs,
                )
            except OpenAIError as e:
                logger.warning("OpenAI call failed: %s", e)
                raise LLMError(f"OpenAI call failed: {e}") from e
            content = (r.choices[0].message.content or "") if r.choices else ""
            if not content:
                raise LLMError("OpenAI returned an empty response")
            return content
        raise LLMError("No AI provider configured (set OPENAI_API_KEY or ANTHROPIC_API_KEY)")
