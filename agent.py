import logging
import os
import re
from typing import Optional

from errors import AnalysisError
from models import SentimentResult

logger = logging.getLogger(__name__)

SCORE_MIN = -10
SCORE_MAX = 10
MAX_TOKENS = 50
TEMPERATURE = 0.1

_SCORE_PATTERN = re.compile(r"-?[0-9]+")


def parse_score(raw_response: str) -> SentimentResult:
    """Pull the first integer out of model output and clamp it to [-10, 10].

    Output without any integer scores 0; the raw response then explains why.
    """
    raw_response = (raw_response or "").strip()
    match = _SCORE_PATTERN.search(raw_response)
    if not match:
        return SentimentResult(
            score=0,
            raw_response=f'Could not parse score. AI said: "{raw_response}"',
        )

    score = int(match.group(0))
    return SentimentResult(
        score=max(SCORE_MIN, min(SCORE_MAX, score)),
        raw_response=raw_response,
    )


class SentimentAgent:
    """Asks a language model for a single sentiment score."""

    def __init__(self, provider: Optional[str] = None):
        self.provider = (provider or os.getenv("AI_PROVIDER", "openai")).lower()

        if self.provider == "openai":
            self._init_openai()
        elif self.provider == "anthropic":
            self._init_anthropic()
        else:
            raise ValueError(
                f"Unknown AI_PROVIDER '{self.provider}'. "
                "Set AI_PROVIDER to 'openai' or 'anthropic'."
            )

    # ── Provider Init ─────────────────────────────────────────────────────

    def _init_openai(self):
        from openai import AsyncOpenAI

        # Gaia nodes expose an OpenAI-compatible API; GAIA_ENDPOINT points at one.
        api_key = os.getenv("GAIA_API_KEY") or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise EnvironmentError("GAIA_API_KEY is not set.")
        self.client = AsyncOpenAI(api_key=api_key, base_url=os.getenv("GAIA_ENDPOINT") or None)
        self.model = os.getenv("GAIA_MODEL", "gpt-3.5-turbo")
        logger.info("AI Provider: OpenAI-compatible | Model: %s", self.model)

    def _init_anthropic(self):
        import anthropic

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError("ANTHROPIC_API_KEY is not set.")
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = os.getenv("CLAUDE_MODEL", "claude-sonnet-4-6")
        logger.info("AI Provider: Anthropic | Model: %s", self.model)

    # ── Analyze ───────────────────────────────────────────────────────────

    async def analyze(self, system_prompt: str, user_prompt: str) -> SentimentResult:
        logger.info("Asking %s for a sentiment score", self.provider)
        try:
            if self.provider == "anthropic":
                raw = await self._call_anthropic(system_prompt, user_prompt)
            else:
                raw = await self._call_openai(system_prompt, user_prompt)
        except Exception as e:
            logger.error("AI analysis error: %s", e)
            raise AnalysisError("AI analysis failed.") from e

        result = parse_score(raw)
        logger.info("AI score %d (raw: %r)", result.score, raw)
        return result

    async def _call_openai(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
        )
        return response.choices[0].message.content or ""

    async def _call_anthropic(self, system_prompt: str, user_prompt: str) -> str:
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return message.content[0].text
