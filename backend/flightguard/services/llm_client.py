"""Unified LLM client: tries OpenAI first, falls back to Anthropic."""

import json
import logging

import anthropic
from openai import AsyncOpenAI

from flightguard.config import settings

logger = logging.getLogger(__name__)

OPENAI_MODEL = "gpt-4o-mini"
ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence, if the model added one."""
    raw = raw.strip()
    if raw.startswith("```"):
        lines = [line for line in raw.split("\n") if not line.strip().startswith("```")]
        raw = "\n".join(lines).strip()
    return raw


class LLMClient:
    """Unified async LLM client with OpenAI primary + Anthropic fallback."""

    def __init__(self, openai_api_key: str = "", anthropic_api_key: str = "", timeout: float = 30.0):
        self._openai = None
        self._anthropic = None

        if openai_api_key:
            self._openai = AsyncOpenAI(api_key=openai_api_key, timeout=timeout)
        if anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(api_key=anthropic_api_key, timeout=timeout)

    @property
    def available(self) -> bool:
        return self._openai is not None or self._anthropic is not None

    async def complete(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int = 1500,
        temperature: float = 0,
        json_mode: bool = False,
    ) -> str:
        """Get a completion from the best available LLM.

        Raises:
            RuntimeError if no provider is configured or every provider fails.
        """
        errors = []
        chat_messages = [{"role": "user", "content": user}]

        if self._openai:
            try:
                kwargs: dict = {
                    "model": OPENAI_MODEL,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                    "messages": [{"role": "system", "content": system}] + chat_messages,
                }
                if json_mode:
                    kwargs["response_format"] = {"type": "json_object"}
                response = await self._openai.chat.completions.create(**kwargs)
                return response.choices[0].message.content.strip()
            except Exception as e:
                errors.append(f"OpenAI: {e}")
                logger.warning(f"OpenAI failed, trying Anthropic: {e}")

        if self._anthropic:
            try:
                response = await self._anthropic.messages.create(
                    model=ANTHROPIC_MODEL,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=chat_messages,
                )
                return response.content[0].text.strip()
            except Exception as e:
                errors.append(f"Anthropic: {e}")
                logger.warning(f"Anthropic also failed: {e}")

        if not errors:
            raise RuntimeError("No LLM provider configured")
        raise RuntimeError(f"All LLM providers failed: {'; '.join(errors)}")

    async def complete_json(self, system: str, user: str, *, max_tokens: int = 1500) -> dict:
        """Completion parsed as a JSON object.

        Raises:
            RuntimeError if providers fail, ValueError if the reply is not a JSON object.
        """
        raw = await self.complete(system=system, user=user, max_tokens=max_tokens, json_mode=True)
        parsed = json.loads(strip_code_fences(raw))
        if not isinstance(parsed, dict):
            raise ValueError("LLM reply is not a JSON object")
        return parsed


# Singleton
llm_client = LLMClient(
    openai_api_key=settings.openai_api_key,
    anthropic_api_key=settings.anthropic_api_key,
    timeout=settings.llm_timeout,
)
