"""
Voice Interview - Gemini LLM Adapter.

Thin async wrapper around Google Gemini used by the Turn Engine and the
Finalizer. Owns API configuration, retry on rate limiting, error
classification and response text extraction.
"""

from __future__ import annotations

import logging
from typing import Any

import google.generativeai as genai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from voice_interview.core.config import get_settings
from voice_interview.core.exceptions import (
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    MissingAPIKeyError,
)

logger = logging.getLogger(__name__)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_response_text(response: Any) -> str | None:
    """
    Pull the first text result out of a Gemini response.

    Tries the SDK's ``response.text`` accessor first, then the raw
    ``candidates[0].content.parts[0].text`` shape. Returns None when
    neither shape carries text.
    """
    try:
        text = _field(response, "text")
    except (ValueError, AttributeError):
        # The SDK raises from .text when the candidate has no parts.
        text = None
    if callable(text):
        text = text()
    if isinstance(text, str) and text:
        return text

    try:
        candidate = _field(response, "candidates")[0]
        part = _field(_field(candidate, "content"), "parts")[0]
        text = _field(part, "text")
    except (TypeError, IndexError, KeyError, AttributeError):
        return None
    return text if isinstance(text, str) and text else None


class GeminiClient:
    """
    Gemini-powered text generation.

    Usage:
        client = GeminiClient()
        text = await client.generate(
            contents=[{"role": "user", "parts": [{"text": "Hello"}]}],
            model_name="gemini-2.0-flash-lite",
            system_instruction="You are an interviewer.",
        )
    """

    def __init__(self, api_key: str | None = None):
        self._settings = get_settings()
        self._api_key = api_key if api_key is not None else self._settings.GEMINI_API_KEY
        self._configured = False

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def _configure(self) -> None:
        """Configure the Gemini API client (lazy initialization)."""
        if self._configured:
            return

        if not self._api_key:
            raise MissingAPIKeyError("GEMINI_API_KEY")

        genai.configure(api_key=self._api_key)
        self._configured = True
        logger.info("✅ Gemini API configured")

    @retry(
        retry=retry_if_exception_type(LLMRateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def generate(
        self,
        contents: Any,
        *,
        model_name: str,
        system_instruction: str,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        top_k: int | None = None,
        top_p: float | None = None,
    ) -> str:
        """Submit contents plus a system instruction and return the text reply."""
        self._configure()

        try:
            generation_config = genai.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_output_tokens,
                top_k=top_k,
                top_p=top_p,
            )
            model = genai.GenerativeModel(
                model_name,
                system_instruction=system_instruction,
                generation_config=generation_config,
            )

            response = await model.generate_content_async(contents)

        except genai.types.BlockedPromptException as e:
            logger.warning(f"Prompt blocked: {e}")
            raise LLMResponseError("Content was blocked by safety filters")
        except Exception as e:
            error_str = str(e).lower()
            if "429" in error_str or "rate limit" in error_str or "resource exhausted" in error_str:
                raise LLMRateLimitError("Gemini", retry_after=60)
            if "connection" in error_str or "network" in error_str:
                raise LLMConnectionError("Gemini", str(e))
            logger.error(f"Gemini error: {e}")
            raise LLMResponseError(str(e))

        text = extract_response_text(response)
        if text is None:
            raise LLMResponseError("Unexpected AI response format")
        return text
