"""Upstream completion providers.

The stream relay only depends on the ``CompletionProvider`` protocol: given
the provider-agnostic exchange it opens an incremental completion and hands
back an async iterator of text fragments. ``GeminiCompletionProvider`` is the
production implementation, built once at startup from the settings.
"""

import logging
import re
from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

import google.generativeai as genai
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import Settings
from app.exceptions.ai import (
    AIConfigurationError,
    AIContentFilterError,
    AIQuotaExceededError,
    AIRateLimitError,
    AIServiceError,
    map_ai_error,
)
from app.schemas.chat import ExchangeMessage

logger = logging.getLogger(__name__)

# Gemini finish reason for responses stopped by the safety filters
FINISH_REASON_SAFETY = 3

UNCLASSIFIED_AI_ERROR = "AI service failed to generate a response"


class CompletionProvider(Protocol):
    """Anything able to stream a completion for an exchange."""

    async def open_stream(self, exchange: Sequence[ExchangeMessage]) -> AsyncIterator[str]:
        """Open the upstream request and return an iterator over its fragments.

        Errors raised while opening are raised from this call; errors raised
        while fragments are flowing are raised from the iterator.
        """
        ...


def extract_retry_delay(error_message: str, default: int) -> int:
    """Extract retry delay from an upstream error message.

    Args:
        error_message: Error message from the provider
        default: Delay used when the message carries none

    Returns:
        Retry delay in seconds
    """
    # Pattern: "Please retry in 32.984803332s"
    match = re.search(r"retry in (\d+(?:\.\d+)?)s", error_message)
    if match:
        return int(float(match.group(1))) + 1  # Add 1 second buffer
    return default


def classify_provider_error(error: Exception, default_retry_delay: int = 2) -> AIServiceError:
    """Translate an upstream exception into the AI error hierarchy."""
    if isinstance(error, AIServiceError):
        return error

    full_error_msg = str(error)
    error_msg = full_error_msg.lower()

    # Check quota first, as it often includes "429"
    if "quota" in error_msg:
        retry_delay = extract_retry_delay(full_error_msg, default_retry_delay)
        return map_ai_error(
            "quota_exceeded",
            f"API quota exceeded. Please try again in {retry_delay} seconds",
            {"retry_after": retry_delay},
        )
    if "429" in full_error_msg or ("rate" in error_msg and "limit" in error_msg):
        retry_delay = extract_retry_delay(full_error_msg, default_retry_delay)
        return AIRateLimitError(f"Rate limit exceeded. Retry after {retry_delay} seconds", retry_after=retry_delay)
    if isinstance(error, TimeoutError) or "deadline" in error_msg or "timed out" in error_msg:
        return map_ai_error("timeout", "AI service request timed out")
    if "safety" in error_msg or "blocked" in error_msg:
        return map_ai_error("content_filtered", "Content was blocked by AI safety filters. Please rephrase.")
    if "api key" in error_msg or "permission" in error_msg or "403" in full_error_msg:
        return map_ai_error("configuration_error", "AI service rejected the configured credentials")
    if "503" in full_error_msg or "unavailable" in error_msg or "overloaded" in error_msg:
        return map_ai_error("service_unavailable", "AI service is temporarily unavailable")
    # Unrecognised upstream text stays in the log; the client gets a fixed message
    logger.error(f"Unclassified AI provider error: {full_error_msg}")
    return AIServiceError(UNCLASSIFIED_AI_ERROR)


class GeminiCompletionProvider:
    """Service class streaming completions from Google Gemini."""

    def __init__(self, app_settings: Settings):
        """Configure the Gemini client.

        Args:
            app_settings: Settings carrying the API key, model and retry policy.
        """
        if not app_settings.gemini_api_key:
            raise AIConfigurationError("Gemini API key not configured")

        self.settings = app_settings
        self.model_name = app_settings.gemini_model

        try:
            genai.configure(api_key=app_settings.gemini_api_key)
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {str(e)}")
            raise AIConfigurationError(f"Failed to initialize AI service: {str(e)}") from e

        self.safety_settings = {
            HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        }
        self.generation_config = genai.types.GenerationConfig(
            candidate_count=1,
            max_output_tokens=app_settings.gemini_max_tokens,
            temperature=app_settings.gemini_temperature,
        )
        logger.info(f"Gemini completion provider ready with model: {self.model_name}")

    async def open_stream(self, exchange: Sequence[ExchangeMessage]) -> AsyncIterator[str]:
        system_instruction, contents = self._to_gemini_contents(exchange)
        if not contents:
            raise AIServiceError("Cannot request a completion for an empty exchange", status_code=400)

        model = genai.GenerativeModel(
            model_name=self.model_name,
            safety_settings=self.safety_settings,
            generation_config=self.generation_config,
            system_instruction=system_instruction,
        )
        response = await self._open_with_retry(model, contents)
        return self._iter_fragments(response)

    async def _open_with_retry(self, model: Any, contents: list[dict]) -> Any:
        """Open the streaming request, backing off on rate-limit and quota errors."""
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((AIRateLimitError, AIQuotaExceededError)),
            stop=stop_after_attempt(self.settings.ai_max_retry_attempts),
            wait=wait_exponential(
                multiplier=self.settings.ai_retry_backoff_factor,
                min=self.settings.ai_retry_min_wait,
                max=self.settings.ai_retry_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                try:
                    return await model.generate_content_async(
                        contents,
                        stream=True,
                        request_options={"timeout": self.settings.ai_request_timeout},
                    )
                except Exception as e:
                    error = classify_provider_error(e, self.settings.ai_retry_min_wait)
                    logger.warning(f"Opening Gemini stream failed: {error.message}")
                    raise error from e

    async def _iter_fragments(self, response: Any) -> AsyncIterator[str]:
        try:
            async for chunk in response:
                text = self._chunk_text(chunk)
                if text:
                    yield text
        except AIServiceError:
            raise
        except Exception as e:
            logger.error(f"Gemini stream interrupted: {str(e)}")
            raise classify_provider_error(e, self.settings.ai_retry_min_wait) from e

    @staticmethod
    def _chunk_text(chunk: Any) -> str:
        """Text carried by one streamed chunk; empty for chunks without parts."""
        try:
            return chunk.text or ""
        except ValueError as e:
            # `.text` raises when the chunk has no usable parts
            candidates = getattr(chunk, "candidates", None) or []
            if not candidates:
                logger.error(f"Prompt feedback: {getattr(chunk, 'prompt_feedback', None)}")
                raise AIContentFilterError("Content was blocked by AI safety filters. Please rephrase.") from e
            if getattr(candidates[0], "finish_reason", None) == FINISH_REASON_SAFETY:
                raise AIContentFilterError("Response was blocked by AI safety filters.") from e
            return ""

    @staticmethod
    def _to_gemini_contents(exchange: Sequence[ExchangeMessage]) -> tuple[str | None, list[dict]]:
        """Split system turns into the system instruction and map the rest to Gemini roles."""
        system_parts = [message.content for message in exchange if message.role == "system"]
        contents = [
            {"role": "model" if message.role == "assistant" else "user", "parts": [message.content]}
            for message in exchange
            if message.role != "system"
        ]
        return ("\n\n".join(system_parts) or None), contents


def build_completion_provider(app_settings: Settings) -> CompletionProvider | None:
    """Build the configured provider, or None when no AI backend is configured."""
    if not app_settings.has_ai_enabled:
        logger.warning("GEMINI_API_KEY is not set; message streaming is disabled")
        return None
    return GeminiCompletionProvider(app_settings)
