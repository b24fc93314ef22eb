"""
Optional text-generation backend for the refiners.

The refiners work without any model: they produce template text. When a
``TextGenerator`` is supplied, ``trigger_refinement`` asks it to polish the
refined trajectory summary. ``GeminiTextGenerator`` is the production
implementation; it retries 429 (rate limit) and 503 (overload) responses
with exponential backoff and raises ``GenerationError`` once retries are
exhausted.
"""
from __future__ import annotations

from typing import Optional, Protocol

from google import genai
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from branchweaver.config import get_settings
from branchweaver.errors import GenerationError
from branchweaver.utils.logging_config import get_logger

logger = get_logger(__name__)


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str:
        ...


def is_retryable(exc: BaseException) -> bool:
    """Rate limits and server overload are worth retrying; nothing else is."""
    message = str(exc).upper()
    return any(marker in message for marker in ("429", "RESOURCE_EXHAUSTED", "503", "UNAVAILABLE"))


def _log_retry(retry_state) -> None:
    logger.warning(
        f"Text generation attempt {retry_state.attempt_number} failed, backing off",
        extra={"metadata": {"error": str(retry_state.outcome.exception())}},
    )


class GeminiTextGenerator:
    """``TextGenerator`` backed by the Gemini API via ``google-genai``."""

    def __init__(
        self,
        client: Optional[genai.Client] = None,
        model: Optional[str] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
    ):
        settings = get_settings()
        self.client = client or genai.Client(api_key=settings.google_api_key or None)
        self.model = model or settings.model_refiner
        self.max_retries = max_retries or settings.generation_max_retries
        self.base_delay = settings.generation_base_delay if base_delay is None else base_delay

    async def generate(self, prompt: str) -> str:
        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.base_delay),
            before_sleep=_log_retry,
            reraise=False,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self.client.aio.models.generate_content(
                        model=self.model,
                        contents=prompt,
                    )
        except RetryError as e:
            raise GenerationError(f"Text generation exhausted {self.max_retries} attempts") from e
        except Exception as e:
            raise GenerationError(f"Text generation failed: {e}") from e

        text = (response.text or "").strip()
        if not text:
            raise GenerationError("Text generation returned an empty response")
        return text
