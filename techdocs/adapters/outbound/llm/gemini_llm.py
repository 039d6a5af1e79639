"""Google Gemini adapter implementing the LLM port (google-genai SDK)."""

import logging
from typing import TYPE_CHECKING

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from google import genai

from ....common.utils import normalize_text
from ....core.domain.exceptions import (
    LLMConnectionError,
    LLMError,
    LLMGenerationError,
    LLMRateLimitError,
    MissingAPIKeyError,
)
from ....core.ports.llm_port import LLMPort

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"
RATE_LIMIT_STATUS = 429


def _is_rate_limit(error: Exception) -> bool:
    code = getattr(error, "code", None)
    if code == RATE_LIMIT_STATUS:
        return True
    message = str(error).lower()
    return "quota" in message or "rate limit" in message or "resource_exhausted" in message


class GeminiLLMAdapter(LLMPort):
    """Text generation with Gemini.

    Rate-limited calls are retried with exponential backoff; every other
    failure is mapped onto the ``LLMError`` hierarchy so callers can fall back.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Google AI API key.
            model: Model to use (default: gemini-2.0-flash for free tier).
            temperature: Sampling temperature (0.0-1.0).
            max_tokens: Maximum tokens to generate.
            max_retries: Attempts for rate-limited calls.
            retry_backoff: Multiplier for exponential backoff between attempts.
        """
        self.api_key = api_key
        self.model_name = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self._client: "genai.Client | None" = None

    def _get_client(self) -> "genai.Client":
        """Lazy load the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise MissingAPIKeyError(
                    "Google API key not set. Get one at https://aistudio.google.com/ "
                    "and set GOOGLE_API_KEY in your .env file."
                )

            from google import genai

            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client initialized for model: %s", self.model_name)

        return self._client

    def _generate_once(self, prompt: str, system_prompt: str | None) -> str:
        from google.genai.types import GenerateContentConfig

        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=self.temperature,
                    max_output_tokens=self.max_tokens,
                ),
            )
        except LLMError:
            raise
        except Exception as e:
            if _is_rate_limit(e):
                raise LLMRateLimitError(
                    "Gemini rate limit or quota exceeded",
                    cause=e,
                    context={"model": self.model_name},
                ) from e
            raise LLMConnectionError(
                f"Gemini request failed: {e}",
                cause=e,
                context={"model": self.model_name},
            ) from e

        # Safety filters leave no candidates
        if not response.candidates:
            raise LLMGenerationError(
                "Gemini returned no candidates (response blocked)",
                context={"model": self.model_name},
            )

        text = normalize_text(response.text or "")
        if not text:
            raise LLMGenerationError("Gemini returned an empty response", context={"model": self.model_name})
        return text

    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        """Generate a response.

        Raises:
            MissingAPIKeyError: If no API key is configured.
            LLMRateLimitError: If still rate limited after retrying.
            LLMConnectionError: If the request failed.
            LLMGenerationError: If the response was blocked or empty.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_backoff, max=8),
            retry=retry_if_exception_type(LLMRateLimitError),
            before_sleep=lambda state: logger.warning(
                "Gemini rate limit hit (attempt %d), backing off", state.attempt_number
            ),
            reraise=True,
        )
        return retrying(self._generate_once, normalize_text(prompt), system_prompt)
