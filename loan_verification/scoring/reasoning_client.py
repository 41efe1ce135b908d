"""
Reasoning Service Client
loan_verification/scoring/reasoning_client.py

Thin httpx client for an OpenAI-compatible chat completions endpoint
(OpenRouter by default). Built once from an explicit, immutable
ReasoningServiceConfig and handed to the holistic scorer; there is no
process-wide client cache.

Failures surface as ReasoningServiceError with ``transient`` set for
transport errors, timeouts, HTTP 429 and 5xx. Malformed bodies surface
as ResponseParseError.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from loan_verification.config import Settings
from loan_verification.core.exceptions import ReasoningServiceError, ResponseParseError
from loan_verification.core.logging import get_logger

logger = get_logger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"


@dataclass(frozen=True)
class ReasoningServiceConfig:
    base_url: str
    model: str
    api_key: Optional[str] = None
    max_tokens: int = 2048
    timeout_seconds: float = 60.0
    max_retries: int = 1
    retry_delay_seconds: float = 2.0
    max_document_chars: int = 15000
    app_name: str = "Loan Verification Scoring"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReasoningServiceConfig":
        key = settings.OPENROUTER_API_KEY
        return cls(
            base_url=settings.OPENROUTER_BASE_URL,
            model=settings.HOLISTIC_MODEL,
            api_key=key.get_secret_value() if key is not None else None,
            max_tokens=settings.HOLISTIC_MAX_TOKENS,
            timeout_seconds=settings.HOLISTIC_TIMEOUT_SECONDS,
            max_retries=settings.HOLISTIC_MAX_RETRIES,
            retry_delay_seconds=settings.HOLISTIC_RETRY_DELAY_SECONDS,
            max_document_chars=settings.HOLISTIC_MAX_DOCUMENT_CHARS,
            app_name=settings.APP_NAME,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip()) and bool(self.base_url)

    def __repr__(self) -> str:
        # keep the key out of reprs and tracebacks
        return (
            f"ReasoningServiceConfig(base_url={self.base_url!r}, model={self.model!r}, "
            f"configured={self.configured})"
        )


def is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class ReasoningServiceClient:
    """Blocking chat-completions client. Use as a context manager or call close()."""

    def __init__(
        self,
        config: ReasoningServiceConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        headers = {"Content-Type": "application/json", "X-Title": config.app_name}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.Client(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        timeout: Optional[float] = None,
    ) -> str:
        """Send one chat completion request and return the message content."""
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.config.max_tokens,
            "temperature": 0,
        }

        try:
            response = self._client.post(
                CHAT_COMPLETIONS_PATH,
                json=payload,
                timeout=timeout if timeout is not None else self.config.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise ReasoningServiceError(f"request timed out: {e}", transient=True) from e
        except httpx.TransportError as e:
            raise ReasoningServiceError(f"transport error: {e}", transient=True) from e

        if response.status_code >= 400:
            raise ReasoningServiceError(
                f"HTTP {response.status_code}",
                transient=is_transient_status(response.status_code),
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ResponseParseError("service returned a non-JSON body") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ResponseParseError("no message content in completion") from e

        if not isinstance(content, str) or not content.strip():
            raise ResponseParseError("empty message content")

        logger.debug("reasoning_completion_received", content_length=len(content))
        return content

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ReasoningServiceClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
