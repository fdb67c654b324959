"""Abstract LLM Provider Interface

This module defines:
- LLMResponse: Standardized response dataclass
- LLMProvider: Abstract base class for all providers, including the shared
  aiohttp call that turns HTTP statuses into provider exceptions
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp
import structlog

from casecoach.models.llm import ProviderAttempt
from casecoach.services.llm.exceptions import (
    ProviderUnavailableError,
    classify_http_error,
)

logger = structlog.get_logger()


@dataclass
class LLMResponse:
    """Standardized response from any provider.

    Attributes:
        content: The generated text (or transcript)
        model: The model identifier used
        provider: The provider name (groq, gemini)
        latency_ms: Request latency in milliseconds
        finish_reason: Why generation stopped, when the API reports it
        timestamp: When the response was received
    """

    content: str
    model: str
    provider: str
    latency_ms: float
    finish_reason: Optional[str] = None
    timestamp: Optional[datetime] = None


class LLMProvider(ABC):
    """Abstract base class for remote model providers.

    One instance serves every model of its provider; the model,
    temperature and token budget come from the ProviderAttempt.

    Implementations:
        - GroqProvider: OpenAI-compatible chat completions + Whisper
        - GeminiProvider: generateContent (text and inline audio)
    """

    # Provider puts codes like RESOURCE_EXHAUSTED in the error body
    body_has_semantic_codes = False

    def __init__(self, api_key: str, timeout_seconds: float = 30.0):
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'groq', 'gemini')."""
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    async def complete(
        self,
        attempt: ProviderAttempt,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate text for a prompt.

        Raises:
            RateLimitError: 429 or quota exhausted
            ProviderUnavailableError: 503, timeout, connection error, empty output
            ProviderRequestError: any other non-2xx status
        """
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    async def transcribe(
        self,
        attempt: ProviderAttempt,
        audio: bytes,
        mime_type: str,
        filename: str = "recording.webm",
    ) -> LLMResponse:
        """Transcribe an audio payload. Raises the same errors as complete()."""
        pass  # pragma: no cover - abstract method, always overridden

    async def _post(
        self,
        url: str,
        model: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
        data: Any = None,
    ) -> Dict[str, Any]:
        """POST to the provider and return the decoded JSON body.

        Non-2xx statuses are classified by classify_http_error(); timeouts
        and connection failures count as the provider being unavailable.
        """
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.post(
                    url, headers=headers, params=params, json=json, data=data
                ) as response:
                    if response.status >= 300:
                        body = await response.text()
                        raise classify_http_error(
                            response.status,
                            body,
                            provider=self.name,
                            model=model,
                            body_has_semantic_codes=self.body_has_semantic_codes,
                            retry_after=_retry_after(response),
                        )
                    payload = await response.json(content_type=None)
                    if not isinstance(payload, dict):
                        raise ProviderUnavailableError(
                            f"{self.name} returned a {type(payload).__name__} "
                            "envelope instead of an object",
                            provider=self.name,
                            status_code=response.status,
                        )
                    return payload
        except asyncio.TimeoutError:
            raise ProviderUnavailableError(
                f"{self.name} timed out after {self._timeout.total}s",
                provider=self.name,
            )
        except aiohttp.ClientError as e:
            raise ProviderUnavailableError(
                f"{self.name} connection failed: {e}", provider=self.name
            )
        except ValueError as e:
            raise ProviderUnavailableError(
                f"{self.name} returned a non-JSON envelope: {e}", provider=self.name
            )

    def _build_response(
        self,
        content: Optional[str],
        attempt: ProviderAttempt,
        started: float,
        finish_reason: Optional[str] = None,
    ) -> LLMResponse:
        if not content or not content.strip():
            raise ProviderUnavailableError(
                f"{self.name} returned an empty response",
                provider=self.name,
                status_code=200,
            )
        return LLMResponse(
            content=content,
            model=attempt.model,
            provider=self.name,
            latency_ms=(time.perf_counter() - started) * 1000,
            finish_reason=finish_reason,
            timestamp=datetime.now(),
        )


def _retry_after(response: Any) -> Optional[float]:
    headers = getattr(response, "headers", None)
    if not isinstance(headers, dict) and not hasattr(headers, "getone"):
        return None
    value = headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
