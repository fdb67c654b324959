"""LLM Provider Exception Hierarchy

Structured exception types for provider calls. These never leave the
cascade orchestrator; it turns them into pipeline errors once every
attempt is exhausted.

- LLMProviderError: Base class for all provider errors
- RateLimitError: 429 / quota exhausted (retryable)
- ProviderUnavailableError: 503, timeouts, connection errors (retryable)
- ProviderRequestError: any other non-2xx status (hard, provider-scoped)
- AuthenticationError: 401/403 (hard)
- ModelNotFoundError: 404 (hard)

All HTTP status classification happens in classify_http_error().
"""

from typing import Optional

# Only consulted for providers that embed semantic codes in the body
QUOTA_BODY_MARKERS = ["RESOURCE_EXHAUSTED", "quota"]
OVERLOAD_BODY_MARKERS = ["UNAVAILABLE", "overloaded"]

BODY_LOG_LIMIT = 500


class LLMProviderError(Exception):
    """Base exception for all LLM provider errors.

    Attributes:
        provider: Provider name (groq, gemini)
        status_code: HTTP status, None for transport failures
        body: Response body, truncated for logging
    """

    retryable = False
    status_class = "error"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        self.body = (body or "")[:BODY_LOG_LIMIT]
        super().__init__(message)


class RateLimitError(LLMProviderError):
    """Raised when provider rate limit or quota is exhausted.

    Retryable: the cascade moves on to the next attempt.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    retryable = True
    status_class = "quota"

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = 429,
        body: Optional[str] = None,
    ):
        self.retry_after = retry_after
        super().__init__(
            f"{message}. Retry after: {retry_after}s" if retry_after else message,
            provider=provider,
            status_code=status_code,
            body=body,
        )


class ProviderUnavailableError(LLMProviderError):
    """Raised when provider is overloaded or unreachable.

    Covers 503 responses, timeouts, connection errors and empty 2xx
    payloads. Retryable.
    """

    retryable = True
    status_class = "overload"

    def __init__(
        self,
        message: str = "Provider temporarily unavailable",
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, provider=provider, status_code=status_code, body=body)


class ProviderRequestError(LLMProviderError):
    """Raised for non-retryable statuses.

    A hard failure is scoped to its provider: the cascade skips the
    remaining attempts on the same provider but keeps going with others.
    """

    status_class = "hard"


class AuthenticationError(ProviderRequestError):
    """Raised when API authentication fails (401/403)."""

    def __init__(
        self,
        message: str = "API authentication failed",
        provider: Optional[str] = None,
        status_code: Optional[int] = 401,
        body: Optional[str] = None,
    ):
        super().__init__(message, provider=provider, status_code=status_code, body=body)


class ModelNotFoundError(ProviderRequestError):
    """Raised when the requested model does not exist (404)."""

    def __init__(
        self,
        model: str,
        provider: Optional[str] = None,
        body: Optional[str] = None,
    ):
        self.model = model
        super().__init__(
            f"Model not found: {model}", provider=provider, status_code=404, body=body
        )


def classify_http_error(
    status: int,
    body: str,
    provider: str,
    model: str = "",
    body_has_semantic_codes: bool = False,
    retry_after: Optional[float] = None,
) -> LLMProviderError:
    """Map a non-2xx response onto the provider error taxonomy.

    The status code decides. Body markers are a secondary signal and only
    apply when ``body_has_semantic_codes`` is set for the provider.

    Args:
        status: HTTP status code of the response
        body: Raw response body
        provider: Provider name
        model: Model that was requested
        body_has_semantic_codes: Provider embeds codes like RESOURCE_EXHAUSTED
        retry_after: Parsed Retry-After header, if any

    Returns:
        The exception instance to raise
    """
    message = f"{provider} returned HTTP {status}"

    if status == 429:
        return RateLimitError(
            message, retry_after=retry_after, provider=provider, body=body
        )
    if status == 503:
        return ProviderUnavailableError(
            message, provider=provider, status_code=status, body=body
        )

    if body_has_semantic_codes and body:
        if any(marker in body for marker in QUOTA_BODY_MARKERS):
            return RateLimitError(
                message, provider=provider, status_code=status, body=body
            )
        if any(marker in body for marker in OVERLOAD_BODY_MARKERS):
            return ProviderUnavailableError(
                message, provider=provider, status_code=status, body=body
            )

    if status in (401, 403):
        return AuthenticationError(
            message, provider=provider, status_code=status, body=body
        )
    if status == 404:
        return ModelNotFoundError(model or "unknown", provider=provider, body=body)

    return ProviderRequestError(message, provider=provider, status_code=status, body=body)
