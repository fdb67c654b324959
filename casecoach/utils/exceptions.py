"""Exception hierarchy surfaced by the coaching pipeline.

Provider-level failures (see services/llm/exceptions.py) are handled inside
the cascade. Only the errors below escape to callers, and each one carries
the HTTP status and the user-facing message the API layer returns:

- ProviderNotConfiguredError: no credential for any provider (500)
- QuotaExhaustedError: last retryable outcome was a rate limit (429)
- ProvidersOverloadedError: last retryable outcome was an overload (503)
- AllProvidersFailedError: only hard failures, nothing to classify (500)
- ExtractionError / SchemaMismatchError: model output unusable (502)
- InvalidRequestError: caller sent an unusable payload (400)
"""

from typing import Dict, Optional


class CoachingError(Exception):
    """Base exception for all pipeline errors

    ```python
    try:
        result = await coaching_service.evaluate(request)
    except CoachingError as e:
        return JSONResponse({"error": e.user_message}, status_code=e.status_code)
    ```
    """

    status_code = 500
    default_message = "Something went wrong while contacting the AI provider"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        """Message that is safe to show to the end user."""
        return self.default_message


class InvalidRequestError(CoachingError):
    """Request payload is missing required fields or is empty."""

    status_code = 400
    default_message = "Missing required fields"

    @property
    def user_message(self) -> str:
        return str(self)


class ProviderNotConfiguredError(CoachingError):
    """No provider in the cascade has a credential.

    Raised before any network call is made.
    """

    status_code = 500
    default_message = "No AI API key configured"


class CascadeExhaustedError(CoachingError):
    """Every configured attempt in a cascade failed.

    Attributes:
        policy: Name of the cascade policy that ran
        provider_errors: ``provider/model@temperature`` -> short failure summary
    """

    def __init__(
        self,
        message: Optional[str] = None,
        policy: Optional[str] = None,
        provider_errors: Optional[Dict[str, str]] = None,
    ) -> None:
        message = message or self.default_message
        if provider_errors:
            error_details = ", ".join(f"{p}: {e}" for p, e in provider_errors.items())
            message = f"{message} | Provider errors: {error_details}"
        super().__init__(message)
        self.policy = policy
        self.provider_errors = provider_errors or {}


class QuotaExhaustedError(CascadeExhaustedError):
    """The deciding provider returned a rate-limit / quota status."""

    status_code = 429
    default_message = (
        "AI quota exceeded. Please wait a minute and try again."
    )


class ProvidersOverloadedError(CascadeExhaustedError):
    """The deciding provider was overloaded or unreachable."""

    status_code = 503
    default_message = (
        "All AI providers are unavailable. Please try again in a minute."
    )


class AllProvidersFailedError(CascadeExhaustedError):
    """Only hard failures occurred, so the outcome cannot be classified."""

    status_code = 500
    default_message = "All AI providers failed to respond"


class ExtractionError(CoachingError):
    """Provider answered but the text could not be turned into JSON.

    Never retried against the network.

    Attributes:
        reason: ExtractionFailureReason value (e.g. ``no-json-found``)
    """

    status_code = 502
    default_message = "AI returned an unreadable response. Please try again."

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason


class SchemaMismatchError(ExtractionError):
    """Parsed JSON does not match the expected response shape."""

    default_message = "AI returned an incomplete response. Please try again."

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(message, reason="shape-mismatch")
        self.errors = errors or []
