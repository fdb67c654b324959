"""Request-scoped correlation IDs.

The API middleware sets an ID per request (taken from the ``X-Request-ID``
header when the client sends one) and the logging processor attaches it to
every entry, so all attempts of one cascade can be grouped in the logs.

Usage:
    from casecoach.observability.context import set_correlation_id

    corr_id = set_correlation_id()  # Generates a UUID
    set_correlation_id("req-123")   # Or reuse the caller's ID
"""

import uuid
from contextvars import ContextVar
from typing import Optional

# ContextVar keeps concurrent requests apart across await points
_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context.

    Args:
        corr_id: Optional correlation ID. If None, generates UUID.

    Returns:
        The correlation ID that was set.
    """
    if not corr_id:
        corr_id = str(uuid.uuid4())

    _correlation_id_var.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None if not set."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    """Reset the correlation ID at the end of a request."""
    _correlation_id_var.set(None)
