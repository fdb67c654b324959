"""Observability: correlation IDs, structured logging, Prometheus metrics.

Usage:
    from casecoach.observability import configure_logging, set_correlation_id

    configure_logging(level="INFO")
    corr_id = set_correlation_id()
"""

from casecoach.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
)
from casecoach.observability.logging import (
    get_logger,
    configure_logging,
    bind_context,
    clear_context,
)
from casecoach.observability.metrics import (
    PROVIDER_ATTEMPTS,
    CASCADE_RESULTS,
    EXTRACTION_RESULTS,
    CACHE_OPERATIONS,
    PROVIDER_LATENCY,
    REGISTRY,
    get_metrics_text,
    get_metrics_content_type,
)

__all__ = [
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "get_logger",
    "configure_logging",
    "bind_context",
    "clear_context",
    "PROVIDER_ATTEMPTS",
    "CASCADE_RESULTS",
    "EXTRACTION_RESULTS",
    "CACHE_OPERATIONS",
    "PROVIDER_LATENCY",
    "REGISTRY",
    "get_metrics_text",
    "get_metrics_content_type",
]
