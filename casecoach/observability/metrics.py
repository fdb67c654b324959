"""Prometheus metrics for the coaching API.

- Provider attempts and their outcome/latency
- Cascade results per policy
- JSON recovery strategies
- Response cache hits and misses

Usage:
    from casecoach.observability.metrics import PROVIDER_ATTEMPTS

    PROVIDER_ATTEMPTS.labels(provider="groq", outcome="retryable").inc()

Metrics are exposed via the /metrics endpoint of the API server.
"""

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

PROVIDER_ATTEMPTS = Counter(
    name="casecoach_provider_attempts_total",
    documentation="Provider calls made by cascades",
    labelnames=["provider", "outcome"],  # success, retryable, hard, skipped
    registry=REGISTRY,
)

CASCADE_RESULTS = Counter(
    name="casecoach_cascade_results_total",
    documentation="Cascade executions by final result",
    labelnames=["policy", "result"],  # success, not_configured, quota, overload, failed
    registry=REGISTRY,
)

EXTRACTION_RESULTS = Counter(
    name="casecoach_extraction_total",
    documentation="JSON recovery results by strategy or failure reason",
    labelnames=["strategy"],  # direct, balanced, repaired, <failure reason>
    registry=REGISTRY,
)

CACHE_OPERATIONS = Counter(
    name="casecoach_cache_operations_total",
    documentation="Response cache operations",
    labelnames=["operation", "result"],  # get/set/evict, hit/miss/ok
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1, 2, 5, 10, 20, 30, 60, float("inf"))

PROVIDER_LATENCY = Histogram(
    name="casecoach_provider_latency_seconds",
    documentation="Duration of a single provider call",
    labelnames=["provider"],
    buckets=LATENCY_BUCKETS,
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Content-Type header value for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
