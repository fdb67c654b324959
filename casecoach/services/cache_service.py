"""
Response cache.

Best-effort memoization of model answers for identical inputs. Callers
depend on the ResponseCache protocol only; passing no cache at all is a
supported configuration. DiskResponseCache is the diskcache-backed
implementation with a TTL per entry and a total size limit.
"""

import hashlib
import re
from pathlib import Path
from typing import Any, Optional, Protocol

import diskcache
import structlog

from casecoach.models.cache import CacheConfig
from casecoach.observability.metrics import CACHE_OPERATIONS

logger = structlog.get_logger()

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[\s?!.,;:]+$")


class ResponseCache(Protocol):
    """Capability required from a cache: get / set / evict."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def evict(self, key: str) -> None: ...


def normalize_question(text: str) -> str:
    """Normalize a question so trivially different phrasings share a key.

    Lower-cases, collapses whitespace and drops trailing punctuation.
    """
    normalized = _WHITESPACE.sub(" ", text.strip().lower())
    return _TRAILING_PUNCTUATION.sub("", normalized)


def make_cache_key(namespace: str, *parts: str) -> str:
    """Stable SHA-256 key for a namespace and its input parts."""
    digest = hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()
    return f"{namespace}:{digest}"


class DiskResponseCache:
    """
    Disk cache with per-entry expiration and a size limit.

    Errors from the underlying store are logged and treated as misses;
    the cache never fails a request.
    """

    def __init__(self, config: CacheConfig):
        self.config = config
        self.cache_dir = Path(config.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self._cache = diskcache.Cache(
            str(self.cache_dir / "responses"),
            size_limit=config.size_limit_bytes,
        )

        logger.info(
            "cache_service_initialized",
            cache_dir=str(self.cache_dir),
            ttl_hours=config.ttl_hours,
            max_cache_size_mb=config.max_cache_size_mb,
        )

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self._cache.get(key)
        except Exception as e:
            logger.error("cache_get_error", key=key[:24], error=str(e))
            CACHE_OPERATIONS.labels(operation="get", result="error").inc()
            return None

        result = "hit" if value is not None else "miss"
        CACHE_OPERATIONS.labels(operation="get", result=result).inc()
        logger.debug("cache_" + result, key=key[:24])
        return value

    def set(self, key: str, value: Any) -> None:
        try:
            self._cache.set(key, value, expire=self.config.ttl_seconds)
        except Exception as e:
            logger.error("cache_set_error", key=key[:24], error=str(e))
            CACHE_OPERATIONS.labels(operation="set", result="error").inc()
            return
        CACHE_OPERATIONS.labels(operation="set", result="ok").inc()

    def evict(self, key: str) -> None:
        try:
            self._cache.delete(key)
        except Exception as e:
            logger.error("cache_evict_error", key=key[:24], error=str(e))
            CACHE_OPERATIONS.labels(operation="evict", result="error").inc()
            return
        CACHE_OPERATIONS.labels(operation="evict", result="ok").inc()

    def clear(self) -> int:
        """Remove every entry. Returns the number of entries removed."""
        removed = int(self._cache.clear())
        logger.info("cache_cleared", removed=removed)
        return removed

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)


def build_cache(config: CacheConfig) -> Optional[DiskResponseCache]:
    """Create the configured cache, or None when caching is disabled."""
    if not config.enabled:
        logger.info("cache_disabled")
        return None
    return DiskResponseCache(config)
