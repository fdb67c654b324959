"""
Data models for the response cache.
"""

from pydantic import BaseModel, ConfigDict, Field


class CacheConfig(BaseModel):
    """Cache configuration

    The cache is optional; with ``enabled: false`` no cache is built and
    every request goes to the providers.
    """

    model_config = ConfigDict(protected_namespaces=())

    enabled: bool = True
    cache_dir: str = "./cache"

    ttl_hours: int = Field(default=24, ge=1, le=24 * 30)

    # Size limit; diskcache culls least-recently-stored entries beyond it
    max_cache_size_mb: int = Field(default=100, ge=1)

    @property
    def ttl_seconds(self) -> int:
        return self.ttl_hours * 3600

    @property
    def size_limit_bytes(self) -> int:
        return self.max_cache_size_mb * 1024 * 1024
