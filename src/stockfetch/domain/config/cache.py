"""Response cache configuration model."""

from pydantic import BaseModel, Field


class CacheConfig(BaseModel):
    """Configuration for the in-memory quote cache.

    Attributes:
        enabled: Whether fetched quotes and history are cached
        ttl_seconds: How long a cached entry stays fresh
    """

    enabled: bool = True
    ttl_seconds: float = Field(60.0, gt=0.0)
