"""
Cache entry model: a value stamped with its creation time and TTL.
"""

from __future__ import annotations

import time
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

STATUS_TTL_SECONDS = 24 * 60 * 60          # 24h
HELP_TTL_SECONDS = 7 * 24 * 60 * 60        # 7d


class CacheEntry(BaseModel, Generic[T]):
    """One cached value."""

    model_config = ConfigDict(populate_by_name=True)

    data: T
    created_at: float = Field(default_factory=time.time, alias="createdAt")
    ttl_seconds: int = Field(alias="ttlSeconds")

    def is_expired(self, now: float | None = None) -> bool:
        """True once ``now`` is strictly past ``created_at + ttl_seconds``."""
        if now is None:
            now = time.time()
        return now > self.created_at + self.ttl_seconds
