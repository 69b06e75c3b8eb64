"""Cache statistics model."""

from __future__ import annotations

from pydantic import BaseModel


class CacheStats(BaseModel):
    """Aggregate picture cache statistics."""

    entries: int = 0
    size_bytes: int = 0
    hits: int = 0
    misses: int = 0
    writes: int = 0
    write_errors: int = 0
    active_loaders: int = 0

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
