"""
Extraction performance statistics.

Field-level counters (cache hits, cache misses, AI calls) are recorded by
the resolver; record-level counters (successful and failed extractions) by
whoever assembles records, since a record with a few missing fields can
still count as a success.
"""

import threading
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Immutable copy of the counters at one point in time."""
    cache_hits: int = 0
    cache_misses: int = 0
    ai_calls: int = 0
    successful_extractions: int = 0
    failed_extractions: int = 0
    cached_selectors: int = 0

    @property
    def cache_hit_rate(self) -> float:
        """hits / (hits + misses), or 0.0 before any lookup."""
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups > 0 else 0.0

    @property
    def total_extractions(self) -> int:
        return self.successful_extractions + self.failed_extractions

    @property
    def success_rate(self) -> float:
        """successes / (successes + failures), or 0.0 before any record."""
        total = self.total_extractions
        return self.successful_extractions / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "ai_calls": self.ai_calls,
            "successful_extractions": self.successful_extractions,
            "failed_extractions": self.failed_extractions,
            "total_extractions": self.total_extractions,
            "cached_selectors": self.cached_selectors,
            "cache_hit_rate": self.cache_hit_rate,
            "success_rate": self.success_rate,
        }


class StatsTracker:
    """Thread-safe, monotonically increasing counters with a reset boundary."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cache_hits = 0
        self._cache_misses = 0
        self._ai_calls = 0
        self._successful_extractions = 0
        self._failed_extractions = 0

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def record_cache_miss(self) -> None:
        """A value found by walking the static hierarchy."""
        with self._lock:
            self._cache_misses += 1

    def record_ai_call(self) -> None:
        """A value found with a generated selector."""
        with self._lock:
            self._ai_calls += 1

    def record_success(self) -> None:
        with self._lock:
            self._successful_extractions += 1

    def record_failure(self) -> None:
        with self._lock:
            self._failed_extractions += 1

    def snapshot(self, cached_selectors: int = 0) -> PerformanceSnapshot:
        """Take an immutable copy of the counters."""
        with self._lock:
            return PerformanceSnapshot(
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                ai_calls=self._ai_calls,
                successful_extractions=self._successful_extractions,
                failed_extractions=self._failed_extractions,
                cached_selectors=cached_selectors,
            )

    def reset(self) -> None:
        """Zero every counter."""
        with self._lock:
            self._cache_hits = 0
            self._cache_misses = 0
            self._ai_calls = 0
            self._successful_extractions = 0
            self._failed_extractions = 0
