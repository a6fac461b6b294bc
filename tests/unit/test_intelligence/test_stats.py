"""Unit tests for extraction statistics."""

import pytest

from homescrape.intelligence.stats import PerformanceSnapshot, StatsTracker


class TestPerformanceSnapshot:
    """Tests for PerformanceSnapshot."""

    def test_rates_default_to_zero(self):
        """Rates are 0.0 when nothing has been counted."""
        snapshot = PerformanceSnapshot()

        assert snapshot.cache_hit_rate == 0.0
        assert snapshot.success_rate == 0.0
        assert snapshot.total_extractions == 0

    def test_rates(self):
        """Rates are computed from the counters."""
        snapshot = PerformanceSnapshot(
            cache_hits=3,
            cache_misses=1,
            successful_extractions=1,
            failed_extractions=3,
        )

        assert snapshot.cache_hit_rate == 0.75
        assert snapshot.success_rate == 0.25
        assert snapshot.total_extractions == 4

    def test_immutable(self):
        """Snapshots cannot be modified."""
        snapshot = PerformanceSnapshot()
        with pytest.raises(AttributeError):
            snapshot.cache_hits = 5

    def test_to_dict(self):
        """Serialization includes derived values."""
        data = PerformanceSnapshot(ai_calls=2, cached_selectors=7).to_dict()

        assert data["ai_calls"] == 2
        assert data["cached_selectors"] == 7
        assert data["cache_hit_rate"] == 0.0


class TestStatsTracker:
    """Tests for StatsTracker."""

    def test_counters(self):
        """Each record_* call increments its own counter."""
        tracker = StatsTracker()
        tracker.record_cache_hit()
        tracker.record_cache_hit()
        tracker.record_cache_miss()
        tracker.record_ai_call()
        tracker.record_success()
        tracker.record_failure()

        snapshot = tracker.snapshot(cached_selectors=4)

        assert snapshot.cache_hits == 2
        assert snapshot.cache_misses == 1
        assert snapshot.ai_calls == 1
        assert snapshot.successful_extractions == 1
        assert snapshot.failed_extractions == 1
        assert snapshot.cached_selectors == 4

    def test_snapshot_is_a_copy(self):
        """Later updates do not change an earlier snapshot."""
        tracker = StatsTracker()
        before = tracker.snapshot()
        tracker.record_cache_hit()

        assert before.cache_hits == 0
        assert tracker.snapshot().cache_hits == 1

    def test_reset(self):
        """Reset zeroes every counter."""
        tracker = StatsTracker()
        tracker.record_cache_miss()
        tracker.record_failure()
        tracker.reset()

        assert tracker.snapshot() == PerformanceSnapshot()
