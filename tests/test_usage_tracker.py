"""Tests for the sliding-window usage tracker."""

import threading
from datetime import timedelta

from todofy.usage_tracker import UsageTracker

from conftest import FakeClock


class TestRecordAndUsage:
    def test_record_accumulates(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 1_000_000, clock=clock)

        tracker.record(5000)
        assert tracker.current_usage() == 5000

        tracker.record(3000)
        assert tracker.current_usage() == 8000

    def test_record_returns_stamped_record(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 0, clock=clock)

        rec = tracker.record(42)

        assert rec.cost == 42
        assert rec.timestamp == clock.now

    def test_empty_tracker_reports_zero(self, tracker):
        assert tracker.current_usage() == 0

    def test_reset_clears_records(self, tracker):
        tracker.record(10)
        tracker.reset()
        assert tracker.current_usage() == 0


class TestCheckLimit:
    def test_within_limit(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 10000, clock=clock)
        tracker.record(5000)
        assert tracker.check_limit(4000) is None

    def test_exceeds_limit(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 10000, clock=clock)
        tracker.record(8000)
        violation = tracker.check_limit(3000)
        assert violation is not None
        assert "token limit exceeded" in str(violation)
        assert violation.current_usage == 8000
        assert violation.requested == 3000
        assert violation.limit == 10000

    def test_violation_ignores_later_records(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 10000, clock=clock)
        tracker.record(8000)

        violation = tracker.check_limit(3000)
        tracker.record(1500)

        assert violation.current_usage == 8000
        assert tracker.current_usage() == 9500

    def test_violation_counts_only_window(self, clock):
        tracker = UsageTracker(timedelta(hours=1), 1000, clock=clock)
        tracker.record(600)
        clock.advance(minutes=90)
        tracker.record(700)

        violation = tracker.check_limit(400)

        assert violation.current_usage == 700

    def test_boundary_is_inclusive(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 10000, clock=clock)
        tracker.record(5000)

        assert tracker.check_limit(5000) is None
        assert tracker.check_limit(5001) is not None

    def test_check_does_not_record(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 10000, clock=clock)
        tracker.check_limit(500)
        assert tracker.current_usage() == 0

    def test_zero_limit_disables_enforcement(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 0, clock=clock)
        tracker.record(9_999_999)

        assert tracker.check_limit(9_999_999) is None
        assert not tracker.enabled
        # tracking itself keeps going
        assert tracker.current_usage() == 9_999_999

    def test_negative_limit_behaves_like_zero(self, clock):
        tracker = UsageTracker(timedelta(hours=24), -5, clock=clock)
        tracker.record(100)

        assert tracker.check_limit(1_000_000) is None
        assert tracker.current_usage() == 100


class TestSlidingWindow:
    def test_old_records_expire(self):
        clock = FakeClock()
        now = clock.now
        tracker = UsageTracker(timedelta(hours=24), 1_000_000, clock=clock)

        clock.now = now - timedelta(hours=25)
        tracker.record(500_000)

        clock.now = now - timedelta(hours=1)
        tracker.record(200_000)

        clock.now = now
        assert tracker.current_usage() == 200_000

    def test_records_inside_window_are_kept(self):
        clock = FakeClock()
        now = clock.now
        tracker = UsageTracker(timedelta(hours=24), 1_000_000, clock=clock)

        clock.now = now - timedelta(hours=23)
        tracker.record(300_000)

        clock.now = now
        assert tracker.current_usage() == 300_000

    def test_record_exactly_at_window_edge_counts(self):
        clock = FakeClock()
        now = clock.now
        tracker = UsageTracker(timedelta(hours=24), 1_000_000, clock=clock)

        clock.now = now - timedelta(hours=24)
        tracker.record(7)

        clock.now = now
        assert tracker.current_usage() == 7

    def test_expired_usage_frees_budget(self):
        clock = FakeClock()
        now = clock.now
        tracker = UsageTracker(timedelta(hours=24), 1000, clock=clock)

        clock.now = now - timedelta(hours=25)
        tracker.record(800)

        clock.now = now
        assert tracker.current_usage() == 0
        assert tracker.check_limit(900) is None

    def test_usage_drops_as_time_advances(self, clock):
        tracker = UsageTracker(timedelta(hours=1), 0, clock=clock)
        tracker.record(10)
        clock.advance(minutes=30)
        tracker.record(20)

        assert tracker.current_usage() == 30
        clock.advance(minutes=31)
        assert tracker.current_usage() == 20
        clock.advance(minutes=30)
        assert tracker.current_usage() == 0


class TestConcurrency:
    def test_concurrent_records_are_all_counted(self, clock):
        tracker = UsageTracker(timedelta(hours=24), 0, clock=clock)

        def worker():
            for _ in range(200):
                tracker.record(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.current_usage() == 1600
