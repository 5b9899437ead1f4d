"""
Tests for the failed-login throttle.
"""

from datetime import timedelta

import pytest

from services.login_throttle import LoginAttemptTracker, ThrottleReason, login_key


@pytest.fixture
def tracker(clock):
    return LoginAttemptTracker(max_attempts=5, window=timedelta(minutes=15), clock=clock)


def fail(tracker, key, times):
    for _ in range(times):
        assert tracker.check_and_record(key, succeeded=False).allowed


class TestLoginKey:
    def test_email_is_normalized(self):
        assert login_key("  Alice@Example.COM ", "10.0.0.1") == "alice@example.com"

    def test_falls_back_to_ip(self):
        assert login_key(None, "10.0.0.1") == "10.0.0.1"
        assert login_key("   ", "10.0.0.1") == "10.0.0.1"


class TestLoginAttemptTracker:
    def test_sixth_attempt_denied_even_with_valid_credentials(self, tracker):
        fail(tracker, "a@b.com", 5)

        decision = tracker.check_and_record("a@b.com", succeeded=True)

        assert not decision.allowed
        assert decision.reason is ThrottleReason.TOO_MANY_ATTEMPTS
        # A denial changes nothing
        assert tracker.get("a@b.com").count == 5

    def test_below_limit_is_allowed(self, tracker):
        fail(tracker, "a@b.com", 4)
        assert tracker.check("a@b.com").allowed

    def test_success_clears_counter(self, tracker):
        fail(tracker, "a@b.com", 4)
        tracker.check_and_record("a@b.com", succeeded=True)
        assert tracker.get("a@b.com") is None

        tracker.check_and_record("a@b.com", succeeded=False)
        assert tracker.get("a@b.com").count == 1

    def test_counter_resets_after_window(self, tracker, clock):
        fail(tracker, "a@b.com", 4)
        clock.advance(minutes=16)

        tracker.record("a@b.com", succeeded=False)

        entry = tracker.get("a@b.com")
        assert entry.count == 1
        assert entry.window_start == clock.now

    def test_lock_lasts_until_window_after_last_failure(self, tracker, clock):
        start = clock.now
        fail(tracker, "a@b.com", 4)
        clock.advance(minutes=14)
        fail(tracker, "a@b.com", 1)

        # The window opened at start has passed, but the last failure is recent
        clock.advance(minutes=2)
        decision = tracker.check("a@b.com")
        assert not decision.allowed
        assert decision.retry_after == timedelta(minutes=13)

        clock.now = start + timedelta(minutes=29)
        assert tracker.check("a@b.com").allowed

        tracker.record("a@b.com", succeeded=False)
        assert tracker.get("a@b.com").count == 1

    def test_keys_are_independent(self, tracker):
        fail(tracker, "a@b.com", 5)
        assert not tracker.check("a@b.com").allowed
        assert tracker.check("c@d.com").allowed

    def test_purge_stale(self, tracker, clock):
        fail(tracker, "old@example.com", 5)
        clock.advance(minutes=10)
        fail(tracker, "new@example.com", 1)
        clock.advance(minutes=6)

        assert tracker.purge_stale() == 1
        assert tracker.get("old@example.com") is None
        assert tracker.get("new@example.com").count == 1
