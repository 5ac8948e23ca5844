"""
Fadetrack Backend: Circuit Breaker Unit Tests
=============================================

The breaker takes its clock as a constructor argument, so recovery is
tested by advancing a fake clock instead of sleeping.
"""

import pytest

from fadetrack.exceptions import CircuitBreakerOpenError
from fadetrack.services.circuit_breaker import CircuitBreaker


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestCircuitBreaker:
    """State transitions of the AI upstream breaker."""

    def setup_method(self):
        self.clock = FakeClock()
        self.cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60, clock=self.clock)

    def test_initial_state_is_closed(self):
        assert self.cb.state == "closed"
        assert self.cb.failure_count == 0
        assert self.cb.can_execute() is True

    def test_stays_closed_under_threshold(self):
        for _ in range(2):
            self.cb.record_failure()
        assert self.cb.state == "closed"
        self.cb.can_execute()

    def test_opens_at_threshold_and_rejects(self):
        for _ in range(3):
            self.cb.record_failure()
        assert self.cb.state == "open"

        self.clock.advance(15)
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            self.cb.can_execute()
        assert exc_info.value.recovery_time == 45

    def test_success_resets_failure_count(self):
        self.cb.record_failure()
        self.cb.record_failure()
        self.cb.record_success()

        assert self.cb.failure_count == 0
        self.cb.record_failure()
        self.cb.record_failure()
        assert self.cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        for _ in range(3):
            self.cb.record_failure()

        self.clock.advance(60)

        assert self.cb.can_execute() is True
        assert self.cb.state == "half_open"

    def test_trial_success_closes(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.advance(61)
        self.cb.can_execute()

        self.cb.record_success()

        assert self.cb.state == "closed"
        assert self.cb.failure_count == 0

    def test_trial_failure_reopens_with_fresh_timer(self):
        for _ in range(3):
            self.cb.record_failure()
        self.clock.advance(61)
        self.cb.can_execute()

        self.cb.record_failure()

        assert self.cb.state == "open"
        self.clock.advance(30)
        with pytest.raises(CircuitBreakerOpenError):
            self.cb.can_execute()

    def test_reset(self):
        for _ in range(3):
            self.cb.record_failure()
        self.cb.reset()
        assert self.cb.state == "closed"
        assert self.cb.last_failure_time is None
