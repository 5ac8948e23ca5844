"""
Fadetrack Backend: Circuit Breaker for AI Upstreams
===================================================

State Machine:
    CLOSED (normal operation)
        → On failure: increment failure_count
        → When failure_count >= threshold: transition to OPEN

    OPEN (rejecting all requests)
        → All calls raise CircuitBreakerOpenError immediately
        → After recovery_timeout seconds: transition to HALF_OPEN

    HALF_OPEN (testing recovery)
        → Allow ONE request through
        → On success: transition to CLOSED (reset failure_count)
        → On failure: transition back to OPEN (reset timer)

The breaker only fails fast; it never retries a call itself.

State lives in the process. With several uvicorn workers each worker
trips independently.
"""

import logging
import time
from typing import Callable, Optional

from fadetrack.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            failure_threshold: Consecutive failures before opening the circuit
            recovery_timeout:  Seconds to stay OPEN before allowing a trial call
            clock:             Monotonic time source (overridden in tests)
        """
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Gate a call.

        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = self._clock() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
                self.state = self.HALF_OPEN
                return True
            remaining = max(1, int(self.recovery_timeout - elapsed))
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (upstream recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (trial call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold and self.state != self.OPEN:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures", self.failure_count
            )
            self.state = self.OPEN

    def reset(self) -> None:
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None
