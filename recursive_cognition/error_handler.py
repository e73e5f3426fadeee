"""
Error Isolation Helpers

- ErrorHandler.safe_execute: run one unit of work (a framework's scoring
  function) so that a failure degrades to a default instead of aborting
  the cycle.
- CircuitBreaker: stop hammering a remote Mythos Memory that keeps
  failing. Thread-safe; claim lookups run concurrently.
"""

import threading
import time
from enum import Enum
from typing import Callable, Optional, TypeVar

from recursive_cognition.logging_config import get_logger, log_error

logger = get_logger(__name__)
T = TypeVar('T')


class ErrorHandler:

    @staticmethod
    def safe_execute(
        func: Callable[[], T],
        default: T = None,
        context: dict | None = None,
        log_level: str = "ERROR"
    ) -> T:
        """
        Call `func()`; on any Exception log it with `context` and return `default`.

        Usage:
            score = ErrorHandler.safe_execute(
                lambda: framework.scorer(stimulus, response),
                default=None,
                context={"framework": framework.name},
            )
        """
        try:
            return func()
        except Exception as e:
            log_error(e, context, log_level)
        return default


class CircuitBreakerOpen(Exception):
    """The breaker is open; the call was not attempted"""


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    CLOSED -> OPEN after `failure_threshold` consecutive failures.
    OPEN -> HALF_OPEN once `timeout` seconds passed since the last failure.
    HALF_OPEN -> CLOSED after `half_open_attempts` successes, OPEN on any failure.

    Usage:
        breaker = CircuitBreaker(failure_threshold=5, timeout=30)
        lookup = breaker.call(client.fetch, "claim-1")  # may raise CircuitBreakerOpen
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60,
        half_open_attempts: int = 1,
        clock: Callable[[], float] = time.monotonic
    ):
        if failure_threshold < 1 or half_open_attempts < 1:
            raise ValueError("failure_threshold and half_open_attempts must be at least 1")
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.half_open_attempts = half_open_attempts
        self._clock = clock
        self._lock = threading.Lock()

        self.state = BreakerState.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None
        self._probe_successes = 0

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        name = getattr(func, "__name__", type(func).__name__)
        self._before_call(name)
        try:
            result = func(*args, **kwargs)
        except Exception:
            self._record_failure(name)
            raise
        self._record_success(name)
        return result

    def _before_call(self, name: str) -> None:
        with self._lock:
            if self.state is not BreakerState.OPEN:
                return
            if self._clock() - self.opened_at < self.timeout:
                raise CircuitBreakerOpen(f"circuit open for {name}")
            self.state = BreakerState.HALF_OPEN
            self._probe_successes = 0
        logger.info("circuit_breaker_half_open", function=name)

    def _record_success(self, name: str) -> None:
        with self._lock:
            if self.state is BreakerState.HALF_OPEN:
                self._probe_successes += 1
                if self._probe_successes < self.half_open_attempts:
                    return
                self.state = BreakerState.CLOSED
                closed = True
            else:
                closed = False
            self.failure_count = 0
        if closed:
            logger.info("circuit_breaker_closed", function=name)

    def _record_failure(self, name: str) -> None:
        with self._lock:
            self.failure_count += 1
            trip = (
                self.state is BreakerState.HALF_OPEN
                or self.failure_count >= self.failure_threshold
            )
            if trip:
                self.state = BreakerState.OPEN
                self.opened_at = self._clock()
        if trip:
            logger.warning("circuit_breaker_opened", function=name, failures=self.failure_count)
