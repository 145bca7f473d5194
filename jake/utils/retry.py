"""
Retry and Circuit Breaker Helpers

Used by the outbound clients (Maps API, Claude) to ride out transient failures:
- Exponential backoff for network errors and retryable HTTP status codes
- Circuit breaker to stop hammering a service that keeps failing

Each client owns its own CircuitBreaker instance; there is no shared global
breaker state.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (408, 429, 500, 502, 503, 504, 522, 524)

    def delay_for(self, attempt: int) -> float:
        """Backoff delay before retry number `attempt` (1-based)."""
        delay = self.initial_delay * (self.exponential_base ** (attempt - 1))
        return min(delay, self.max_delay)


def is_retryable_error(error: BaseException, config: Optional[RetryConfig] = None) -> bool:
    """
    Decide whether an error is worth retrying.

    Transport-level failures (timeouts, connection resets, DNS) are retried.
    HTTP errors are retried only for the configured status codes, so a 404 or
    a 401 fails fast.
    """
    config = config or RetryConfig()

    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in config.retryable_status_codes

    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        return status_code in config.retryable_status_codes

    if isinstance(error, httpx.TransportError):
        return True

    return isinstance(error, (asyncio.TimeoutError, ConnectionError))


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    operation: str = "request",
) -> T:
    """
    Call `fn` until it succeeds, retrying retryable errors with backoff.

    Args:
        fn: Zero-argument coroutine factory (called once per attempt)
        config: Retry configuration
        should_retry: Override for the retryable-error check
        operation: Label used in log lines

    Returns:
        Whatever `fn` returns on the first successful attempt

    Raises:
        The last error once attempts are exhausted, or immediately for
        non-retryable errors.
    """
    config = config or RetryConfig()
    should_retry = should_retry or (lambda e: is_retryable_error(e, config))

    last_exception: Optional[BaseException] = None

    for attempt in range(1, config.max_retries + 2):
        try:
            return await fn()
        except Exception as e:
            last_exception = e

            if attempt > config.max_retries or not should_retry(e):
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"{operation} failed (attempt {attempt}/{config.max_retries + 1}): {e}. "
                f"Retrying in {delay}s..."
            )
            await asyncio.sleep(delay)

    raise last_exception


class CircuitOpenError(Exception):
    """Raised when a call is refused because the circuit is open."""


class CircuitBreaker:
    """
    Circuit breaker guarding one external service.

    States:
    - closed: calls pass through, failures are counted
    - open: calls are refused until reset_timeout has elapsed
    - half-open: one trial call at a time, others are refused; success
      closes the circuit, failure reopens it
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock

        self.state = self.CLOSED
        self.failures = 0
        self.last_failure_time = 0.0
        self._trial_in_flight = False

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run `fn` through the breaker.

        Raises:
            CircuitOpenError: circuit is open, or a half-open trial call
                is already in flight
        """
        if self.state == self.OPEN:
            if self._clock() - self.last_failure_time >= self.reset_timeout:
                self.state = self.HALF_OPEN
                logger.info(f"[CircuitBreaker:{self.name}] Transitioning to half-open state")
            else:
                raise CircuitOpenError(
                    f"Circuit '{self.name}' is open. Service temporarily unavailable."
                )

        # No await between the state check and claiming the trial slot
        is_trial = self.state == self.HALF_OPEN
        if is_trial:
            if self._trial_in_flight:
                raise CircuitOpenError(
                    f"Circuit '{self.name}' is half-open with a trial call in flight."
                )
            self._trial_in_flight = True

        try:
            result = await fn()
        except Exception:
            self._record_failure()
            raise
        finally:
            if is_trial:
                self._trial_in_flight = False

        if self.state == self.HALF_OPEN:
            logger.info(f"[CircuitBreaker:{self.name}] Circuit closed after successful call")
        self.state = self.CLOSED
        self.failures = 0
        return result

    def _record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self._clock()

        if self.state == self.HALF_OPEN or self.failures >= self.failure_threshold:
            if self.state != self.OPEN:
                logger.error(
                    f"[CircuitBreaker:{self.name}] Circuit opened after {self.failures} failures"
                )
            self.state = self.OPEN

    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "failures": self.failures,
            "last_failure_time": self.last_failure_time,
        }

    def reset(self) -> None:
        self.state = self.CLOSED
        self.failures = 0
        self.last_failure_time = 0.0
        self._trial_in_flight = False
