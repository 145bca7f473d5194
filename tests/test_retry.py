"""
Tests for retry and circuit breaker helpers.

These tests verify:
- Which errors are retried
- Backoff attempts and exhaustion
- Circuit breaker open / half-open / closed transitions
"""

import asyncio

import httpx
import pytest

from jake.integrations.maps import MapsAPIError
from jake.utils.retry import (
    CircuitBreaker,
    CircuitOpenError,
    RetryConfig,
    is_retryable_error,
    retry_with_backoff,
)


NO_DELAY = RetryConfig(max_retries=2, initial_delay=0.0)


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://maps.example/api")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"{status}", request=request, response=response)


class Flaky:
    """Coroutine factory failing `failures` times before returning 'ok'."""

    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


# =============================================================================
# RETRYABLE ERRORS
# =============================================================================

class TestRetryableErrors:
    """is_retryable_error()"""

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504, 522, 524])
    def test_retryable_status(self, status):
        assert is_retryable_error(_status_error(status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_client_errors_fail_fast(self, status):
        assert not is_retryable_error(_status_error(status))

    def test_status_code_attribute(self):
        assert is_retryable_error(MapsAPIError("unavailable", status_code=503))
        assert not is_retryable_error(MapsAPIError("denied", status_code=403))

    def test_transport_errors(self):
        assert is_retryable_error(httpx.ConnectError("refused"))
        assert is_retryable_error(asyncio.TimeoutError())
        assert is_retryable_error(ConnectionResetError())

    def test_programming_errors(self):
        assert not is_retryable_error(ValueError("bad"))

    def test_delay_grows_and_is_capped(self):
        config = RetryConfig(initial_delay=1.0, max_delay=5.0)
        assert [config.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


# =============================================================================
# BACKOFF
# =============================================================================

class TestRetryWithBackoff:
    """retry_with_backoff()"""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        fn = Flaky(2, httpx.ConnectError("refused"))
        assert await retry_with_backoff(fn, NO_DELAY) == "ok"
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_last_error(self):
        fn = Flaky(10, httpx.ConnectError("refused"))
        with pytest.raises(httpx.ConnectError):
            await retry_with_backoff(fn, NO_DELAY)
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_non_retryable_error_raises_immediately(self):
        fn = Flaky(1, ValueError("bad input"))
        with pytest.raises(ValueError):
            await retry_with_backoff(fn, NO_DELAY)
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_custom_should_retry(self):
        fn = Flaky(1, ValueError("flaky"))
        result = await retry_with_backoff(fn, NO_DELAY, should_retry=lambda e: True)
        assert result == "ok"
        assert fn.calls == 2


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def _fail():
    raise httpx.ConnectError("down")


async def _succeed():
    return "ok"


class TestCircuitBreaker:
    """CircuitBreaker"""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker("maps", failure_threshold=3, reset_timeout=30.0, clock=clock)

    async def _trip(self, breaker):
        for _ in range(breaker.failure_threshold):
            with pytest.raises(httpx.ConnectError):
                await breaker.execute(_fail)

    @pytest.mark.asyncio
    async def test_opens_after_threshold(self, breaker):
        await self._trip(breaker)
        assert breaker.state == CircuitBreaker.OPEN

        called = []

        async def tracked():
            called.append(True)
            return "ok"

        with pytest.raises(CircuitOpenError):
            await breaker.execute(tracked)
        assert called == []

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self, breaker):
        with pytest.raises(httpx.ConnectError):
            await breaker.execute(_fail)
        assert await breaker.execute(_succeed) == "ok"
        assert breaker.failures == 0
        assert breaker.state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_trial_closes_on_success(self, breaker, clock):
        await self._trip(breaker)
        clock.now += 30.0

        assert await breaker.execute(_succeed) == "ok"
        assert breaker.state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_trial_reopens_on_failure(self, breaker, clock):
        await self._trip(breaker)
        clock.now += 31.0

        with pytest.raises(httpx.ConnectError):
            await breaker.execute(_fail)
        assert breaker.state == CircuitBreaker.OPEN

        clock.now += 1.0
        with pytest.raises(CircuitOpenError):
            await breaker.execute(_succeed)

    @pytest.mark.asyncio
    async def test_half_open_admits_one_concurrent_trial(self, breaker, clock):
        await self._trip(breaker)
        clock.now += 30.0

        release = asyncio.Event()
        calls = []

        async def slow():
            calls.append(True)
            await release.wait()
            return "ok"

        tasks = [asyncio.create_task(breaker.execute(slow)) for _ in range(5)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert len(calls) == 1
        assert results.count("ok") == 1
        assert sum(isinstance(r, CircuitOpenError) for r in results) == 4
        assert breaker.state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_failed_trial_frees_the_slot(self, breaker, clock):
        await self._trip(breaker)
        clock.now += 30.0

        with pytest.raises(httpx.ConnectError):
            await breaker.execute(_fail)

        clock.now += 30.0
        assert await breaker.execute(_succeed) == "ok"
        assert breaker.state == CircuitBreaker.CLOSED

    @pytest.mark.asyncio
    async def test_breakers_are_independent(self, clock):
        maps = CircuitBreaker("maps", failure_threshold=1, clock=clock)
        claude = CircuitBreaker("claude", failure_threshold=1, clock=clock)

        with pytest.raises(httpx.ConnectError):
            await maps.execute(_fail)

        assert maps.state == CircuitBreaker.OPEN
        assert claude.state == CircuitBreaker.CLOSED
        assert await claude.execute(_succeed) == "ok"

    def test_get_state_and_reset(self, breaker):
        breaker.failures = 2
        breaker.reset()
        state = breaker.get_state()
        assert state["name"] == "maps"
        assert state["state"] == "closed"
        assert state["failures"] == 0
