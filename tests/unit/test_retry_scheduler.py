# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

from config import default_retry_interval_ms
from connection.retry import RetryScheduler


# ---------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------

def test_default_backoff_is_exponential_with_jitter():
    for attempt in (1, 2, 3, 4):
        delay = default_retry_interval_ms(attempt)
        assert 2**attempt * 1000 <= delay < (2**attempt + 1) * 1000


def test_compute_delay_uses_configured_function():
    retry = RetryScheduler(max_attempts=3, get_interval_ms=lambda n: n * 10)

    assert retry.compute_delay_ms(1) == 10
    assert retry.compute_delay_ms(3) == 30


def test_negative_delay_is_clamped():
    retry = RetryScheduler(max_attempts=3, get_interval_ms=lambda n: -5)

    assert retry.compute_delay_ms(1) == 0.0


# ---------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------

def test_schedule_runs_action_after_delay():
    fired: list[int] = []

    async def scenario() -> None:
        retry = RetryScheduler(max_attempts=3, get_interval_ms=lambda n: 5)
        delay = retry.schedule(lambda: fired.append(retry.attempts))

        assert delay == 5
        assert retry.pending is True
        await asyncio.sleep(0.05)
        assert retry.pending is False

    asyncio.run(scenario())

    assert fired == [1]


def test_schedule_returns_none_when_exhausted():
    async def scenario() -> None:
        retry = RetryScheduler(max_attempts=2, get_interval_ms=lambda n: 0)

        assert retry.schedule(lambda: None) is not None
        assert retry.schedule(lambda: None) is not None
        assert retry.exhausted is True
        assert retry.schedule(lambda: None) is None
        assert retry.attempts == 2

    asyncio.run(scenario())


def test_zero_attempts_is_immediately_exhausted():
    retry = RetryScheduler(max_attempts=0, get_interval_ms=lambda n: 0)

    assert retry.exhausted is True
    assert retry.schedule(lambda: None) is None


def test_reset_zeroes_attempts():
    async def scenario() -> None:
        retry = RetryScheduler(max_attempts=3, get_interval_ms=lambda n: 0)
        retry.schedule(lambda: None)
        retry.schedule(lambda: None)
        retry.reset()

        assert retry.attempts == 0
        assert retry.exhausted is False
        retry.cancel()

    asyncio.run(scenario())


def test_cancel_voids_pending_timer_and_is_idempotent():
    fired: list[bool] = []

    async def scenario() -> None:
        retry = RetryScheduler(max_attempts=3, get_interval_ms=lambda n: 10)
        retry.schedule(lambda: fired.append(True))
        retry.cancel()
        retry.cancel()

        assert retry.pending is False
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert fired == []


def test_at_most_one_timer_pending():
    fired: list[str] = []

    async def scenario() -> None:
        retry = RetryScheduler(max_attempts=3, get_interval_ms=lambda n: 10)
        retry.schedule(lambda: fired.append("first"))
        retry.schedule(lambda: fired.append("second"))
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert fired == ["second"]
