"""
Reconnect scheduling.

Purpose:
- Track how many reconnects have been attempted since the last Open
- Compute the backoff delay for the next attempt
- Own the single pending reconnect timer

The scheduler never decides *whether* to reconnect (see close_codes.py);
it only answers "is there an attempt left" and runs the timer.
"""
from __future__ import annotations

import asyncio
from typing import Callable


class RetryScheduler:
    """
    Attempt counter + one cancellable timer.

    Semantics:
    - attempts == 0 means no reconnect has been tried since the last Open.
    - schedule() consumes one attempt and starts a timer; when attempts
      are exhausted it returns None and starts nothing.
    - At most one timer is pending; scheduling replaces (cancels) any
      previous timer.
    """

    def __init__(
        self,
        *,
        max_attempts: int,
        get_interval_ms: Callable[[int], float],
    ) -> None:
        self._max_attempts = max_attempts
        self._get_interval_ms = get_interval_ms
        self._attempts = 0
        self._timer: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def exhausted(self) -> bool:
        return self._attempts >= self._max_attempts

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def compute_delay_ms(self, attempt: int) -> float:
        """Delay before reconnect attempt N (1-based)."""
        return max(0.0, float(self._get_interval_ms(attempt)))

    def schedule(self, action: Callable[[], None]) -> float | None:
        """
        Consume one attempt and run `action` after the backoff delay.

        Returns the delay in ms, or None when no attempts remain.
        `action` is invoked synchronously from the timer task.
        """
        if self.exhausted:
            return None

        self._attempts += 1
        delay_ms = self.compute_delay_ms(self._attempts)

        self.cancel()

        async def _retry_task() -> None:
            try:
                await asyncio.sleep(delay_ms / 1000.0)
            except asyncio.CancelledError:
                return
            self._timer = None
            action()

        self._timer = asyncio.create_task(_retry_task())
        return delay_ms

    def reset(self) -> None:
        """Zero the attempt counter (successful Open)."""
        self._attempts = 0

    def cancel(self) -> None:
        """
        Void the pending timer, if any.

        Idempotent: safe to call with nothing pending.
        """
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done():
            timer.cancel()
