"""
Errors delivered to `error` subscribers.

These are passed as values to notification handlers; the client never
raises them at the caller.
"""

from __future__ import annotations


class STTClientError(Exception):
    """Base class for client errors surfaced to subscribers."""


class RetryExhaustedError(STTClientError):
    """
    Every reconnect attempt failed.

    Emitted once per exhausted retry sequence. The client stays alive but
    makes no further automatic attempts.
    """

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Failed to connect to server. All retry attempts failed (attempts={attempts})"
        )
        self.attempts = attempts


class ConnectionRejectedError(STTClientError):
    """
    The server closed the connection with a non-normal code that must not
    be retried (e.g. 1009, 4100-4199).
    """

    def __init__(self, code: int) -> None:
        super().__init__(
            f"Failed to connect to server. WebSocket closed with non-normal code {code}."
        )
        self.code = code
