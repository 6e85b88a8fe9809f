"""
Close-code classification.

Maps the code a WebSocket closed with to a reconnect decision.

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from constants import (
    CLOSE_ABNORMAL,
    CLOSE_MESSAGE_TOO_BIG,
    CLOSE_NORMAL,
    CLOSE_RANGE_NORMAL,
    CLOSE_RANGE_RECONNECT_REQUESTED,
    CLOSE_RANGE_REJECTED,
    CLOSE_SERVICE_RESTART,
)


class CloseSeverity(str, Enum):
    """
    How a close should be reported.

    NORMAL:
        Expected termination (client/server shut down cleanly, idle
        timeout, service restart). Never surfaced as an error.

    NON_NORMAL:
        Server rejected or ended the session for a known reason
        (bad credential, message too big, reconnect requested).
        Surfaced as an error when no reconnect follows.

    UNEXPECTED:
        Any code outside the known table. Retried optimistically,
        with a warning.
    """

    NORMAL = "normal"
    NON_NORMAL = "non-normal"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class CloseOutcome:
    """Policy decision for a single close code."""
    code: int
    should_reconnect: bool
    severity: CloseSeverity


def _in_range(code: int, bounds: tuple[int, int]) -> bool:
    low, high = bounds
    return low <= code <= high


def classify(code: int) -> CloseOutcome:
    """
    Classify a close code.

    Evaluated in priority order:
    - 1000, 4000-4099 : normal      (no reconnect)
    - 1009, 4100-4199 : non-normal  (no reconnect)
    - 4200-4299       : non-normal  (reconnect)
    - 1006, 1012      : normal      (reconnect; server timeout / restart)
    - anything else   : unexpected  (reconnect)
    """
    if code == CLOSE_NORMAL or _in_range(code, CLOSE_RANGE_NORMAL):
        return CloseOutcome(code, should_reconnect=False, severity=CloseSeverity.NORMAL)

    if code == CLOSE_MESSAGE_TOO_BIG or _in_range(code, CLOSE_RANGE_REJECTED):
        return CloseOutcome(code, should_reconnect=False, severity=CloseSeverity.NON_NORMAL)

    if _in_range(code, CLOSE_RANGE_RECONNECT_REQUESTED):
        return CloseOutcome(code, should_reconnect=True, severity=CloseSeverity.NON_NORMAL)

    if code in (CLOSE_ABNORMAL, CLOSE_SERVICE_RESTART):
        return CloseOutcome(code, should_reconnect=True, severity=CloseSeverity.NORMAL)

    return CloseOutcome(code, should_reconnect=True, severity=CloseSeverity.UNEXPECTED)
