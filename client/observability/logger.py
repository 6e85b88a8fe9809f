"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout by default
- No buffering, no batching
- No side effects beyond logging

On top of the raw sink this module provides the level-aware `Logger`
surface used by the connection layer. Callers may supply any object with
debug/warning/error methods (a stdlib `logging.Logger` works).
"""

from __future__ import annotations

import json
import sys
import time
from enum import Enum
from typing import Any, Mapping, Callable, Protocol, runtime_checkable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests, swappable in later phases)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    This function:
    - Serializes to JSON
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash the client
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


# ------------------------------------------------------------------
# Levels
# ------------------------------------------------------------------

class LogLevel(str, Enum):
    """
    Verbosity threshold, least verbose first.

    A record is written when its level is at or below the threshold.
    DISABLE suppresses everything.
    """

    DISABLE = "disable"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    @classmethod
    def parse(cls, value: str | LogLevel) -> LogLevel:
        """Accepts enum members or case-insensitive names ("warning" == WARN)."""
        if isinstance(value, LogLevel):
            return value
        name = value.strip().lower()
        if name == "warning":
            name = "warn"
        return cls(name)


_LEVEL_ORDER: tuple[LogLevel, ...] = (
    LogLevel.DISABLE,
    LogLevel.ERROR,
    LogLevel.WARN,
    LogLevel.INFO,
    LogLevel.DEBUG,
)


# ------------------------------------------------------------------
# Logger surface
# ------------------------------------------------------------------

@runtime_checkable
class Logger(Protocol):
    def debug(self, msg: str, *args: Any) -> None: ...
    def warning(self, msg: str, *args: Any) -> None: ...
    def error(self, msg: str, *args: Any) -> None: ...


class JsonlLogger:
    """
    Default logger: every record becomes one `log_event` line.

    Args are %-interpolated into the message like stdlib logging. If the
    message has no matching placeholders they are kept under "details".
    The first exception among args is also rendered under "error".
    """

    def __init__(self, name: str) -> None:
        self._name = name

    def debug(self, msg: str, *args: Any) -> None:
        self._write("debug", msg, args)

    def warning(self, msg: str, *args: Any) -> None:
        self._write("warn", msg, args)

    def error(self, msg: str, *args: Any) -> None:
        self._write("error", msg, args)

    def _write(self, level: str, msg: str, args: tuple[Any, ...]) -> None:
        record: dict[str, Any] = {
            "ts_ms": int(time.time() * 1000),
            "level": level,
            "logger": self._name,
            "message": msg,
        }
        if args:
            try:
                record["message"] = msg % args
            except (TypeError, ValueError):
                record["details"] = [repr(a) for a in args]
            errors = [a for a in args if isinstance(a, BaseException)]
            if errors:
                record["error"] = repr(errors[0])
        log_event(record)


class LevelFilteredLogger:
    """
    Forwards records to `logger` only when allowed by `level`.
    """

    def __init__(self, logger: Logger, level: LogLevel | str) -> None:
        self._logger = logger
        self._level = LogLevel.parse(level)

    @property
    def level(self) -> LogLevel:
        return self._level

    def enabled_for(self, level: LogLevel) -> bool:
        if self._level is LogLevel.DISABLE:
            return False
        return level.rank <= self._level.rank

    def debug(self, msg: str, *args: Any) -> None:
        if self.enabled_for(LogLevel.DEBUG):
            self._logger.debug(msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        if self.enabled_for(LogLevel.WARN):
            self._logger.warning(msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        if self.enabled_for(LogLevel.ERROR):
            self._logger.error(msg, *args)
