"""
Client configuration.

Responsibilities:
- Describe where to connect and who is connecting
- Read environment variables for deployment overrides
- Provide typed, immutable config objects

Non-responsibilities:
- No connection logic
- No protocol constants (see constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from typing import Callable

from constants import (
    API_DOMAIN,
    API_VERSION,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    RETRY_BACKOFF_BASE,
)
from observability.logger import LogLevel, Logger


def default_retry_interval_ms(attempt: int) -> float:
    """
    Exponential backoff with jitter: (2^attempt + random[0, 1)) * 1000.

    Overridable via ClientConfig.get_retry_interval_ms; any callable mapping
    an attempt number (1-based) to a delay in milliseconds is accepted.
    """
    return (RETRY_BACKOFF_BASE ** attempt + random.random()) * 1000


@dataclass(frozen=True)
class Endpoint:
    """Target service location."""

    domain: str = API_DOMAIN
    api_version: str = API_VERSION
    secure: bool = True


@dataclass(frozen=True)
class MemberIdentity:
    """
    Room/member the connection is opened on behalf of.

    Names are optional and omitted from the connection URL when absent.
    """

    room_id: str
    member_id: str
    room_name: str | None = None
    member_name: str | None = None


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable connection manager configuration.

    Captured once at construction; the credential is NOT part of it
    (it rotates and is owned by the token source).
    """

    identity: MemberIdentity
    endpoint: Endpoint = field(default_factory=Endpoint)

    max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS
    get_retry_interval_ms: Callable[[int], float] = default_retry_interval_ms

    # None -> JsonlLogger
    logger: Logger | None = None
    log_level: LogLevel = LogLevel.WARN

    def __post_init__(self) -> None:
        if self.max_retry_attempts < 0:
            raise ValueError(
                f"max_retry_attempts must be >= 0, got {self.max_retry_attempts}"
            )


@dataclass(frozen=True)
class ClientOptions:
    """
    Caller-visible options for STTClient.

    Every field is optional; unset fields fall back to ClientConfig defaults.
    """

    domain: str | None = None
    secure: bool | None = None
    logger: Logger | None = None
    log_level: LogLevel | None = None
    max_retry_attempts: int | None = None
    get_retry_interval_ms: Callable[[int], float] | None = None

    def to_config(self, identity: MemberIdentity) -> ClientConfig:
        endpoint = Endpoint(
            domain=self.domain if self.domain is not None else API_DOMAIN,
            secure=self.secure if self.secure is not None else True,
        )
        return ClientConfig(
            identity=identity,
            endpoint=endpoint,
            max_retry_attempts=(
                self.max_retry_attempts if self.max_retry_attempts is not None
                else DEFAULT_MAX_RETRY_ATTEMPTS
            ),
            get_retry_interval_ms=(
                self.get_retry_interval_ms or default_retry_interval_ms
            ),
            logger=self.logger,
            log_level=self.log_level if self.log_level is not None else LogLevel.WARN,
        )

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> ClientOptions:
        """
        Load options from environment variables.

        STT_API_DOMAIN, STT_SECURE ("0" disables TLS), STT_LOG_LEVEL,
        STT_MAX_RETRY_ATTEMPTS. Unset variables leave the field unset.

        Raises:
            ValueError if a variable is set to an unparseable value.
        """
        secure_raw = os.environ.get("STT_SECURE")
        level_raw = os.environ.get("STT_LOG_LEVEL")
        retries_raw = os.environ.get("STT_MAX_RETRY_ATTEMPTS")

        return ClientOptions(
            domain=os.environ.get("STT_API_DOMAIN") or None,
            secure=None if secure_raw is None else secure_raw != "0",
            log_level=None if level_raw is None else LogLevel.parse(level_raw),
            max_retry_attempts=None if retries_raw is None else int(retries_raw),
        )
