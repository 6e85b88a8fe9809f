"""
Connection manager for the STT WebSocket.

Core model:
- One manager == one logical connection, reconnected across failures.
- Connects immediately on construction (requires a running event loop).
- Receive-only: after the handshake nothing is sent.
- Inbound frames -> protocol.messages.normalize -> result_received.
- Close -> close_codes.classify -> reconnect (RetryScheduler) or report.
- Credential rotation closes the live socket with 4200 so the normal
  reconnect path picks up the new token.

Concurrency:
- Every transition is a synchronous handler running on the event loop
  (socket task callbacks, timer callbacks, token callbacks), so two
  transitions never interleave.
- Each connection attempt owns a _Connection record. Callbacks from a
  record that is no longer current (superseded or disposed) are ignored.

Design constraints:
- Manager never blocks the caller and never raises at it.
- At most one live socket and one pending reconnect timer.
- At most one terminal error per exhausted retry sequence.
- Nothing is emitted after dispose().
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol, Sequence

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed
from websockets.typing import Subprotocol

from config import ClientConfig
from connection.close_codes import CloseOutcome, CloseSeverity, classify
from connection.errors import (
    ConnectionRejectedError,
    RetryExhaustedError,
    STTClientError,
)
from connection.events import EventChannel
from connection.retry import RetryScheduler
from connection.token_source import TokenSource
from constants import (
    CLOSE_ABNORMAL,
    CLOSE_INTERNAL_ERROR,
    CLOSE_NORMAL,
    CLOSE_TOKEN_ROTATED,
    PACKAGE_NAME,
    WS_MAX_MESSAGE_BYTES,
)
from observability.logger import JsonlLogger, LevelFilteredLogger, Logger
from protocol.handshake import auth_subprotocol, build_url
from protocol.messages import MessageParseError, STTResult, normalize


# =============================================================================
# Transport seam
# =============================================================================

class SocketLike(Protocol):
    """
    The subset of websockets' ClientConnection the manager relies on.
    """

    close_code: int | None
    close_reason: str | None

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    async def close(self, code: int = ..., reason: str = ...) -> None: ...


Connector = Callable[..., Awaitable[SocketLike]]


def _default_connector(
    url: str,
    *,
    subprotocols: Sequence[str],
    max_size: int,
) -> Awaitable[SocketLike]:
    return ws_connect(
        url,
        subprotocols=[Subprotocol(p) for p in subprotocols],
        max_size=max_size,
    )


async def _close_quietly(socket: SocketLike, code: int) -> None:
    try:
        await socket.close(code)
    except Exception:  # pylint: disable=broad-exception-caught
        pass


def _discard_handshake(handshake: asyncio.Future[SocketLike]) -> None:
    """
    Drop a handshake whose attempt was abandoned.

    If it already produced a socket (or still does after cancellation),
    that socket is closed normally instead of being leaked.
    """

    def close_result(fut: asyncio.Future[SocketLike]) -> None:
        if fut.cancelled() or fut.exception() is not None:
            return
        asyncio.ensure_future(_close_quietly(fut.result(), CLOSE_NORMAL))

    if handshake.done():
        close_result(handshake)
    else:
        handshake.cancel()
        handshake.add_done_callback(close_result)


# =============================================================================
# State
# =============================================================================

class ConnectionState(str, Enum):
    """
    IDLE:
        No socket. Either waiting on a reconnect timer or left quiet after
        a normal closure.
    CONNECTING:
        Handshake in flight.
    OPEN:
        Handshake done; frames flowing.
    CLOSED:
        Terminal failure reported (retries exhausted or rejected). Only a
        credential rotation starts a new attempt.
    DISPOSED:
        Permanently inert.
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    DISPOSED = "DISPOSED"


@dataclass(eq=False)
class _Connection:
    """
    Mutable bookkeeping for one connection attempt.

    Owned exclusively by ConnectionManager; never handed out.
    """
    url: str
    subprotocol: str
    task: asyncio.Task[None] | None = None
    socket: SocketLike | None = None
    requested_close_code: int | None = None
    close_task: asyncio.Task[None] | None = None

    def request_close(self, code: int) -> None:
        """Close the socket with `code` (first request wins)."""
        if self.requested_close_code is None:
            self.requested_close_code = code
        if self.socket is None or self.close_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Event loop already finished; the socket went down with it
            return
        self.close_task = loop.create_task(
            _close_quietly(self.socket, self.requested_close_code)
        )

    def abort(self) -> None:
        """Drop the attempt: cancel the handshake or close the socket normally."""
        if self.socket is not None:
            self.request_close(CLOSE_NORMAL)
        elif self.task is not None and not self.task.done():
            self.task.cancel()


# =============================================================================
# ConnectionManager
# =============================================================================

class ConnectionManager:
    """
    Owns the STT WebSocket and its reconnect policy.

    Notifications (subscribe with `.add(handler)`; returns a Subscription):
    - opened:           None
    - result_received:  STTResult
    - error:            STTClientError
    - closed:           CloseOutcome
    """

    def __init__(
        self,
        config: ClientConfig,
        token_source: TokenSource,
        *,
        connector: Connector | None = None,
    ) -> None:
        self._config = config
        base_logger = config.logger if config.logger is not None else JsonlLogger(PACKAGE_NAME)
        self._logger: Logger = LevelFilteredLogger(base_logger, config.log_level)
        self._connector: Connector = connector or _default_connector

        self._token_source = token_source
        self._token = token_source.auth_token

        self._retry = RetryScheduler(
            max_attempts=config.max_retry_attempts,
            get_interval_ms=config.get_retry_interval_ms,
        )

        self._state = ConnectionState.IDLE
        self._conn: _Connection | None = None

        self.opened: EventChannel[None] = EventChannel("opened", logger=self._logger)
        self.result_received: EventChannel[STTResult] = EventChannel(
            "result_received", logger=self._logger
        )
        self.error: EventChannel[STTClientError] = EventChannel("error", logger=self._logger)
        self.closed: EventChannel[CloseOutcome] = EventChannel("closed", logger=self._logger)

        self._remove_token_listener = token_source.on_token_updated(self._on_token_updated)

        self._connect()

    # -------------------------------------------------------------------------
    # Public surface
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._state is ConnectionState.DISPOSED

    @property
    def retry_attempts(self) -> int:
        """Reconnects attempted since the last successful Open."""
        return self._retry.attempts

    @property
    def retry_pending(self) -> bool:
        return self._retry.pending

    @property
    def logger(self) -> Logger:
        return self._logger

    def dispose(self) -> None:
        """
        Tear everything down synchronously.

        - cancel the pending reconnect timer
        - close the live socket with 1000 (or cancel the handshake)
        - stop listening for credential rotation
        - drop every subscriber

        Idempotent. Every step is a no-op on an absent resource.
        """
        if self._state is ConnectionState.DISPOSED:
            return
        self._state = ConnectionState.DISPOSED

        self._retry.cancel()
        self._remove_token_listener()

        conn = self._conn
        self._conn = None
        if conn is not None:
            conn.abort()

        self.opened.clear()
        self.result_received.clear()
        self.error.clear()
        self.closed.clear()

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _connect(self) -> None:
        """IDLE/CLOSED -> CONNECTING."""
        if self._state is ConnectionState.DISPOSED:
            return

        conn = _Connection(
            url=build_url(self._config.endpoint, self._config.identity),
            subprotocol=auth_subprotocol(self._token),
        )
        self._conn = conn
        self._state = ConnectionState.CONNECTING
        conn.task = asyncio.create_task(self._run(conn))

    def _handle_open(self, conn: _Connection) -> None:
        """CONNECTING -> OPEN."""
        if conn is not self._conn:
            return
        self._state = ConnectionState.OPEN
        self._retry.reset()
        self._logger.debug("WebSocket connected to server.")
        self.opened.emit(None)

    def _handle_message(self, conn: _Connection, raw: str | bytes) -> None:
        if conn is not self._conn:
            return
        try:
            result = normalize(raw)
        except MessageParseError as e:
            self._logger.error("Failed to parse message from server: %s", e)
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._logger.error("Failed to handle message from server: %r", e)
            return
        if result is not None:
            self.result_received.emit(result)

    def _handle_close(self, conn: _Connection, code: int, reason: str | None) -> None:
        """OPEN/CONNECTING -> CLOSED, then policy."""
        if conn is not self._conn:
            return
        self._conn = None
        self._state = ConnectionState.CLOSED

        self._logger.debug("WebSocket closed: code=%d reason=%r", code, reason or "")

        outcome = classify(code)
        self.closed.emit(outcome)

        # A closed-subscriber may have disposed us
        if self._state is not ConnectionState.CLOSED:
            return

        self._apply_close_policy(outcome)

    def _apply_close_policy(self, outcome: CloseOutcome) -> None:
        if outcome.severity is CloseSeverity.UNEXPECTED:
            self._logger.warning(
                "Failed to connect to server. WebSocket closed with unexpected code %d.",
                outcome.code,
            )

        if outcome.should_reconnect:
            delay_ms = self._retry.schedule(self._connect)
            if delay_ms is not None:
                self._state = ConnectionState.IDLE
                self._logger.debug(
                    "Retrying connection in %dms... (attempts=%d)",
                    int(delay_ms),
                    self._retry.attempts,
                )
                return

            err = RetryExhaustedError(self._retry.max_attempts)
            self._logger.error(str(err))
            self.error.emit(err)
            return

        if outcome.severity is CloseSeverity.NON_NORMAL:
            rejected = ConnectionRejectedError(outcome.code)
            self._logger.error(str(rejected))
            self.error.emit(rejected)
            return

        self._state = ConnectionState.IDLE

    def _on_token_updated(self, _token: str) -> None:
        """
        Credential rotation.

        OPEN:        close with 4200; the reconnect path uses the new token.
        CONNECTING:  drop the in-flight handshake and start over.
        otherwise:   connect now (a terminal CLOSED gets a fresh retry budget).
        """
        if self._state is ConnectionState.DISPOSED:
            return

        self._token = self._token_source.auth_token
        conn = self._conn

        if self._state is ConnectionState.OPEN and conn is not None:
            self._logger.debug("Credential rotated; closing with %d to reconnect.", CLOSE_TOKEN_ROTATED)
            conn.request_close(CLOSE_TOKEN_ROTATED)
            return

        if self._state is ConnectionState.CONNECTING and conn is not None:
            self._conn = None
            conn.abort()
        else:
            self._retry.cancel()
            if self._state is ConnectionState.CLOSED:
                self._retry.reset()

        self._connect()

    # -------------------------------------------------------------------------
    # Socket task
    # -------------------------------------------------------------------------

    async def _run(self, conn: _Connection) -> None:
        """
        Handshake, then receive until the socket closes.

        A failed handshake is reported as an abnormal closure (1006).
        A broken receive loop closes the socket with 1011 and is reported
        as 1006, so it goes through the reconnect path.
        """
        # Own task so a socket finished just before cancellation is not lost
        handshake: asyncio.Future[SocketLike] = asyncio.ensure_future(
            self._connector(
                conn.url,
                subprotocols=[conn.subprotocol],
                max_size=WS_MAX_MESSAGE_BYTES,
            )
        )
        try:
            socket = await handshake
        except asyncio.CancelledError:
            _discard_handshake(handshake)
            raise
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._logger.error("WebSocket error event: %r", e)
            self._handle_close(conn, CLOSE_ABNORMAL, str(e))
            return

        if conn is not self._conn:
            await _close_quietly(socket, CLOSE_NORMAL)
            return

        conn.socket = socket
        self._handle_open(conn)

        try:
            async for raw in socket:
                self._handle_message(conn, raw)
        except ConnectionClosed:
            pass
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._logger.error("WebSocket error event: %r", e)
            await _close_quietly(socket, CLOSE_INTERNAL_ERROR)
            self._handle_close(conn, CLOSE_ABNORMAL, str(e))
            return

        self._handle_close(conn, self._close_code_for(conn, socket), socket.close_reason)

    @staticmethod
    def _close_code_for(conn: _Connection, socket: Any) -> int:
        if conn.requested_close_code is not None:
            return conn.requested_close_code
        code = socket.close_code
        return code if code is not None else CLOSE_ABNORMAL
