"""
STT client facade.

Binds a ConnectionManager to the caller's room member and exposes the two
notifications applications care about (results and errors) plus disposal.

Usage:

    store = TokenStore(token)
    client = STTClient(store, member, ClientOptions(log_level=LogLevel.DEBUG))
    sub = client.on_result_received.add(lambda r: print(r.mode, r.id))
    ...
    client.dispose()
"""

from __future__ import annotations

from typing import Protocol

from config import ClientOptions, MemberIdentity
from connection.errors import STTClientError
from connection.events import EventChannel
from connection.manager import ConnectionManager, ConnectionState, Connector
from connection.token_source import TokenSource
from protocol.messages import STTResult


class RoomMember(Protocol):
    """Identity of the local member in a joined room."""

    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str | None: ...

    @property
    def room_id(self) -> str: ...

    @property
    def room_name(self) -> str | None: ...


def identity_of(member: RoomMember) -> MemberIdentity:
    return MemberIdentity(
        room_id=member.room_id,
        room_name=member.room_name,
        member_id=member.id,
        member_name=member.name,
    )


class STTClient:
    """
    Receives transcription/translation results for a room member.

    Connects on construction (inside a running event loop) and keeps the
    connection alive until dispose().
    """

    def __init__(
        self,
        token_source: TokenSource,
        member: RoomMember,
        options: ClientOptions | None = None,
        *,
        connector: Connector | None = None,
    ) -> None:
        self._disposed = False
        config = (options or ClientOptions()).to_config(identity_of(member))

        self._manager = ConnectionManager(config, token_source, connector=connector)

        self.on_result_received: EventChannel[STTResult] = EventChannel(
            "on_result_received", logger=self._manager.logger
        )
        self.on_error: EventChannel[STTClientError] = EventChannel(
            "on_error", logger=self._manager.logger
        )

        self._manager.result_received.add(self.on_result_received.emit)
        self._manager.error.add(self.on_error.emit)

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def state(self) -> ConnectionState:
        return self._manager.state

    def dispose(self) -> None:
        """Close the connection and drop all subscribers. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self.on_result_received.clear()
        self.on_error.clear()
        self._manager.dispose()
