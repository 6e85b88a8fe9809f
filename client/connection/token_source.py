"""
Credential source contract.

The connection manager never issues or refreshes tokens. It reads the
current token and listens for rotation notifications from whatever owns
the credential (a room/session context in practice).
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class TokenSource(Protocol):
    """
    Narrow capability consumed by ConnectionManager.

    on_token_updated() registers a callback invoked with the new token and
    returns a zero-arg callable that removes the registration.
    """

    @property
    def auth_token(self) -> str: ...

    def on_token_updated(self, callback: Callable[[str], None]) -> Callable[[], None]: ...


class TokenStore:
    """
    In-memory TokenSource.

    Holds the current bearer token and notifies listeners on update().
    Listeners are called in registration order.
    """

    def __init__(self, token: str) -> None:
        self._token = token
        self._listeners: list[Callable[[str], None]] = []

    @property
    def auth_token(self) -> str:
        return self._token

    def update(self, token: str) -> None:
        self._token = token
        for listener in list(self._listeners):
            listener(token)

    def on_token_updated(self, callback: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
