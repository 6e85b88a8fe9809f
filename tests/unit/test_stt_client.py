# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from config import ClientOptions
from connection.errors import STTClientError
from connection.manager import ConnectionState
from connection.token_source import TokenStore
from protocol.messages import STTResult
from stt_client import STTClient

from fakes import FakeConnector, RecordingLogger, settle, wait_until


@dataclass(frozen=True)
class FakeMember:
    id: str = "member-1"
    name: str | None = "alice"
    room_id: str = "room-1"
    room_name: str | None = None


def quiet_options(**overrides) -> ClientOptions:
    base = {"logger": RecordingLogger(), "get_retry_interval_ms": lambda n: 0}
    base.update(overrides)
    return ClientOptions(**base)


def test_identity_comes_from_member():
    connector = FakeConnector()

    async def scenario() -> None:
        client = STTClient(TokenStore("t"), FakeMember(), quiet_options(domain="stt.local"), connector=connector)
        await wait_until(lambda: client.state is ConnectionState.OPEN)
        client.dispose()

    asyncio.run(scenario())

    parts = urlsplit(connector.calls[0].url)
    query = parse_qs(parts.query)
    assert parts.netloc == "stt.local"
    assert query["memberId"] == ["member-1"]
    assert query["memberName"] == ["alice"]
    assert query["roomId"] == ["room-1"]
    assert "roomName" not in query


def test_results_and_errors_are_forwarded():
    connector = FakeConnector(behaviors=["open", 4100])
    results: list[STTResult] = []
    errors: list[STTClientError] = []

    async def scenario() -> None:
        client = STTClient(TokenStore("t"), FakeMember(), quiet_options(), connector=connector)
        client.on_result_received.add(results.append)
        client.on_error.add(errors.append)
        await wait_until(lambda: client.state is ConnectionState.OPEN)

        connector.sockets[0].push(json.dumps({
            "type": "TEXT",
            "data": {
                "mode": "Transcription",
                "id": "res-1",
                "text": "hi",
                "timestamp": "2024-01-01T00:00:00Z",
                "roomId": "room-1",
                "memberId": "member-1",
            },
        }))
        await wait_until(lambda: len(results) == 1)

        # server asks for a reconnect, then rejects the next session
        connector.sockets[0].server_close(4201)
        await wait_until(lambda: len(errors) == 1)
        client.dispose()

    asyncio.run(scenario())

    assert results[0].mode == "transcription"
    assert "non-normal code 4100" in str(errors[0])


def test_unsubscribe_stops_delivery():
    connector = FakeConnector()
    results: list[STTResult] = []

    async def scenario() -> None:
        client = STTClient(TokenStore("t"), FakeMember(), quiet_options(), connector=connector)
        sub = client.on_result_received.add(results.append)
        await wait_until(lambda: client.state is ConnectionState.OPEN)

        sub.cancel()
        sub.cancel()
        connector.sockets[0].push(json.dumps({
            "type": "TEXT",
            "data": {
                "mode": "transcription", "id": "x", "text": "hi", "timestamp": 0,
                "roomId": "room-1", "memberId": "member-1",
            },
        }))
        await settle()
        client.dispose()

    asyncio.run(scenario())

    assert results == []


def test_dispose_is_idempotent_and_reported():
    connector = FakeConnector()
    store = TokenStore("t")

    async def scenario() -> None:
        client = STTClient(store, FakeMember(), quiet_options(), connector=connector)
        client.on_result_received.add(lambda r: None)
        await wait_until(lambda: client.state is ConnectionState.OPEN)

        assert client.disposed is False
        client.dispose()
        client.dispose()

        assert client.disposed is True
        assert client.state is ConnectionState.DISPOSED
        assert len(client.on_result_received) == 0
        assert len(client.on_error) == 0
        assert store.listener_count == 0
        await settle()

    asyncio.run(scenario())

    assert connector.sockets[0].closed_with == [1000]
