# pylint: disable=missing-module-docstring,missing-function-docstring

from urllib.parse import parse_qs, urlsplit

from config import Endpoint, MemberIdentity
from constants import PACKAGE_VERSION, SDK_PLATFORM
from protocol.handshake import auth_subprotocol, build_url


def test_url_carries_identity_and_sdk_metadata():
    url = build_url(
        Endpoint(domain="stt.example.com"),
        MemberIdentity(
            room_id="room-1",
            room_name="lobby",
            member_id="member-1",
            member_name="alice bob",
        ),
    )
    parts = urlsplit(url)

    assert parts.scheme == "wss"
    assert parts.netloc == "stt.example.com"
    assert parts.path == "/v1/ws"
    assert parse_qs(parts.query) == {
        "roomId": ["room-1"],
        "roomName": ["lobby"],
        "memberId": ["member-1"],
        "memberName": ["alice bob"],
        "sdkPlatform": [SDK_PLATFORM],
        "sdkVersion": [PACKAGE_VERSION],
    }


def test_absent_names_are_omitted():
    url = build_url(
        Endpoint(),
        MemberIdentity(room_id="room-1", member_id="member-1", room_name=""),
    )
    query = urlsplit(url).query

    assert "roomName" not in query
    assert "memberName" not in query


def test_insecure_endpoint_uses_plain_scheme():
    url = build_url(
        Endpoint(domain="localhost:8080", api_version="v2", secure=False),
        MemberIdentity(room_id="r", member_id="m"),
    )

    assert url.startswith("ws://localhost:8080/v2/ws?")


def test_auth_subprotocol_format():
    assert auth_subprotocol("abc.def") == "SkyWayAuthToken!abc.def"
