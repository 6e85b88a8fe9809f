"""
Connection target and authentication data for the STT WebSocket.

URL:
    {ws|wss}://{domain}/{api_version}/ws?roomId=..&roomName=..&memberId=..
        &memberName=..&sdkPlatform=..&sdkVersion=..

    roomName / memberName are omitted entirely when absent or empty.

Auth:
    The bearer token is offered as the single WebSocket subprotocol
    "SkyWayAuthToken!<token>". It is never sent as a message.
"""

from __future__ import annotations

import urllib.parse

from config import Endpoint, MemberIdentity
from constants import (
    AUTH_SUBPROTOCOL_PREFIX,
    AUTH_SUBPROTOCOL_SEPARATOR,
    PACKAGE_VERSION,
    SDK_PLATFORM,
    WS_PATH,
    WS_SCHEME_PLAIN,
    WS_SCHEME_SECURE,
)


def build_url(endpoint: Endpoint, identity: MemberIdentity) -> str:
    params: dict[str, str] = {"roomId": identity.room_id}
    if identity.room_name:
        params["roomName"] = identity.room_name
    params["memberId"] = identity.member_id
    if identity.member_name:
        params["memberName"] = identity.member_name
    params["sdkPlatform"] = SDK_PLATFORM
    params["sdkVersion"] = PACKAGE_VERSION

    scheme = WS_SCHEME_SECURE if endpoint.secure else WS_SCHEME_PLAIN
    qs = urllib.parse.urlencode(params)
    return f"{scheme}://{endpoint.domain}/{endpoint.api_version}/{WS_PATH}?{qs}"


def auth_subprotocol(token: str) -> str:
    return f"{AUTH_SUBPROTOCOL_PREFIX}{AUTH_SUBPROTOCOL_SEPARATOR}{token}"
