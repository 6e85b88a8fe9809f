"""
PROTOCOL CONSTANTS
------------------
Single source of truth for values the STT service and client agree on.

Rules:
- If changing a value changes wire behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Package identity
# =============================================================================

PACKAGE_NAME: Final[str] = "skyway-stt-client"
PACKAGE_VERSION: Final[str] = "0.1.0"

# Reported to the server as sdkPlatform / sdkVersion query params
SDK_PLATFORM: Final[str] = "python"

# =============================================================================
# Endpoint
# =============================================================================

API_DOMAIN: Final[str] = "stt-dispatcher.skyway.ntt.com"
API_VERSION: Final[str] = "v1"
WS_PATH: Final[str] = "ws"

WS_SCHEME_SECURE: Final[str] = "wss"
WS_SCHEME_PLAIN: Final[str] = "ws"

# Credential travels as the WebSocket subprotocol: "<prefix>!<token>"
AUTH_SUBPROTOCOL_PREFIX: Final[str] = "SkyWayAuthToken"
AUTH_SUBPROTOCOL_SEPARATOR: Final[str] = "!"

# Inbound frames can be large translation batches
WS_MAX_MESSAGE_BYTES: Final[int] = 2**22

# =============================================================================
# Inbound messages
# =============================================================================

MESSAGE_TYPE_TEXT: Final[str] = "TEXT"

MODE_TRANSCRIPTION: Final[str] = "transcription"
MODE_TRANSLATION: Final[str] = "translation"

# =============================================================================
# Close codes (RFC 6455 + service-private 4xxx range)
# =============================================================================

CLOSE_NORMAL: Final[int] = 1000
CLOSE_ABNORMAL: Final[int] = 1006
CLOSE_MESSAGE_TOO_BIG: Final[int] = 1009
CLOSE_INTERNAL_ERROR: Final[int] = 1011
CLOSE_SERVICE_RESTART: Final[int] = 1012

# Inclusive ranges
CLOSE_RANGE_NORMAL: Final[Tuple[int, int]] = (4000, 4099)
CLOSE_RANGE_REJECTED: Final[Tuple[int, int]] = (4100, 4199)
CLOSE_RANGE_RECONNECT_REQUESTED: Final[Tuple[int, int]] = (4200, 4299)

# Sent by the client when the credential rotates while a connection is open
CLOSE_TOKEN_ROTATED: Final[int] = 4200

# =============================================================================
# Retry policy
# =============================================================================

DEFAULT_MAX_RETRY_ATTEMPTS: Final[int] = 3
RETRY_BACKOFF_BASE: Final[int] = 2
