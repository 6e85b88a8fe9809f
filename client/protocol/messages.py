# client/protocol/messages.py
"""
Inbound message normalization.

Server → Client (JSON text frame):

    {
        "type": "TEXT",
        "data": {
            "mode": "transcription" | "translation",   (any case)
            "id": str,
            "timestamp": str (ISO-8601) | number,
            "roomId": str,
            "memberId": str,
            "roomName": str,            (optional)
            "memberName": str,          (optional)
            "text": str,                (transcription)
            "texts": [{"language": str, "text": str}, ...]   (translation)
        }
    }

Usage example:

    try:
        result = normalize(raw)
    except MessageParseError as e:
        logger.error("Failed to parse message from server: %s", e)
    else:
        if result is not None:
            emit(result)

Messages whose type is not TEXT are not errors: normalize() returns None.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Mapping, Union

from constants import MESSAGE_TYPE_TEXT, MODE_TRANSCRIPTION, MODE_TRANSLATION


# -------------------------
# Exceptions
# -------------------------

class MessageParseError(Exception):
    """
    Raised when a TEXT message cannot be turned into a result.

    Covers invalid JSON, unknown modes, missing fields and unparseable
    timestamps. The frame must be dropped; the connection stays up.
    """


# -------------------------
# Result types
# -------------------------

# Textual timestamps become datetimes; numeric ones pass through unchanged
Timestamp = Union[datetime, int, float]


@dataclass(frozen=True)
class TranslatedText:
    language: str
    text: str


@dataclass(frozen=True)
class TranscriptionResult:
    """Speech converted to text in the speaker's language."""
    id: str
    text: str
    timestamp: Timestamp
    room_id: str
    member_id: str
    room_name: str | None = None
    member_name: str | None = None
    mode: Literal["transcription"] = "transcription"


@dataclass(frozen=True)
class TranslationResult:
    """Speech translated into one or more languages, in server order."""
    id: str
    texts: tuple[TranslatedText, ...]
    timestamp: Timestamp
    room_id: str
    member_id: str
    room_name: str | None = None
    member_name: str | None = None
    mode: Literal["translation"] = "translation"


STTResult = Union[TranscriptionResult, TranslationResult]


# -------------------------
# Field helpers
# -------------------------

def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MessageParseError(f"field {key!r} must be a string, got {value!r}")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MessageParseError(f"field {key!r} must be a string, got {value!r}")
    return value


def parse_timestamp(value: Any) -> Timestamp:
    """
    Textual timestamps are ISO-8601 (a trailing "Z" means UTC).
    Numeric timestamps are returned unchanged.
    """
    if isinstance(value, bool):
        raise MessageParseError(f"invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as e:
            raise MessageParseError(f"invalid timestamp: {value!r}") from e
    raise MessageParseError(f"invalid timestamp: {value!r}")


def _parse_texts(value: Any) -> tuple[TranslatedText, ...]:
    if not isinstance(value, list):
        raise MessageParseError(f"field 'texts' must be a list, got {value!r}")
    texts: list[TranslatedText] = []
    for item in value:
        if not isinstance(item, Mapping):
            raise MessageParseError(f"translation entry must be an object, got {item!r}")
        texts.append(
            TranslatedText(
                language=_require_str(item, "language"),
                text=_require_str(item, "text"),
            )
        )
    return tuple(texts)


# -------------------------
# Normalization
# -------------------------

def decode_frame(raw: str | bytes) -> Any:
    """JSON-decode a text or binary frame."""
    try:
        if isinstance(raw, (bytes, bytearray, memoryview)):
            raw = bytes(raw).decode("utf-8")
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MessageParseError(f"invalid JSON frame: {e}") from e


def normalize_payload(data: Mapping[str, Any]) -> STTResult:
    """Build a typed result from the `data` object of a TEXT message."""
    raw_mode = data.get("mode")
    if not isinstance(raw_mode, str):
        raise MessageParseError(f"field 'mode' must be a string, got {raw_mode!r}")
    mode = raw_mode.lower()

    common: dict[str, Any] = {
        "id": _require_str(data, "id"),
        "timestamp": parse_timestamp(data.get("timestamp")),
        "room_id": _require_str(data, "roomId"),
        "member_id": _require_str(data, "memberId"),
        "room_name": _optional_str(data, "roomName"),
        "member_name": _optional_str(data, "memberName"),
    }

    if mode == MODE_TRANSCRIPTION:
        return TranscriptionResult(text=_require_str(data, "text"), **common)

    if mode == MODE_TRANSLATION:
        return TranslationResult(texts=_parse_texts(data.get("texts")), **common)

    raise MessageParseError(f"unsupported mode: {raw_mode!r}")


def normalize(raw: str | bytes) -> STTResult | None:
    """
    Parse one inbound frame.

    Returns:
        The typed result, or None when the message kind is not TEXT
        (or carries no data).

    Raises:
        MessageParseError for malformed frames.
    """
    msg = decode_frame(raw)
    if not isinstance(msg, Mapping):
        raise MessageParseError(f"frame must be a JSON object, got {type(msg).__name__}")

    if msg.get("type") != MESSAGE_TYPE_TEXT:
        return None

    data = msg.get("data")
    if data is None:
        return None
    if not isinstance(data, Mapping):
        raise MessageParseError(f"field 'data' must be an object, got {data!r}")

    return normalize_payload(data)
