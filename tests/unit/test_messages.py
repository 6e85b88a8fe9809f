# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from datetime import datetime, timezone
from typing import Any

import pytest

from protocol.messages import (
    MessageParseError,
    TranscriptionResult,
    TranslatedText,
    TranslationResult,
    normalize,
)


def make_frame(data: dict[str, Any] | None, msg_type: str = "TEXT") -> str:
    msg: dict[str, Any] = {"type": msg_type}
    if data is not None:
        msg["data"] = data
    return json.dumps(msg)


def transcription_data(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "mode": "transcription",
        "id": "res-1",
        "text": "hello",
        "timestamp": "2024-01-01T00:00:00Z",
        "roomId": "room-1",
        "memberId": "member-1",
    }
    data.update(overrides)
    return data


# ---------------------------------------------------------------------
# Accepted messages
# ---------------------------------------------------------------------

def test_transcription_is_normalized():
    result = normalize(make_frame(transcription_data(roomName="lobby", memberName="alice")))

    assert result == TranscriptionResult(
        id="res-1",
        text="hello",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        room_id="room-1",
        member_id="member-1",
        room_name="lobby",
        member_name="alice",
    )
    assert result.mode == "transcription"


def test_translation_mode_is_lowercased_and_texts_keep_order():
    data = transcription_data(
        mode="TRANSLATION",
        texts=[
            {"language": "en", "text": "hello"},
            {"language": "ja", "text": "こんにちは"},
        ],
    )
    del data["text"]

    result = normalize(make_frame(data))

    assert isinstance(result, TranslationResult)
    assert result.mode == "translation"
    assert result.texts == (
        TranslatedText(language="en", text="hello"),
        TranslatedText(language="ja", text="こんにちは"),
    )


def test_textual_timestamp_becomes_that_instant():
    result = normalize(make_frame(transcription_data()))

    assert result is not None
    assert result.timestamp == datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


def test_numeric_timestamp_passes_through():
    result = normalize(make_frame(transcription_data(timestamp=1704067200000)))

    assert result is not None
    assert result.timestamp == 1704067200000


def test_optional_names_default_to_none():
    result = normalize(make_frame(transcription_data()))

    assert result is not None
    assert result.room_name is None
    assert result.member_name is None


def test_binary_frame_is_decoded():
    raw = make_frame(transcription_data()).encode("utf-8")

    assert isinstance(normalize(raw), TranscriptionResult)


# ---------------------------------------------------------------------
# Ignored messages
# ---------------------------------------------------------------------

@pytest.mark.parametrize("msg_type", ["PING", "text", "STATUS", ""])
def test_unsupported_type_is_ignored(msg_type: str):
    assert normalize(make_frame(transcription_data(), msg_type=msg_type)) is None


def test_text_without_data_is_ignored():
    assert normalize(make_frame(None)) is None


# ---------------------------------------------------------------------
# Malformed messages
# ---------------------------------------------------------------------

def test_invalid_json_raises():
    with pytest.raises(MessageParseError):
        normalize("{not json")


def test_deeply_nested_frame_raises():
    with pytest.raises(MessageParseError):
        normalize("[" * 200000)


def test_non_object_frame_raises():
    with pytest.raises(MessageParseError):
        normalize("[1, 2, 3]")


def test_text_with_empty_data_raises():
    with pytest.raises(MessageParseError):
        normalize(make_frame({}))


def test_unknown_mode_raises():
    with pytest.raises(MessageParseError):
        normalize(make_frame(transcription_data(mode="summary")))


@pytest.mark.parametrize("missing", ["id", "roomId", "memberId", "text", "mode"])
def test_missing_required_field_raises(missing: str):
    data = transcription_data()
    del data[missing]

    with pytest.raises(MessageParseError):
        normalize(make_frame(data))


def test_translation_without_texts_raises():
    with pytest.raises(MessageParseError):
        normalize(make_frame(transcription_data(mode="translation")))


def test_unparseable_timestamp_raises():
    with pytest.raises(MessageParseError):
        normalize(make_frame(transcription_data(timestamp="yesterday")))
