from __future__ import annotations

import json

import pytest

from caselink.domain.transcripts import (
    EMPTY_PAYLOAD,
    NoteSection,
    TranscriptFormat,
    TranscriptPayload,
    decode_transcript,
    detect_format,
    encode_transcript,
    remove_sections,
)

PAYLOAD = TranscriptPayload(text="hello", note_sections=(NoteSection(title="A", content="B"),))


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_empty_input_decodes_to_empty_payload(raw: str | None) -> None:
    assert decode_transcript(raw) == EMPTY_PAYLOAD


def test_object_format_round_trips_exactly() -> None:
    assert decode_transcript(encode_transcript(PAYLOAD, TranscriptFormat.OBJECT)) == PAYLOAD


def test_sections_format_round_trips_with_derived_text() -> None:
    decoded = decode_transcript(encode_transcript(PAYLOAD, TranscriptFormat.SECTIONS))

    assert decoded.note_sections == PAYLOAD.note_sections
    assert decoded.text == "B"


def test_text_format_round_trips_text() -> None:
    decoded = decode_transcript(encode_transcript(PAYLOAD, TranscriptFormat.TEXT))

    assert decoded == TranscriptPayload(text="hello")


def test_text_that_looks_like_json_survives_encoding() -> None:
    payload = TranscriptPayload(text="[1, 2]")

    encoded = encode_transcript(payload, TranscriptFormat.TEXT)

    assert decode_transcript(encoded).text == "[1, 2]"


def test_malformed_json_degrades_to_raw_text() -> None:
    raw = '{"transcript": "unterminated'

    assert decode_transcript(raw) == TranscriptPayload(text=raw)


def test_array_elements_fall_back_to_text_and_stringified_values() -> None:
    raw = json.dumps([{"title": "T", "text": "via text"}, "bare", 42, {"title": "Only"}])

    decoded = decode_transcript(raw)

    assert decoded.note_sections == (
        NoteSection(title="T", content="via text"),
        NoteSection(title="", content="bare"),
        NoteSection(title="", content="42"),
        NoteSection(title="Only", content='{"title": "Only"}'),
    )
    assert decoded.text.startswith("via text\n\nbare")


def test_object_accepts_content_spelling_and_stringifies_unknown_objects() -> None:
    assert decode_transcript('{"content": "old"}') == TranscriptPayload(text="old")
    assert decode_transcript('{"other": 1}') == TranscriptPayload(text='{"other": 1}')


def test_scalars_and_already_parsed_values_never_raise() -> None:
    assert decode_transcript("42") == TranscriptPayload(text="42")
    assert decode_transcript('"quoted"') == TranscriptPayload(text="quoted")
    assert decode_transcript({"transcript": "t", "notes": []}) == TranscriptPayload(text="t")
    assert decode_transcript(7) == TranscriptPayload(text="7")


def test_display_text_prefers_richer_sections() -> None:
    payload = TranscriptPayload(
        text="short",
        note_sections=(NoteSection(title="A", content="a much longer section body"),),
    )

    assert payload.display_text == "a much longer section body"
    assert PAYLOAD.display_text == "hello"


def test_detect_format() -> None:
    assert detect_format(None) is None
    assert detect_format("plain words") is TranscriptFormat.TEXT
    assert detect_format("[]") is TranscriptFormat.SECTIONS
    assert detect_format("{}") is TranscriptFormat.OBJECT


def test_remove_sections_matches_titles_loosely() -> None:
    payload = TranscriptPayload(
        text="t",
        note_sections=(
            NoteSection(title="ai  clinical ASSESSMENT", content="x"),
            NoteSection(title="Plan", content="y"),
        ),
    )

    cleaned = remove_sections(payload, ["AI Clinical Assessment"])

    assert cleaned.note_sections == (NoteSection(title="Plan", content="y"),)
    assert remove_sections(cleaned, ["AI Clinical Assessment"]) is cleaned
