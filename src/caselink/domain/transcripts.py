"""Transcript normalizer: every historical transcript wire format, one decoder.

Stored recording transcripts come in three generations:

1. a bare string (plain text, or a JSON string literal)
2. a JSON array of ``{"title", "content" | "text"}`` sections
3. a JSON object ``{"transcript": str, "notes": [...]}`` (``content`` is accepted
   as an older spelling of ``transcript``)

``decode_transcript`` is total: anything it cannot interpret degrades to the raw
string as ``text`` with no sections. Read paths (feed) and write paths
(cleanup) both go through it; a new format means one new branch here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

SECTION_SEPARATOR = "\n\n"


class TranscriptFormat(StrEnum):
    TEXT = "text"
    SECTIONS = "sections"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class NoteSection:
    title: str
    content: str


@dataclass(frozen=True, slots=True)
class TranscriptPayload:
    """Canonical decoded transcript."""

    text: str = ""
    note_sections: tuple[NoteSection, ...] = ()

    @property
    def sections_text(self) -> str:
        return SECTION_SEPARATOR.join(
            section.content for section in self.note_sections if section.content
        )

    @property
    def display_text(self) -> str:
        """``text`` or the joined section contents when those are richer."""

        joined = self.sections_text
        if len(joined) > len(self.text):
            return joined
        return self.text

    def is_empty(self) -> bool:
        return not self.text and not self.note_sections


EMPTY_PAYLOAD = TranscriptPayload()


def decode_transcript(raw: object) -> TranscriptPayload:
    """Decode a stored transcript value into a ``TranscriptPayload``. Never raises."""

    if raw is None:
        return EMPTY_PAYLOAD
    if isinstance(raw, list | dict):
        # Already-parsed JSON column values (hosted stores return jsonb as JSON).
        try:
            return _from_parsed(raw, raw_text=None)
        except (TypeError, ValueError, RecursionError):
            return TranscriptPayload(text=str(raw))
    if not isinstance(raw, str):
        return TranscriptPayload(text=str(raw))
    if not raw.strip():
        return EMPTY_PAYLOAD
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return TranscriptPayload(text=raw)
    try:
        return _from_parsed(parsed, raw_text=raw)
    except (TypeError, ValueError, RecursionError):
        return TranscriptPayload(text=raw)


def _from_parsed(parsed: object, *, raw_text: str | None) -> TranscriptPayload:
    if isinstance(parsed, str):
        return TranscriptPayload(text=parsed)
    if isinstance(parsed, list):
        sections = tuple(_section(element) for element in parsed)
        payload = TranscriptPayload(note_sections=sections)
        return replace(payload, text=payload.sections_text)
    if isinstance(parsed, dict):
        has_text = "transcript" in parsed or "content" in parsed
        notes = parsed.get("notes")
        has_notes = isinstance(notes, list)
        if not has_text and not has_notes:
            return TranscriptPayload(text=_dump(parsed))
        text_value = parsed.get("transcript")
        if text_value is None:
            text_value = parsed.get("content")
        sections = tuple(_section(element) for element in notes) if has_notes else ()
        return TranscriptPayload(text=_as_text(text_value), note_sections=sections)
    # Numbers, booleans and null carry no structure.
    return TranscriptPayload(text=raw_text if raw_text is not None else _dump(parsed))


def _section(element: object) -> NoteSection:
    if isinstance(element, str):
        return NoteSection(title="", content=element)
    if isinstance(element, dict):
        title = _as_text(element.get("title"))
        for key in ("content", "text"):
            value = element.get(key)
            if value is not None:
                return NoteSection(title=title, content=_as_text(value))
        return NoteSection(title=title, content=_dump(element))
    return NoteSection(title="", content=_dump(element))


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return _dump(value)


def _dump(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


def detect_format(raw: str | None) -> TranscriptFormat | None:
    """Wire format of ``raw``; ``None`` for empty input."""

    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return TranscriptFormat.TEXT
    if isinstance(parsed, list):
        return TranscriptFormat.SECTIONS
    if isinstance(parsed, dict):
        return TranscriptFormat.OBJECT
    return TranscriptFormat.TEXT


def encode_transcript(
    payload: TranscriptPayload,
    fmt: TranscriptFormat = TranscriptFormat.OBJECT,
) -> str:
    """Serialize ``payload``; the object form is the canonical write format.

    The text form drops sections, the sections form drops text (it is derived
    from section contents on decode).
    """

    sections = [
        {"title": section.title, "content": section.content} for section in payload.note_sections
    ]
    if fmt is TranscriptFormat.TEXT:
        # Plain text that happens to be valid JSON must be quoted to survive decoding.
        if _parses(payload.text):
            return _dump(payload.text)
        return payload.text
    if fmt is TranscriptFormat.SECTIONS:
        return _dump(sections)
    return _dump({"transcript": payload.text, "notes": sections})


def _parses(raw: str) -> bool:
    try:
        json.loads(raw)
    except (ValueError, RecursionError):
        return False
    return True


def _title_key(title: str) -> str:
    return " ".join(title.split()).casefold()


def remove_sections(payload: TranscriptPayload, titles: Iterable[str]) -> TranscriptPayload:
    """Drop note sections whose title matches one of ``titles`` (case-insensitive)."""

    excluded = {_title_key(title) for title in titles}
    kept = tuple(
        section for section in payload.note_sections if _title_key(section.title) not in excluded
    )
    if len(kept) == len(payload.note_sections):
        return payload
    return replace(payload, note_sections=kept)
