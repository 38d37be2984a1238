"""Client name hints for records that carry no explicit name."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from caselink.domain.model import RecordingRecord
from caselink.domain.transcripts import decode_transcript

from .normalize import normalize_name

if TYPE_CHECKING:
    from collections.abc import Callable

    from caselink.domain.model import OrphanRecord
    from caselink.domain.transcripts import TranscriptPayload

    from .index import IdentityIndex


def scan_for_client_name(text: str | None, index: IdentityIndex) -> str | None:
    """Full-name index key found as a whole word in ``text``.

    Returns the first matching key only when every match points at the same
    client; hits for several clients are ambiguous and yield ``None``.
    """

    haystack = normalize_name(text)
    if not haystack:
        return None
    first_key: str | None = None
    client_ids: set[str] = set()
    for key in index.full_name_keys():
        if re.search(rf"(?<!\w){re.escape(key)}(?!\w)", haystack) is None:
            continue
        client_id = index.lookup(key)
        if client_id is None:
            continue
        client_ids.add(client_id)
        if first_key is None:
            first_key = key
    if len(client_ids) != 1:
        return None
    return first_key


def derive_name_hint(
    record: OrphanRecord,
    index: IdentityIndex,
    *,
    decoder: Callable[[object], TranscriptPayload] = decode_transcript,
) -> str:
    """Explicit hint, else a client name found in a recording's title or transcript."""

    if record.client_name_hint.strip():
        return record.client_name_hint
    if not isinstance(record, RecordingRecord):
        return ""
    payload = decoder(record.transcript)
    transcript_text = "\n".join(
        part for part in (payload.text, payload.sections_text) if part
    )
    for text in (record.title, transcript_text):
        hint = scan_for_client_name(text, index)
        if hint:
            return hint
    return ""
