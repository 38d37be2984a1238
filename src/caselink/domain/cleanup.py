"""Write-time transcript cleanup: strip generated note sections from recordings."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from caselink.domain.errors import StoreError
from caselink.domain.model import RecordKind
from caselink.domain.reconciliation.contracts import (
    TRANSCRIPT_FIELD,
    OutcomeStatus,
    PlannedChange,
    Reason,
    ReconciliationReport,
    RecordOutcome,
)
from caselink.domain.transcripts import (
    TranscriptFormat,
    decode_transcript,
    detect_format,
    encode_transcript,
    remove_sections,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from caselink.domain.model import RecordingRow
    from caselink.domain.ports import RecordStore

log = logging.getLogger(__name__)


def plan_transcript_cleanup(
    recording: RecordingRow, titles: Iterable[str]
) -> RecordOutcome:
    """Outcome with a planned canonical rewrite when excluded sections are present."""

    outcome = RecordOutcome(record_id=recording.id, kind=RecordKind.RECORDING)
    payload = decode_transcript(recording.transcript)
    cleaned = remove_sections(payload, titles)
    if cleaned is payload:
        outcome.reasons.append(str(Reason.UNCHANGED))
        return outcome
    if _is_sections_format(recording.transcript):
        # Array transcripts derive their text from the sections, removed ones included.
        cleaned = replace(cleaned, text=cleaned.sections_text)
    outcome.changes.append(
        PlannedChange(
            record_id=recording.id,
            kind=RecordKind.RECORDING,
            field=TRANSCRIPT_FIELD,
            value=encode_transcript(cleaned, TranscriptFormat.OBJECT),
            only_if_null=False,
        )
    )
    outcome.status = OutcomeStatus.FIXED
    return outcome


def _is_sections_format(raw: object) -> bool:
    if isinstance(raw, list):
        return True
    return isinstance(raw, str) and detect_format(raw) is TranscriptFormat.SECTIONS


def cleanup_transcripts(
    recordings: Iterable[RecordingRow],
    store: RecordStore,
    titles: Iterable[str],
    *,
    dry_run: bool = False,
    should_stop: Callable[[], bool] | None = None,
) -> ReconciliationReport:
    """Remove note sections titled ``titles`` from every recording transcript.

    Only transcripts that actually contained such a section are rewritten, so a
    second run is a no-op.
    """

    excluded = tuple(titles)
    report = ReconciliationReport(dry_run=dry_run)
    for recording in recordings:
        if should_stop is not None and should_stop():
            report.aborted = True
            break
        outcome = plan_transcript_cleanup(recording, excluded)
        for change in outcome.changes:
            if dry_run:
                outcome.applied.append(change)
                continue
            try:
                store.update_field(
                    change.kind,
                    change.record_id,
                    change.field,
                    change.value,
                    only_if_null=False,
                )
            except StoreError as exc:
                log.warning("Transcript cleanup failed for recording %s: %s", recording.id, exc)
                outcome.errors.append(f"{Reason.STORE_ERROR}: {exc}")
                outcome.status = OutcomeStatus.ERRORED
                continue
            outcome.applied.append(change)
        report.record(outcome)
    log.info(
        "Transcript cleanup%s: rewritten=%d unchanged=%d errors=%d",
        " (dry run)" if dry_run else "",
        report.fixed_count,
        report.skipped_count,
        len(report.errors),
    )
    return report
