from __future__ import annotations

import json
from dataclasses import dataclass, field

import pytest

from caselink.app import (
    build_client_feed,
    cleanup_recording_transcripts,
    reconcile_from_backup,
    reconcile_live_orphans,
    restore_missing_sessions,
)
from caselink.config import ReconciliationConfig
from caselink.domain.errors import BackupFormatError, PreconditionError
from caselink.domain.model import (
    NoteRecord,
    NoteRow,
    OrphanRecord,
    RecordingRow,
    RecordKind,
    SessionOccurrence,
)
from caselink.domain.reconciliation import OutcomeStatus, PlannedChange, Reason, RecordOutcome
from caselink.domain.transcripts import decode_transcript
from tests.helpers.records import (
    FakeRecordStore,
    at,
    client,
    note,
    recording,
    session,
    session_record,
)

CONFIG = ReconciliationConfig(batch_workers=1)


@dataclass
class FakeBackupSource:
    snapshots: dict[RecordKind, list[OrphanRecord]] = field(
        default_factory=dict[RecordKind, list[OrphanRecord]]
    )
    sessions: list[SessionOccurrence] = field(default_factory=list[SessionOccurrence])
    broken: bool = False

    def read_snapshot(self, kind: RecordKind) -> list[OrphanRecord]:
        if self.broken:
            raise BackupFormatError("snapshot must be a JSON list")
        return list(self.snapshots.get(kind, []))

    def read_sessions(self) -> list[SessionOccurrence]:
        if self.broken:
            raise BackupFormatError("snapshot must be a JSON list")
        return list(self.sessions)


def _practice() -> FakeRecordStore:
    store = FakeRecordStore(
        clients=[
            client("c1", "Lilli D Schillaci", owner_id="o1"),
            client("c2", "Anna Silva", owner_id="o1"),
        ]
    )
    store.add(
        session_record("s1", "Lilly Schillaci", timestamp=at(10)),
        note("n1", "Lilly Schillaci", timestamp=at(11)),
    )
    return store


def _changes(changes: list[PlannedChange]) -> set[tuple[object, ...]]:
    return {(change.kind, change.record_id, change.field, change.value) for change in changes}


def test_live_reconcile_links_notes_to_sessions_repaired_earlier_in_the_run() -> None:
    store = _practice()

    report = reconcile_live_orphans(store=store, config=CONFIG)

    assert report.fixed_count == 2
    assert store.sessions["s1"].client_id == "c1"
    linked = store.record(RecordKind.NOTE, "n1")
    assert isinstance(linked, NoteRecord)
    assert (linked.client_id, linked.session_id) == ("c1", "s1")


def test_live_dry_run_plans_the_same_changes_without_writing() -> None:
    store = _practice()

    report = reconcile_live_orphans(store=store, dry_run=True, config=CONFIG)

    assert store.writes == []
    assert report.dry_run is True
    assert _changes(report.changes) == {
        (RecordKind.SESSION, "s1", "client_id", "c1"),
        (RecordKind.NOTE, "n1", "client_id", "c1"),
        (RecordKind.NOTE, "n1", "session_id", "s1"),
    }


def test_live_reconcile_restricts_to_requested_kinds() -> None:
    store = _practice()
    seen: list[RecordOutcome] = []

    report = reconcile_live_orphans(
        store=store, kinds=[RecordKind.NOTE], config=CONFIG, observer=seen.append
    )

    assert [outcome.kind for outcome in seen] == [RecordKind.NOTE]
    assert store.sessions["s1"].client_id is None
    assert str(Reason.NO_SESSION_IN_WINDOW) in report.outcomes[0].reasons


def test_live_reconcile_aborts_when_clients_cannot_be_read() -> None:
    store = _practice()
    store.fail_reads = True

    with pytest.raises(PreconditionError, match="client list"):
        reconcile_live_orphans(store=store, config=CONFIG)


def test_backup_reconcile_uses_snapshot_hints_and_skips_missing_rows() -> None:
    store = FakeRecordStore(clients=[client("c1", "Lilli D Schillaci")])
    store.add_sessions(session("s1", "c1", at(10)))
    store.add(note("n1"))
    backup = FakeBackupSource(
        snapshots={
            RecordKind.NOTE: [
                note("n1", "Lilly Schillaci", timestamp=at(11)),
                note("n9", "Anna Silva", timestamp=at(11)),
            ]
        }
    )
    seen: list[RecordOutcome] = []

    report = reconcile_from_backup(
        store=store,
        backup=backup,
        kinds=[RecordKind.NOTE],
        config=CONFIG,
        observer=seen.append,
    )

    repaired = store.record(RecordKind.NOTE, "n1")
    assert isinstance(repaired, NoteRecord)
    assert (repaired.client_id, repaired.session_id) == ("c1", "s1")
    assert report.fixed_count == 1
    assert report.skipped_count == 1
    missing = next(outcome for outcome in seen if outcome.record_id == "n9")
    assert missing.status is OutcomeStatus.SKIPPED
    assert missing.reasons == [str(Reason.NOT_IN_STORE)]


def test_backup_reconcile_keeps_live_client_without_force() -> None:
    store = FakeRecordStore(
        clients=[client("c1", "Lilli D Schillaci"), client("c2", "Anna Silva")]
    )
    store.add(note("n1", client_id="c2", session_id="s7"))
    backup = FakeBackupSource(snapshots={RecordKind.NOTE: [note("n1", "Lilly Schillaci")]})

    report = reconcile_from_backup(
        store=store, backup=backup, kinds=[RecordKind.NOTE], config=CONFIG
    )

    assert store.writes == []
    assert report.outcomes[0].reasons == [str(Reason.CLIENT_MISMATCH)]


def test_backup_reconcile_aborts_on_unreadable_snapshot() -> None:
    with pytest.raises(PreconditionError, match="snapshot"):
        reconcile_from_backup(
            store=_practice(), backup=FakeBackupSource(broken=True), config=CONFIG
        )


def _restore_fixture() -> tuple[FakeRecordStore, FakeBackupSource]:
    store = FakeRecordStore(
        clients=[client("c1", "Lilli D Schillaci"), client("c2", "Anna Silva")]
    )
    store.add(session_record("s1", client_id="c1", timestamp=at(10)))
    backup = FakeBackupSource(
        sessions=[
            session("s1", None, at(10), client_name="Lilly Schillaci"),
            session("s2", None, at(12), client_name="Anna Silva", owner_id="o1"),
            session("s3", None, at(13), client_name="Nobody Known"),
        ]
    )
    return store, backup


def test_restore_inserts_only_missing_resolvable_sessions() -> None:
    store, backup = _restore_fixture()

    report = restore_missing_sessions(store=store, backup=backup)

    assert [item.id for item in store.upserted] == ["s2"]
    assert store.upserted[0].client_id == "c2"
    assert store.upserted[0].owner_id == "o1"
    assert report.fixed_count == 1
    statuses = {outcome.record_id: outcome for outcome in report.outcomes}
    assert statuses["s1"].reasons == [str(Reason.ALREADY_PRESENT)]
    assert statuses["s3"].status is OutcomeStatus.UNRESOLVED
    assert [item.record_id for item in report.unresolved] == ["s3"]


def test_restore_dry_run_writes_nothing() -> None:
    store, backup = _restore_fixture()

    report = restore_missing_sessions(store=store, backup=backup, dry_run=True)

    assert store.upserted == []
    assert report.fixed_count == 1
    assert _changes(report.changes) == {(RecordKind.SESSION, "s2", "client_id", "c2")}


def test_restore_reports_upsert_failures() -> None:
    store, backup = _restore_fixture()
    store.fail_upsert = True

    report = restore_missing_sessions(store=store, backup=backup)

    assert report.fixed_count == 0
    assert [(error.record_id, error.reason) for error in report.errors] == [
        ("s2", "store_error: upsert rejected")
    ]


def _sectioned_transcript() -> str:
    return json.dumps(
        {
            "transcript": "spoken words",
            "notes": [
                {"title": "AI-Structured Notes", "content": "generated"},
                {"title": "Plan", "content": "follow up"},
            ],
        }
    )


def _cleanup_store() -> FakeRecordStore:
    store = FakeRecordStore(
        recordings=[
            RecordingRow(
                id="r1",
                client_id="c1",
                session_id=None,
                transcript=_sectioned_transcript(),
                created_at=at(10),
            )
        ]
    )
    store.add(recording("r1", client_id="c1", transcript=_sectioned_transcript()))
    return store


def test_cleanup_uses_configured_titles() -> None:
    store = _cleanup_store()

    report = cleanup_recording_transcripts(store=store, config=CONFIG)

    assert report.fixed_count == 1
    [(kind, record_id, field_name, value)] = store.writes
    assert (kind, record_id, field_name) == (RecordKind.RECORDING, "r1", "transcript")
    assert [section.title for section in decode_transcript(value).note_sections] == ["Plan"]


def test_cleanup_titles_override_config() -> None:
    store = _cleanup_store()

    report = cleanup_recording_transcripts(store=store, titles=["Missing"], config=CONFIG)

    assert report.fixed_count == 0
    assert store.writes == []


def test_client_feed_is_scoped_and_named() -> None:
    store = FakeRecordStore(clients=[client("c1", "Lilli D Schillaci", owner_id="o1")])
    store.add_sessions(
        session("s1", "c1", at(10), owner_id="o1"),
        session("s2", "c1", at(14), owner_id="o1", notes="check-in"),
        session("s3", "c1", at(15), owner_id="o2"),
    )
    store.notes = [
        NoteRow(
            id="n1",
            client_id="c1",
            session_id="s1",
            content="progress",
            occurred_at=at(10),
        )
    ]

    result = build_client_feed("o1", store=store)

    assert [entry.id for entry in result.entries] == ["session-s2", "n1"]
    assert {entry.client_name for entry in result.entries} == {"Lilli D Schillaci"}
    assert result.suppressed == 1
