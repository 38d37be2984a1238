"""Application orchestration entry points.

Each service wires configured adapters to the pure domain stages. Failing to
load the client list, candidate sessions, orphan list or a snapshot aborts the
run with ``PreconditionError``; everything per record ends up in the report.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from caselink.adapters.backup import JsonBackupSource
from caselink.adapters.postgrest import PostgrestRecordStore
from caselink.adapters.sqlalchemy import SqlAlchemyRecordStore, is_started, startup
from caselink.config import (
    get_hosted_store_config,
    get_reconciliation_config,
    get_storage_config,
    get_store_backend,
)
from caselink.domain.cleanup import cleanup_transcripts
from caselink.domain.errors import BackupFormatError, PreconditionError, StoreError
from caselink.domain.feed import FeedResult, build_feed
from caselink.domain.model import (
    RECONCILE_ORDER,
    NoteRecord,
    RecordingRecord,
    RecordKind,
    current_session_id,
)
from caselink.domain.reconciliation import (
    CLIENT_ID_FIELD,
    OutcomeStatus,
    PlannedChange,
    Reason,
    ReconciliationReport,
    RecordOutcome,
    build_index,
    reconcile,
    resolve_name,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from caselink.config import ReconciliationConfig, StoreBackend
    from caselink.domain.model import OrphanRecord, SessionOccurrence
    from caselink.domain.ports import BackupSource, PracticeStore
    from caselink.domain.reconciliation import IdentityIndex
    from caselink.domain.reconciliation.engine import OutcomeObserver, StopSignal

log = getLogger(__name__)


def build_record_store(
    *,
    backend: StoreBackend | None = None,
    config: ReconciliationConfig | None = None,
) -> PracticeStore:
    """Record store for the configured backend (SQLite/SQLAlchemy by default)."""

    selected = backend or get_store_backend()
    if selected == "postgrest":
        reconciliation = config or get_reconciliation_config()
        return PostgrestRecordStore(
            config=get_hosted_store_config(),
            batch_workers=reconciliation.batch_workers,
        )
    if not is_started():
        startup()
    return SqlAlchemyRecordStore()


def build_backup_source(directory: Path | None = None) -> JsonBackupSource:
    return JsonBackupSource(directory or get_storage_config().backup_dir())


def _load[T](what: str, loader: Callable[[], T]) -> T:
    try:
        return loader()
    except (StoreError, BackupFormatError) as exc:
        log.error("Could not load %s: %s", what, exc)  # noqa: TRY400
        raise PreconditionError(f"Could not load {what}: {exc}") from exc


def _ordered(kinds: Iterable[RecordKind] | None) -> list[RecordKind]:
    if kinds is None:
        return list(RECONCILE_ORDER)
    wanted = set(kinds)
    return [kind for kind in RECONCILE_ORDER if kind in wanted]


def _load_index(store: PracticeStore) -> IdentityIndex:
    clients = _load("client list", store.get_clients)
    index = build_index(clients)
    for collision in index.collisions:
        log.info(
            "Name variant %r kept for client %s, dropped for client %s",
            collision.variant,
            collision.kept_client_id,
            collision.dropped_client_id,
        )
    log.info("Identity index: %d clients, %d variants", len(index.clients), len(index))
    return index


def _sessions_after(
    report: ReconciliationReport,
    sessions: list[SessionOccurrence],
    store: PracticeStore,
) -> list[SessionOccurrence]:
    """Link candidates once the session pass has run.

    Dry runs overlay the planned client ids; real runs re-read the store.
    """

    if not report.dry_run:
        return _load("sessions", store.get_sessions)
    planned = {
        change.record_id: str(change.value)
        for change in report.changes
        if change.kind is RecordKind.SESSION and change.field == CLIENT_ID_FIELD
    }
    return [
        replace(session, client_id=planned[session.id]) if session.id in planned else session
        for session in sessions
    ]


def _run_kinds(
    store: PracticeStore,
    kinds: Iterable[RecordKind] | None,
    orphans_for: Callable[[RecordKind, ReconciliationReport], list[OrphanRecord]],
    *,
    force: bool,
    dry_run: bool,
    config: ReconciliationConfig | None,
    should_stop: StopSignal | None,
    observer: OutcomeObserver | None,
) -> ReconciliationReport:
    settings = config or get_reconciliation_config()
    index = _load_index(store)
    sessions = _load("sessions", store.get_sessions)
    report = ReconciliationReport(dry_run=dry_run)

    for kind in _ordered(kinds):
        if report.aborted:
            break
        kind_report = ReconciliationReport(dry_run=dry_run)
        orphans = orphans_for(kind, kind_report)
        log.info("Reconciling %d %s records", len(orphans), kind)
        kind_report.extend(
            reconcile(
                orphans,
                index,
                store,
                sessions=sessions,
                force=force,
                dry_run=dry_run,
                window_days=settings.link_window_days,
                batch_workers=settings.batch_workers,
                should_stop=should_stop,
                observer=observer,
            )
        )
        report.extend(kind_report)
        if kind is RecordKind.SESSION and kind_report.changes:
            sessions = _sessions_after(kind_report, sessions, store)
    return report


def reconcile_live_orphans(
    *,
    store: PracticeStore | None = None,
    kinds: Iterable[RecordKind] | None = None,
    force: bool = False,
    dry_run: bool = False,
    config: ReconciliationConfig | None = None,
    should_stop: StopSignal | None = None,
    observer: OutcomeObserver | None = None,
) -> ReconciliationReport:
    """Repair live rows that lost their client and/or session association."""

    effective_store = store or build_record_store(config=config)

    def orphans_for(kind: RecordKind, _report: ReconciliationReport) -> list[OrphanRecord]:
        return _load(f"{kind} orphans", lambda: effective_store.get_orphans(kind))

    report = _run_kinds(
        effective_store,
        kinds,
        orphans_for,
        force=force,
        dry_run=dry_run,
        config=config,
        should_stop=should_stop,
        observer=observer,
    )
    log.info(
        "Finished live reconciliation: fixed=%s, skipped=%s, errors=%s",
        report.fixed_count,
        report.skipped_count,
        len(report.errors),
    )
    return report


def _with_live_associations(snapshot: OrphanRecord, live: OrphanRecord) -> OrphanRecord:
    """Snapshot row carrying the live row's current associations."""

    hint = snapshot.client_name_hint or live.client_name_hint
    if isinstance(snapshot, RecordingRecord) and isinstance(live, RecordingRecord):
        return replace(
            snapshot,
            client_name_hint=hint,
            client_id=live.client_id,
            session_id=live.session_id,
            title=snapshot.title or live.title,
            transcript=snapshot.transcript or live.transcript,
            timestamp=snapshot.timestamp or live.timestamp,
        )
    if isinstance(snapshot, NoteRecord):
        return replace(
            snapshot,
            client_name_hint=hint,
            client_id=live.client_id,
            session_id=current_session_id(live),
            timestamp=snapshot.timestamp or live.timestamp,
        )
    return replace(
        snapshot,
        client_name_hint=hint,
        client_id=live.client_id,
        timestamp=snapshot.timestamp or live.timestamp,
    )


def reconcile_from_backup(
    *,
    store: PracticeStore | None = None,
    backup: BackupSource | None = None,
    kinds: Iterable[RecordKind] | None = None,
    force: bool = False,
    dry_run: bool = False,
    config: ReconciliationConfig | None = None,
    should_stop: StopSignal | None = None,
    observer: OutcomeObserver | None = None,
) -> ReconciliationReport:
    """Cross-reference live rows against a trusted snapshot and repair them.

    Snapshot rows without a live counterpart are skipped (``not_in_store``); a
    live client id that disagrees with the snapshot's resolved name is only
    replaced with ``force``.
    """

    effective_store = store or build_record_store(config=config)
    source = backup or build_backup_source()

    def orphans_for(kind: RecordKind, report: ReconciliationReport) -> list[OrphanRecord]:
        snapshot = _load(f"{kind} snapshot", lambda: source.read_snapshot(kind))
        live = {
            record.id: record
            for record in _load(
                f"live {kind} records",
                lambda: effective_store.get_records(kind, [row.id for row in snapshot]),
            )
        }
        orphans: list[OrphanRecord] = []
        for row in snapshot:
            current = live.get(row.id)
            if current is None:
                outcome = RecordOutcome(
                    record_id=row.id,
                    kind=kind,
                    status=OutcomeStatus.SKIPPED,
                    reasons=[str(Reason.NOT_IN_STORE)],
                    name_hint=row.client_name_hint,
                )
                report.record(outcome)
                if observer is not None:
                    observer(outcome)
                continue
            orphans.append(_with_live_associations(row, current))
        return orphans

    report = _run_kinds(
        effective_store,
        kinds,
        orphans_for,
        force=force,
        dry_run=dry_run,
        config=config,
        should_stop=should_stop,
        observer=observer,
    )
    log.info(
        "Finished backup reconciliation: fixed=%s, skipped=%s, errors=%s",
        report.fixed_count,
        report.skipped_count,
        len(report.errors),
    )
    return report


def restore_missing_sessions(
    *,
    store: PracticeStore | None = None,
    backup: BackupSource | None = None,
    dry_run: bool = False,
    should_stop: StopSignal | None = None,
) -> ReconciliationReport:
    """Insert snapshot sessions whose id is absent from the live store.

    Existing rows are never touched. Rows whose client name cannot be resolved
    are reported as unresolved and not inserted.
    """

    effective_store = store or build_record_store()
    source = backup or build_backup_source()
    index = _load_index(effective_store)
    snapshot = _load("appointment snapshot", source.read_sessions)
    live_ids = {
        record.id
        for record in _load(
            "live sessions",
            lambda: effective_store.get_records(
                RecordKind.SESSION, [session.id for session in snapshot]
            ),
        )
    }

    report = ReconciliationReport(dry_run=dry_run)
    pending: list[tuple[RecordOutcome, SessionOccurrence]] = []
    for session in snapshot:
        if should_stop is not None and should_stop():
            report.aborted = True
            break
        outcome = RecordOutcome(
            record_id=session.id,
            kind=RecordKind.SESSION,
            name_hint=session.client_name or "",
        )
        if session.id in live_ids:
            outcome.reasons.append(str(Reason.ALREADY_PRESENT))
            report.record(outcome)
            continue
        resolution = resolve_name(session.client_name, index)
        if resolution.client_id is None:
            outcome.status = OutcomeStatus.UNRESOLVED
            outcome.reasons.append(str(resolution.reason or Reason.NO_MATCH))
            report.record(outcome)
            continue
        outcome.status = OutcomeStatus.FIXED
        outcome.match_kind = resolution.match_kind
        outcome.changes.append(
            PlannedChange(
                record_id=session.id,
                kind=RecordKind.SESSION,
                field=CLIENT_ID_FIELD,
                value=resolution.client_id,
            )
        )
        live_ids.add(session.id)
        pending.append((outcome, replace(session, client_id=resolution.client_id)))

    failure: StoreError | None = None
    if pending and not dry_run:
        try:
            effective_store.upsert(RecordKind.SESSION, [session for _outcome, session in pending])
        except StoreError as exc:
            log.warning("Session restore failed: %s", exc)
            failure = exc

    for outcome, _session in pending:
        if failure is None:
            outcome.applied.extend(outcome.changes)
        else:
            outcome.status = OutcomeStatus.ERRORED
            outcome.errors.append(f"{Reason.STORE_ERROR}: {failure}")
        report.record(outcome)

    log.info(
        "Finished session restore: inserted=%s, skipped=%s, unresolved=%s%s",
        report.fixed_count,
        report.skipped_count,
        len(report.unresolved),
        " (dry run)" if dry_run else "",
    )
    return report


def cleanup_recording_transcripts(
    *,
    store: PracticeStore | None = None,
    titles: Iterable[str] | None = None,
    dry_run: bool = False,
    config: ReconciliationConfig | None = None,
    should_stop: StopSignal | None = None,
) -> ReconciliationReport:
    """Strip generated note sections (for example AI assessments) from transcripts."""

    effective_store = store or build_record_store(config=config)
    settings = config or get_reconciliation_config()
    excluded = tuple(titles) if titles else settings.excluded_section_titles
    recordings = _load("recordings", effective_store.list_recordings)
    return cleanup_transcripts(
        recordings,
        effective_store,
        excluded,
        dry_run=dry_run,
        should_stop=should_stop,
    )


def build_client_feed(
    owner_scope: str,
    client_id: str | None = None,
    *,
    store: PracticeStore | None = None,
) -> FeedResult:
    """Unified, ordered feed of notes, recordings and sessions for an owner."""

    effective_store = store or build_record_store()
    clients = effective_store.get_clients(owner_id=owner_scope)
    names = {client.id: client.canonical_name for client in clients}
    notes = effective_store.list_notes(owner_id=owner_scope, client_id=client_id)
    recordings = effective_store.list_recordings(owner_id=owner_scope, client_id=client_id)
    sessions = effective_store.list_sessions(owner_id=owner_scope, client_id=client_id)
    result = build_feed(notes, recordings, sessions, client_names=names)
    log.info(
        "Built feed for %s: entries=%d, suppressed=%d, collisions=%d",
        owner_scope,
        len(result.entries),
        result.suppressed,
        len(result.collisions),
    )
    return result
