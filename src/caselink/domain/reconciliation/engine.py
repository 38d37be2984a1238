"""Orchestrator for the reconciliation pass.

The engine plans each orphan through the write policy, then writes the planned
single-field changes through the record store. Records are processed in
groups of ``batch_workers``: stores that implement ``BatchRecordStore`` receive
each group as one concurrent flush, other stores are written sequentially.

Nothing raises across a record boundary: store failures and unexpected errors
become report entries and the batch continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from caselink.domain.errors import StoreError
from caselink.domain.ports import BatchRecordStore

from .contracts import OutcomeStatus, Reason, ReconciliationReport, RecordOutcome
from .policy import SessionsByClient, WritePolicy, plan_record

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from caselink.domain.model import OrphanRecord, RecordKind, SessionOccurrence
    from caselink.domain.ports import RecordStore

    from .contracts import PlannedChange
    from .index import IdentityIndex

log = logging.getLogger(__name__)

type OutcomeObserver = Callable[[RecordOutcome], None]
type StopSignal = Callable[[], bool]


@dataclass(slots=True, kw_only=True)
class ReconciliationPass:
    """One run of resolver + linker over a batch of orphans."""

    index: IdentityIndex
    store: RecordStore
    sessions: Iterable[SessionOccurrence] = ()
    policy: WritePolicy = field(default_factory=WritePolicy)
    dry_run: bool = False
    batch_workers: int = 1
    should_stop: StopSignal | None = None
    observer: OutcomeObserver | None = None

    def run(self, orphans: Iterable[OrphanRecord]) -> ReconciliationReport:
        report = ReconciliationReport(dry_run=self.dry_run)
        sessions = SessionsByClient.from_sessions(self.sessions)
        group: list[RecordOutcome] = []
        group_size = max(1, self.batch_workers)

        for orphan in orphans:
            if self.should_stop is not None and self.should_stop():
                log.warning("Reconciliation stopped before record %s", orphan.id)
                report.aborted = True
                break
            group.append(self._plan(orphan, sessions))
            if len(group) >= group_size:
                self._flush(group, report)
                group = []
        if group:
            self._flush(group, report)

        log.info(
            "Reconciliation %s: fixed=%d skipped=%d errors=%d unresolved=%d%s",
            "dry run" if self.dry_run else "run",
            report.fixed_count,
            report.skipped_count,
            len(report.errors),
            len(report.unresolved),
            " (aborted)" if report.aborted else "",
        )
        return report

    def _plan(self, orphan: OrphanRecord, sessions: SessionsByClient) -> RecordOutcome:
        try:
            return plan_record(orphan, index=self.index, sessions=sessions, policy=self.policy)
        except Exception as exc:  # noqa: BLE001
            log.exception("Planning failed for %s %s", orphan.kind, orphan.id)
            return RecordOutcome(
                record_id=orphan.id,
                kind=orphan.kind,
                status=OutcomeStatus.ERRORED,
                reasons=[str(Reason.UNEXPECTED_ERROR)],
                errors=[f"{Reason.UNEXPECTED_ERROR}: {exc}"],
                name_hint=orphan.client_name_hint,
            )

    def _flush(self, group: list[RecordOutcome], report: ReconciliationReport) -> None:
        if self.dry_run:
            for outcome in group:
                outcome.applied.extend(outcome.changes)
        elif isinstance(self.store, BatchRecordStore) and len(group) > 1:
            self._write_batched(self.store, group)
        else:
            for outcome in group:
                self._write_sequential(outcome)

        for outcome in group:
            _settle(outcome)
            report.record(outcome)
            if self.observer is not None:
                self.observer(outcome)

    def _write_sequential(self, outcome: RecordOutcome) -> None:
        for change in outcome.changes:
            try:
                self.store.update_field(
                    change.kind,
                    change.record_id,
                    change.field,
                    change.value,
                    only_if_null=change.only_if_null,
                )
            except StoreError as exc:
                _record_failure(outcome, change, exc)
                return
            except Exception as exc:  # noqa: BLE001
                log.exception("Unexpected write failure for %s %s", change.kind, change.record_id)
                outcome.errors.append(f"{Reason.UNEXPECTED_ERROR}: {exc}")
                return
            outcome.applied.append(change)

    def _write_batched(self, store: BatchRecordStore, group: Sequence[RecordOutcome]) -> None:
        """Flush the n-th change of every still-healthy record together."""

        broken: set[int] = set()
        step = 0
        while True:
            pending = [
                (outcome, outcome.changes[step])
                for outcome in group
                if id(outcome) not in broken and step < len(outcome.changes)
            ]
            if not pending:
                return
            by_kind: dict[RecordKind, list[tuple[RecordOutcome, PlannedChange]]] = {}
            for outcome, change in pending:
                by_kind.setdefault(change.kind, []).append((outcome, change))
            for kind, items in by_kind.items():
                try:
                    results = store.update_fields(
                        kind,
                        [
                            (change.record_id, change.field, change.value, change.only_if_null)
                            for _outcome, change in items
                        ],
                    )
                except StoreError as exc:
                    results = [exc] * len(items)
                for (outcome, change), error in zip(items, results, strict=True):
                    if error is None:
                        outcome.applied.append(change)
                    elif isinstance(error, StoreError):
                        _record_failure(outcome, change, error)
                        broken.add(id(outcome))
                    else:
                        outcome.errors.append(f"{Reason.UNEXPECTED_ERROR}: {error}")
                        broken.add(id(outcome))
            step += 1


def _record_failure(outcome: RecordOutcome, change: PlannedChange, exc: StoreError) -> None:
    log.warning(
        "Write of %s on %s %s failed: %s", change.field, change.kind, change.record_id, exc
    )
    outcome.errors.append(f"{Reason.STORE_ERROR}: {exc}")


def _settle(outcome: RecordOutcome) -> None:
    """Final status once writes are done."""

    if outcome.status is not OutcomeStatus.FIXED:
        return
    if outcome.applied:
        return
    outcome.status = OutcomeStatus.ERRORED if outcome.errors else OutcomeStatus.SKIPPED


def reconcile(
    orphans: Iterable[OrphanRecord],
    index: IdentityIndex,
    store: RecordStore,
    *,
    sessions: Iterable[SessionOccurrence] | None = None,
    force: bool = False,
    dry_run: bool = False,
    window_days: int | None = None,
    batch_workers: int = 1,
    should_stop: StopSignal | None = None,
    observer: OutcomeObserver | None = None,
) -> ReconciliationReport:
    """Reconcile ``orphans`` against ``index`` and write fixes to ``store``.

    When ``sessions`` is not given the store's current sessions are used as
    link candidates.
    """

    candidate_sessions = store.get_sessions() if sessions is None else sessions
    policy = (
        WritePolicy(force=force)
        if window_days is None
        else WritePolicy(force=force, window_days=window_days)
    )
    return ReconciliationPass(
        index=index,
        store=store,
        sessions=candidate_sessions,
        policy=policy,
        dry_run=dry_run,
        batch_workers=batch_workers,
        should_stop=should_stop,
        observer=observer,
    ).run(orphans)
