"""Shared reconciliation contract components.

This module intentionally holds only:
- outcome/match enums and stable reason strings
- the per-record outcome and planned-change dataclasses
- the run report returned to the invoker
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from caselink.domain.model import RecordKind


class MatchKind(StrEnum):
    """Which resolver cascade step produced a client match."""

    EXACT = "exact"
    TWO_TOKEN = "two_token"
    SURNAME = "surname"


class OutcomeStatus(StrEnum):
    FIXED = "fixed"
    SKIPPED = "skipped"
    UNRESOLVED = "unresolved"
    ERRORED = "errored"


class Reason(StrEnum):
    """Stable snake_case reasons recorded in reports."""

    NO_NAME_HINT = "no_name_hint"
    NO_MATCH = "no_match"
    AMBIGUOUS_SURNAME = "ambiguous_surname"
    NO_SESSION_IN_WINDOW = "no_session_in_window"
    ALREADY_LINKED = "already_linked"
    NOT_IN_STORE = "not_in_store"
    CLIENT_MISMATCH = "client_mismatch"
    STORE_ERROR = "store_error"
    UNEXPECTED_ERROR = "unexpected_error"
    UNCHANGED = "unchanged"
    ALREADY_PRESENT = "already_present"


CLIENT_ID_FIELD = "client_id"
SESSION_ID_FIELD = "session_id"
TRANSCRIPT_FIELD = "transcript"


@dataclass(frozen=True, slots=True, kw_only=True)
class PlannedChange:
    """One targeted single-field write."""

    record_id: str
    kind: RecordKind
    field: str
    value: object
    only_if_null: bool = True

    def to_dict(self) -> dict[str, object]:
        return {
            "record_id": self.record_id,
            "kind": str(self.kind),
            "field": self.field,
            "value": self.value,
        }


@dataclass(slots=True, kw_only=True)
class RecordOutcome:
    """What happened to one record during a pass."""

    record_id: str
    kind: RecordKind
    status: OutcomeStatus = OutcomeStatus.SKIPPED
    reasons: list[str] = field(default_factory=list[str])
    changes: list[PlannedChange] = field(default_factory=list[PlannedChange])
    applied: list[PlannedChange] = field(default_factory=list[PlannedChange])
    errors: list[str] = field(default_factory=list[str])
    name_hint: str = ""
    match_kind: MatchKind | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "record_id": self.record_id,
            "kind": str(self.kind),
            "status": str(self.status),
            "reasons": list(self.reasons),
            "changes": [change.to_dict() for change in self.changes],
            "errors": list(self.errors),
            "match_kind": str(self.match_kind) if self.match_kind else None,
        }


@dataclass(frozen=True, slots=True)
class ReportError:
    record_id: str
    reason: str


@dataclass(frozen=True, slots=True)
class UnresolvedRecord:
    record_id: str
    kind: RecordKind
    reason: str
    name_hint: str


@dataclass(slots=True, kw_only=True)
class ReconciliationReport:
    """Sole return value of a pass: counts plus per-record reasons."""

    fixed_count: int = 0
    skipped_count: int = 0
    errors: list[ReportError] = field(default_factory=list[ReportError])
    unresolved: list[UnresolvedRecord] = field(default_factory=list[UnresolvedRecord])
    changes: list[PlannedChange] = field(default_factory=list[PlannedChange])
    outcomes: list[RecordOutcome] = field(default_factory=list[RecordOutcome])
    dry_run: bool = False
    aborted: bool = False

    def record(self, outcome: RecordOutcome) -> None:
        """Fold one finished outcome into the counters."""

        self.outcomes.append(outcome)
        self.changes.extend(outcome.applied)
        if outcome.applied:
            self.fixed_count += 1
        elif outcome.status is not OutcomeStatus.ERRORED:
            self.skipped_count += 1
        for message in outcome.errors:
            self.errors.append(ReportError(record_id=outcome.record_id, reason=message))
        if outcome.status is OutcomeStatus.UNRESOLVED:
            self.unresolved.append(
                UnresolvedRecord(
                    record_id=outcome.record_id,
                    kind=outcome.kind,
                    reason=outcome.reasons[-1] if outcome.reasons else str(Reason.NO_MATCH),
                    name_hint=outcome.name_hint,
                )
            )

    def extend(self, other: ReconciliationReport) -> None:
        """Merge a report from another pass (for example another record kind)."""

        self.fixed_count += other.fixed_count
        self.skipped_count += other.skipped_count
        self.errors.extend(other.errors)
        self.unresolved.extend(other.unresolved)
        self.changes.extend(other.changes)
        self.outcomes.extend(other.outcomes)
        self.aborted = self.aborted or other.aborted

    def to_dict(self, *, include_outcomes: bool = False) -> dict[str, object]:
        payload: dict[str, object] = {
            "fixed_count": self.fixed_count,
            "skipped_count": self.skipped_count,
            "errors": [{"record_id": e.record_id, "reason": e.reason} for e in self.errors],
            "unresolved": [
                {
                    "record_id": item.record_id,
                    "kind": str(item.kind),
                    "reason": item.reason,
                    "name_hint": item.name_hint,
                }
                for item in self.unresolved
            ],
            "changes": [change.to_dict() for change in self.changes],
            "dry_run": self.dry_run,
            "aborted": self.aborted,
        }
        if include_outcomes:
            payload["outcomes"] = [outcome.to_dict() for outcome in self.outcomes]
        return payload
