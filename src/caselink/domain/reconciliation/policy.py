"""Write policy for one orphan record.

Responsibilities of this stage:
- resolve the record's client name hint to a client id
- decide which associations may be written (fill-only unless forced)
- attempt a session link for notes and recordings that carry a timestamp

The stage is pure: it returns a ``RecordOutcome`` holding planned changes and
reasons. Writing them is the engine's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from caselink.domain.model import current_session_id

from .contracts import (
    CLIENT_ID_FIELD,
    SESSION_ID_FIELD,
    OutcomeStatus,
    PlannedChange,
    Reason,
    RecordOutcome,
)
from .hints import derive_name_hint
from .link import DEFAULT_WINDOW_DAYS, link_session_detail
from .resolve import resolve_name

if TYPE_CHECKING:
    from collections.abc import Iterable

    from caselink.domain.model import OrphanRecord, SessionOccurrence

    from .index import IdentityIndex


@dataclass(frozen=True, slots=True, kw_only=True)
class WritePolicy:
    """Knobs shared by every record of a pass."""

    force: bool = False
    window_days: int = DEFAULT_WINDOW_DAYS


@dataclass(slots=True)
class SessionsByClient:
    """Candidate sessions grouped by client id."""

    groups: dict[str, list[SessionOccurrence]] = field(
        default_factory=dict[str, list["SessionOccurrence"]]
    )

    @classmethod
    def from_sessions(cls, sessions: Iterable[SessionOccurrence]) -> SessionsByClient:
        grouped = cls()
        for session in sessions:
            grouped.add(session)
        return grouped

    def add(self, session: SessionOccurrence) -> None:
        if session.client_id is None:
            return
        self.groups.setdefault(session.client_id, []).append(session)

    def for_client(self, client_id: str) -> list[SessionOccurrence]:
        return self.groups.get(client_id, [])


def plan_record(
    orphan: OrphanRecord,
    *,
    index: IdentityIndex,
    sessions: SessionsByClient,
    policy: WritePolicy | None = None,
) -> RecordOutcome:
    policy = policy or WritePolicy()
    hint = derive_name_hint(orphan, index)
    outcome = RecordOutcome(record_id=orphan.id, kind=orphan.kind, name_hint=hint)

    resolution = resolve_name(hint, index)
    target_client = orphan.client_id
    client_changed = False

    if resolution.client_id is None:
        if orphan.client_id is None:
            outcome.status = OutcomeStatus.UNRESOLVED
            outcome.reasons.append(str(resolution.reason or Reason.NO_MATCH))
            return outcome
    else:
        outcome.match_kind = resolution.match_kind
        if orphan.client_id is None:
            outcome.changes.append(
                PlannedChange(
                    record_id=orphan.id,
                    kind=orphan.kind,
                    field=CLIENT_ID_FIELD,
                    value=resolution.client_id,
                )
            )
            target_client = resolution.client_id
            client_changed = True
        elif orphan.client_id != resolution.client_id:
            if policy.force:
                outcome.changes.append(
                    PlannedChange(
                        record_id=orphan.id,
                        kind=orphan.kind,
                        field=CLIENT_ID_FIELD,
                        value=resolution.client_id,
                        only_if_null=False,
                    )
                )
                target_client = resolution.client_id
                client_changed = True
            else:
                outcome.reasons.append(str(Reason.CLIENT_MISMATCH))

    session_unresolved = False
    if orphan.links_sessions and target_client is not None:
        session_unresolved = _plan_session_link(
            orphan,
            outcome,
            target_client=target_client,
            client_changed=client_changed,
            sessions=sessions,
            policy=policy,
        )

    if outcome.changes:
        outcome.status = OutcomeStatus.FIXED
    elif session_unresolved:
        outcome.status = OutcomeStatus.UNRESOLVED
    else:
        outcome.status = OutcomeStatus.SKIPPED
        if not outcome.reasons:
            outcome.reasons.append(str(Reason.ALREADY_LINKED))
    return outcome


def _plan_session_link(
    orphan: OrphanRecord,
    outcome: RecordOutcome,
    *,
    target_client: str,
    client_changed: bool,
    sessions: SessionsByClient,
    policy: WritePolicy,
) -> bool:
    """Append a session change if one is warranted; return True when linking failed."""

    current = current_session_id(orphan)
    if current is not None and not client_changed:
        return False
    if orphan.timestamp is None:
        return False
    candidates = sessions.for_client(target_client)
    link = link_session_detail(
        target_client,
        orphan.timestamp,
        candidates,
        window_days=policy.window_days,
    )
    if link.session_id is None:
        outcome.reasons.append(str(link.reason or Reason.NO_SESSION_IN_WINDOW))
        return True
    if link.session_id != current:
        outcome.changes.append(
            PlannedChange(
                record_id=orphan.id,
                kind=orphan.kind,
                field=SESSION_ID_FIELD,
                value=link.session_id,
                only_if_null=current is None,
            )
        )
    return False
