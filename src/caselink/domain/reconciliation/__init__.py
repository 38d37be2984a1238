"""Reconciliation subsystem.

Stages, leaves first: name normalization, identity index, candidate resolver,
temporal linker, write policy, and the pass orchestrator.
"""

from __future__ import annotations

from .contracts import (
    CLIENT_ID_FIELD,
    SESSION_ID_FIELD,
    TRANSCRIPT_FIELD,
    MatchKind,
    OutcomeStatus,
    PlannedChange,
    Reason,
    ReconciliationReport,
    RecordOutcome,
    ReportError,
    UnresolvedRecord,
)
from .engine import ReconciliationPass, reconcile
from .hints import derive_name_hint, scan_for_client_name
from .index import IdentityIndex, IndexCollision, build_index, client_name_variants
from .link import DEFAULT_WINDOW_DAYS, SessionLink, link_session, link_session_detail
from .normalize import normalize_name
from .policy import SessionsByClient, WritePolicy, plan_record
from .resolve import NameResolution, resolve, resolve_name

__all__ = [
    "CLIENT_ID_FIELD",
    "DEFAULT_WINDOW_DAYS",
    "SESSION_ID_FIELD",
    "TRANSCRIPT_FIELD",
    "IdentityIndex",
    "IndexCollision",
    "MatchKind",
    "NameResolution",
    "OutcomeStatus",
    "PlannedChange",
    "Reason",
    "ReconciliationPass",
    "ReconciliationReport",
    "RecordOutcome",
    "ReportError",
    "SessionLink",
    "SessionsByClient",
    "UnresolvedRecord",
    "WritePolicy",
    "build_index",
    "client_name_variants",
    "derive_name_hint",
    "link_session",
    "link_session_detail",
    "normalize_name",
    "plan_record",
    "reconcile",
    "resolve",
    "resolve_name",
    "scan_for_client_name",
]
