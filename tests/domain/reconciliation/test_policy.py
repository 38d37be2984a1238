from __future__ import annotations

import json

from caselink.domain.reconciliation import (
    CLIENT_ID_FIELD,
    SESSION_ID_FIELD,
    OutcomeStatus,
    Reason,
    SessionsByClient,
    WritePolicy,
    build_index,
    derive_name_hint,
    plan_record,
    scan_for_client_name,
)
from tests.helpers.records import at, client, note, recording, session, session_record

INDEX = build_index([client("c1", "Lilli D Schillaci"), client("c2", "Anna Silva")])
SESSIONS = SessionsByClient.from_sessions(
    [session("s1", "c1", at(10)), session("s2", "c2", at(10))]
)


def _fields(outcome_changes: object) -> dict[str, object]:
    return {change.field: change.value for change in outcome_changes}  # type: ignore[attr-defined]


def test_plans_client_and_session_fill_for_orphaned_note() -> None:
    orphan = note("n1", "Lilly Schillaci", timestamp=at(12))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert outcome.status is OutcomeStatus.FIXED
    assert _fields(outcome.changes) == {CLIENT_ID_FIELD: "c1", SESSION_ID_FIELD: "s1"}
    assert all(change.only_if_null for change in outcome.changes)


def test_unresolved_name_leaves_record_untouched() -> None:
    orphan = note("n1", "Nobody Known", timestamp=at(12))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert outcome.status is OutcomeStatus.UNRESOLVED
    assert outcome.changes == []
    assert outcome.reasons == [str(Reason.NO_MATCH)]


def test_present_client_is_not_overwritten_without_force() -> None:
    orphan = session_record("s9", "Anna Silva", client_id="c1", timestamp=at(10))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert outcome.status is OutcomeStatus.SKIPPED
    assert outcome.changes == []
    assert outcome.reasons == [str(Reason.CLIENT_MISMATCH)]


def test_force_replaces_a_disagreeing_client_and_relinks_session() -> None:
    orphan = recording("r1", "Anna Silva", client_id="c1", session_id="s1", timestamp=at(11))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS, policy=WritePolicy(force=True))

    assert outcome.status is OutcomeStatus.FIXED
    assert _fields(outcome.changes) == {CLIENT_ID_FIELD: "c2", SESSION_ID_FIELD: "s2"}
    assert [change.only_if_null for change in outcome.changes] == [False, False]


def test_linked_record_is_skipped_as_already_linked() -> None:
    orphan = note("n1", "Anna Silva", client_id="c2", session_id="s2", timestamp=at(10))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert outcome.status is OutcomeStatus.SKIPPED
    assert outcome.reasons == [str(Reason.ALREADY_LINKED)]


def test_client_written_even_when_no_session_is_in_window() -> None:
    orphan = note("n1", "Anna Silva", timestamp=at(20))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert outcome.status is OutcomeStatus.FIXED
    assert _fields(outcome.changes) == {CLIENT_ID_FIELD: "c2"}
    assert outcome.reasons == [str(Reason.NO_SESSION_IN_WINDOW)]


def test_missing_session_only_is_unresolved_when_nothing_links() -> None:
    orphan = note("n1", "", client_id="c2", timestamp=at(25))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert outcome.status is OutcomeStatus.UNRESOLVED
    assert outcome.reasons == [str(Reason.NO_SESSION_IN_WINDOW)]


def test_sessions_never_get_a_session_link() -> None:
    orphan = session_record("s9", "Anna Silva", timestamp=at(10))

    outcome = plan_record(orphan, index=INDEX, sessions=SESSIONS)

    assert _fields(outcome.changes) == {CLIENT_ID_FIELD: "c2"}


def test_recording_hint_comes_from_title_then_transcript() -> None:
    titled = recording("r1", title="Intake with Anna Silva")
    transcribed = recording(
        "r2",
        transcript=json.dumps(
            {
                "transcript": "Session notes",
                "notes": [{"title": "Who", "content": "lilli schillaci attended"}],
            }
        ),
    )
    ambiguous = recording("r3", title="Anna Silva and Lilli Schillaci")

    assert derive_name_hint(titled, INDEX) == "anna silva"
    assert derive_name_hint(transcribed, INDEX) == "lilli schillaci"
    assert derive_name_hint(ambiguous, INDEX) == ""
    assert derive_name_hint(note("n1"), INDEX) == ""


def test_scan_requires_whole_words() -> None:
    assert scan_for_client_name("Joanna Silvabreak", INDEX) is None
    assert scan_for_client_name("met ANNA  SILVA today", INDEX) == "anna silva"
