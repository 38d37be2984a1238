"""Candidate resolver: raw client name to at most one client id.

Cascade, each step tried only when the previous one produced nothing:
1. exact normalized match against the index
2. first+last key (middle tokens dropped) for inputs with three or more tokens
3. surname scan: the input's last token equals or is a substring of an index
   surname; exactly one distinct client is accepted, several are ambiguous

The resolver is pure. It reports why it failed so the pass can record a reason
instead of guessing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .contracts import MatchKind, Reason
from .normalize import first_last_key, name_tokens

if TYPE_CHECKING:
    from .index import IdentityIndex


@dataclass(frozen=True, slots=True)
class NameResolution:
    """Resolver answer with the step that matched or the failure reason."""

    client_id: str | None
    match_kind: MatchKind | None = None
    matched_key: str | None = None
    reason: Reason | None = None
    candidates: tuple[str, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.client_id is not None


def resolve_name(raw_name: str | None, index: IdentityIndex) -> NameResolution:
    tokens = name_tokens(raw_name)
    if not tokens:
        return NameResolution(client_id=None, reason=Reason.NO_NAME_HINT)

    key = " ".join(tokens)
    client_id = index.lookup(key)
    if client_id is not None:
        return NameResolution(client_id=client_id, match_kind=MatchKind.EXACT, matched_key=key)

    if len(tokens) >= 3:  # noqa: PLR2004
        two_token = first_last_key(tokens)
        if two_token is not None:
            client_id = index.lookup(two_token)
            if client_id is not None:
                return NameResolution(
                    client_id=client_id,
                    match_kind=MatchKind.TWO_TOKEN,
                    matched_key=two_token,
                )

    surname = tokens[-1]
    candidates = index.surname_candidates(surname)
    if len(candidates) == 1:
        return NameResolution(
            client_id=candidates[0],
            match_kind=MatchKind.SURNAME,
            matched_key=surname,
            candidates=candidates,
        )
    if candidates:
        return NameResolution(
            client_id=None,
            reason=Reason.AMBIGUOUS_SURNAME,
            candidates=candidates,
        )
    return NameResolution(client_id=None, reason=Reason.NO_MATCH)


def resolve(raw_name: str | None, index: IdentityIndex) -> str | None:
    """Client id for ``raw_name`` or ``None`` when no confident match exists."""

    return resolve_name(raw_name, index).client_id
