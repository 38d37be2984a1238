"""Client identity index built fresh for every reconciliation run.

Every key is the output of ``normalize_name`` and never empty. Several variants
may point at the same client; when two different clients produce the same
variant, the first registered client keeps it and the collision is recorded on
the index instead of being raised.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .normalize import first_last_key, name_tokens, normalize_name, surname_of

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from caselink.domain.model import ClientIdentity


@dataclass(frozen=True, slots=True)
class IndexCollision:
    """A variant claimed by more than one client."""

    variant: str
    kept_client_id: str
    dropped_client_id: str


@dataclass(slots=True)
class IdentityIndex:
    """Mapping of normalized name variant to client id (many-to-one)."""

    entries: dict[str, str] = field(default_factory=dict[str, str])
    clients: dict[str, ClientIdentity] = field(default_factory=dict[str, "ClientIdentity"])
    collisions: list[IndexCollision] = field(default_factory=list[IndexCollision])
    _surnames: dict[str, list[str]] = field(default_factory=dict[str, list[str]], repr=False)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, variant: object) -> bool:
        return variant in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def lookup(self, variant: str) -> str | None:
        return self.entries.get(variant)

    def client(self, client_id: str) -> ClientIdentity | None:
        return self.clients.get(client_id)

    def register(self, variant: str, client_id: str) -> bool:
        """Register ``variant`` for ``client_id``; return False if another client owns it."""

        if not variant:
            return False
        owner = self.entries.get(variant)
        if owner is None:
            self.entries[variant] = client_id
            owners = self._surnames.setdefault(surname_of(variant), [])
            if client_id not in owners:
                owners.append(client_id)
            return True
        if owner != client_id:
            self.collisions.append(
                IndexCollision(variant=variant, kept_client_id=owner, dropped_client_id=client_id)
            )
            return False
        return True

    def surname_candidates(self, token: str) -> tuple[str, ...]:
        """Distinct clients whose surname equals or contains ``token``.

        Substring matching is kept on purpose to mirror the historical repair
        behaviour; short tokens can therefore over-match, and callers must treat
        more than one candidate as ambiguous.
        """

        if not token:
            return ()
        candidates: list[str] = []
        for surname, owners in self._surnames.items():
            if token != surname and token not in surname:
                continue
            for client_id in owners:
                if client_id not in candidates:
                    candidates.append(client_id)
        return tuple(candidates)

    def full_name_keys(self) -> tuple[str, ...]:
        """Keys made of at least two tokens, in registration order."""

        return tuple(key for key in self.entries if " " in key)

    def serialize(self) -> bytes:
        """Stable byte form of the index, used to compare rebuilt indices."""

        payload = {
            "entries": list(self.entries.items()),
            "collisions": [
                [item.variant, item.kept_client_id, item.dropped_client_id]
                for item in self.collisions
            ],
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def client_name_variants(client: ClientIdentity) -> tuple[str, ...]:
    """All normalized variants registered for ``client``, first-seen order."""

    tokens = name_tokens(client.canonical_name)
    variants: list[str] = []

    def _add(value: str | None) -> None:
        if value and value not in variants:
            variants.append(value)

    _add(" ".join(tokens))
    first_last = first_last_key(tokens)
    _add(first_last)
    if first_last is not None:
        _add(f"{tokens[-1]} {tokens[0]}")
    if len(tokens) == 3:  # noqa: PLR2004
        _add(f"{tokens[0]} {tokens[2]}")
    if client.first_name and client.last_name:
        _add(normalize_name(f"{client.first_name} {client.last_name}"))
    for alias in sorted(client.name_variants):
        _add(normalize_name(alias))
    return tuple(variants)


def build_index(clients: Iterable[ClientIdentity]) -> IdentityIndex:
    """Build the lookup index from the current client set, in input order."""

    index = IdentityIndex()
    for client in clients:
        if client.id in index.clients:
            continue
        index.clients[client.id] = client
        for variant in client_name_variants(client):
            index.register(variant, client.id)
    return index
