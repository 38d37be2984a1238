"""Name normalization used by every matching stage.

Responsibilities of this stage:
- turn a raw client name into a deterministic lookup key
- expose token helpers shared by the index and the resolver
- stay total: empty input yields an empty key, which callers read as "no signal"
"""

from __future__ import annotations


def normalize_name(raw: str | None) -> str:
    """Lower-case, trim and collapse internal whitespace."""

    if not raw:
        return ""
    return " ".join(raw.split()).lower()


def name_tokens(raw: str | None) -> tuple[str, ...]:
    """Whitespace tokens of the normalized name."""

    normalized = normalize_name(raw)
    if not normalized:
        return ()
    return tuple(normalized.split(" "))


def first_last_key(tokens: tuple[str, ...]) -> str | None:
    """``"first last"`` for names with two or more tokens, dropping middle tokens."""

    if len(tokens) < 2:  # noqa: PLR2004
        return None
    return f"{tokens[0]} {tokens[-1]}"


def surname_of(key: str) -> str:
    """Last token of an already-normalized key."""

    return key.rsplit(" ", 1)[-1]
