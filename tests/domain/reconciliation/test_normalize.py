from __future__ import annotations

import pytest

from caselink.domain.reconciliation.normalize import (
    first_last_key,
    name_tokens,
    normalize_name,
    surname_of,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Lilli   D  Schillaci ", "lilli d schillaci"),
        ("ANNA\tSilva", "anna silva"),
        ("", ""),
        (None, ""),
        ("   ", ""),
    ],
)
def test_normalize_name(raw: str | None, expected: str) -> None:
    assert normalize_name(raw) == expected


def test_normalize_name_is_idempotent() -> None:
    once = normalize_name("  Mary  Ann  O'Neil ")

    assert normalize_name(once) == once


def test_name_tokens_and_first_last_key() -> None:
    tokens = name_tokens("Lilli D Schillaci")

    assert tokens == ("lilli", "d", "schillaci")
    assert first_last_key(tokens) == "lilli schillaci"
    assert first_last_key(("cher",)) is None
    assert name_tokens("") == ()


def test_surname_of_returns_last_token() -> None:
    assert surname_of("anna de souza") == "souza"
    assert surname_of("cher") == "cher"
