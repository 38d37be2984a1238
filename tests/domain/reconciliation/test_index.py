from __future__ import annotations

from caselink.domain.reconciliation import build_index, client_name_variants
from tests.helpers.records import client


def test_variants_cover_permutations_and_middle_drop() -> None:
    variants = client_name_variants(client("c1", "Lilli D Schillaci"))

    assert variants == (
        "lilli d schillaci",
        "lilli schillaci",
        "schillaci lilli",
    )


def test_structured_names_and_aliases_are_registered() -> None:
    identity = client(
        "c1",
        "Bob Marley",
        first_name="Robert",
        last_name="Marley",
        name_variants=frozenset({"  Bobby  M "}),
    )

    index = build_index([identity])

    assert index.lookup("robert marley") == "c1"
    assert index.lookup("bobby m") == "c1"
    assert index.lookup("marley bob") == "c1"


def test_first_registered_client_wins_collisions() -> None:
    index = build_index([client("c1", "Anna Silva"), client("c2", "Silva Anna")])

    assert index.lookup("anna silva") == "c1"
    assert index.lookup("silva anna") == "c1"
    collisions = {
        (item.variant, item.kept_client_id, item.dropped_client_id) for item in index.collisions
    }
    assert collisions == {
        ("silva anna", "c1", "c2"),
        ("anna silva", "c1", "c2"),
    }


def test_index_keys_are_never_empty() -> None:
    index = build_index([client("c1", "   "), client("c2", "Cher")])

    assert "" not in index
    assert list(index) == ["cher"]


def test_rebuilding_an_unchanged_client_set_is_byte_identical() -> None:
    clients = [
        client("c1", "Lilli D Schillaci"),
        client("c2", "Anna Silva"),
        client("c3", "Anna Souza", first_name="Ana", last_name="Souza"),
    ]

    assert build_index(clients).serialize() == build_index(list(clients)).serialize()


def test_surname_candidates_match_substrings() -> None:
    index = build_index([client("c1", "Anna Silva"), client("c2", "Tom Silvano")])

    assert index.surname_candidates("silva") == ("c1", "c2")
    assert index.surname_candidates("silvano") == ("c2",)
    assert index.surname_candidates("") == ()
