import pytest

from splitledger.db.models import LedgerEntry, Member
from splitledger.errors import InvalidMemberMappingError
from splitledger.services.members import (
    claimed_placeholders,
    merge_placeholders,
    resolve_mapping,
    suggest_mappings,
)
from splitledger.services.settlement import net_balances

MEMBERS = [
    Member(id="u1", name="Asha"),
    Member(id="u2", name="Ravi"),
    Member(id="p1", name="Kiran", is_placeholder=True, claimed_by="u3"),
    Member(id="p2", name="Meera", is_placeholder=True),
    Member(id="u3", name="Kiran K"),
]


def test_claimed_placeholders():
    assert claimed_placeholders(MEMBERS) == {"p1": "u3"}


def test_merge_placeholders_moves_history():
    entries = [
        LedgerEntry("e1", "u1", 2000),
        LedgerEntry("e1", "p1", -1000),
        LedgerEntry("e1", "u2", -1000),
        LedgerEntry("e2", "u3", -500),
        LedgerEntry("e2", "u1", 500),
    ]
    merged = merge_placeholders(entries, claimed_placeholders(MEMBERS))
    assert net_balances(merged) == {"u1": 2500, "u3": -1500, "u2": -1000}


def test_merge_follows_chains_and_rejects_cycles():
    entries = [LedgerEntry("e1", "a", 100)]
    assert merge_placeholders(entries, {"a": "b", "b": "c"})[0].member_id == "c"
    with pytest.raises(InvalidMemberMappingError):
        merge_placeholders(entries, {"a": "b", "b": "a"})


def test_suggest_mappings_case_insensitive():
    suggestions = suggest_mappings(["asha", " RAVI ", "Unknown"], MEMBERS)
    assert suggestions == {"asha": "u1", " RAVI ": "u2", "Unknown": None}


def test_resolve_mapping():
    mapping = resolve_mapping(["Asha", "Sam"], {"Asha": "u1", "Sam": None}, MEMBERS)
    assert mapping.resolved == {"Asha": "u1"}
    assert mapping.placeholders == ["Sam"]


def test_resolve_mapping_unknown_member():
    with pytest.raises(InvalidMemberMappingError) as exc:
        resolve_mapping(["Asha"], {"Asha": "nobody"}, MEMBERS)
    assert exc.value.code == "INVALID_MEMBER_MAPPING"
