"""Member identity helpers: placeholder merges and import name mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from splitledger.db.models import LedgerEntry, Member, MemberId
from splitledger.errors import InvalidMemberMappingError


def claimed_placeholders(members: Iterable[Member]) -> dict[MemberId, MemberId]:
    return {m.id: m.claimed_by for m in members if m.is_placeholder and m.claimed_by}


def resolve_member(member_id: MemberId, assignments: Mapping[MemberId, MemberId]) -> MemberId:
    seen = {member_id}
    current = member_id
    while current in assignments:
        current = assignments[current]
        if current in seen:
            raise InvalidMemberMappingError(f"placeholder assignment cycle through {member_id}")
        seen.add(current)
    return current


def merge_placeholders(
    entries: Iterable[LedgerEntry],
    assignments: Mapping[MemberId, MemberId],
) -> list[LedgerEntry]:
    """Attribute entries of merged placeholders to the members that claimed them."""
    if not assignments:
        return list(entries)
    return [
        LedgerEntry(
            expense_id=entry.expense_id,
            member_id=resolve_member(entry.member_id, assignments),
            net_cents=entry.net_cents,
        )
        for entry in entries
    ]


def suggest_mappings(csv_members: Sequence[str], group_members: Sequence[Member]) -> dict[str, Optional[MemberId]]:
    by_name = {}
    for member in group_members:
        by_name.setdefault(member.name.strip().casefold(), member.id)
    return {name: by_name.get(name.strip().casefold()) for name in csv_members}


@dataclass(slots=True)
class MemberMapping:
    resolved: dict[str, MemberId] = field(default_factory=dict)
    # names that get a new placeholder member on import
    placeholders: list[str] = field(default_factory=list)


def resolve_mapping(
    csv_members: Sequence[str],
    mapping: Mapping[str, Optional[MemberId]],
    group_members: Sequence[Member],
) -> MemberMapping:
    known = {member.id for member in group_members}
    result = MemberMapping()
    for name in csv_members:
        member_id = mapping.get(name)
        if member_id is None:
            result.placeholders.append(name)
            continue
        if member_id not in known:
            raise InvalidMemberMappingError(f"{name!r} is mapped to unknown member {member_id!r}")
        result.resolved[name] = member_id
    return result
