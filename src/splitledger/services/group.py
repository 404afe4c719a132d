from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from splitledger.db.models import GroupSnapshot, Member, MemberId
from splitledger.logging import get_logger
from splitledger.services.ledger import build_group_entries
from splitledger.services.members import claimed_placeholders, merge_placeholders
from splitledger.services.settlement import Debt, net_balances, settle
from splitledger.services.summary import BalanceSummary, MemberDebts, member_breakdown, summarize


class Repository(Protocol):
    async def load_group(self, group_id: str) -> GroupSnapshot: ...


@dataclass(slots=True)
class GroupLedger:
    group_id: str
    members: list[Member]
    balances: dict[MemberId, int]
    debts: list[Debt]

    def balance_of(self, member_id: MemberId) -> int:
        return self.balances.get(member_id, 0)

    def summary_for(self, member_id: MemberId) -> BalanceSummary:
        return summarize(member_id, self.debts)

    def breakdown(self) -> dict[MemberId, MemberDebts]:
        return member_breakdown(self.debts, [member.id for member in self.members])

    @property
    def is_settled(self) -> bool:
        return not self.debts


def compute_group_ledger(snapshot: GroupSnapshot) -> GroupLedger:
    assignments = claimed_placeholders(snapshot.members)
    entries = merge_placeholders(build_group_entries(snapshot.expenses), assignments)

    members = [member for member in snapshot.members if member.id not in assignments]
    balances = {member.id: 0 for member in members}
    for member_id, balance in net_balances(entries).items():
        balances[member_id] = balances.get(member_id, 0) + balance

    return GroupLedger(
        group_id=snapshot.group_id,
        members=members,
        balances=balances,
        debts=settle(balances),
    )


async def load_group_ledger(repo: Repository, group_id: str) -> GroupLedger:
    log = get_logger(__name__)
    snapshot = await repo.load_group(group_id)
    ledger = compute_group_ledger(snapshot)
    log.info(
        "ledger.computed",
        group_id=group_id,
        expenses=len(snapshot.expenses),
        members=len(ledger.members),
        debts=len(ledger.debts),
    )
    return ledger
