from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from splitledger.db.models import MemberId
from splitledger.services.settlement import Debt


@dataclass(slots=True)
class BalanceSummary:
    total_owed_to_user: int = 0
    total_user_owes: int = 0
    count_owed_to_user: int = 0
    count_user_owes: int = 0

    @property
    def total_net(self) -> int:
        return self.total_owed_to_user - self.total_user_owes

    @property
    def is_settled(self) -> bool:
        return self.total_owed_to_user == 0 and self.total_user_owes == 0


@dataclass(slots=True)
class MemberDebts:
    incoming: list[Debt] = field(default_factory=list)
    outgoing: list[Debt] = field(default_factory=list)

    @property
    def net_cents(self) -> int:
        return sum(d.amount_cents for d in self.incoming) - sum(d.amount_cents for d in self.outgoing)


def summarize(user_id: MemberId, debts: Iterable[Debt]) -> BalanceSummary:
    summary = BalanceSummary()
    for debt in debts:
        if debt.to_user == user_id:
            summary.total_owed_to_user += debt.amount_cents
            summary.count_owed_to_user += 1
        elif debt.from_user == user_id:
            summary.total_user_owes += debt.amount_cents
            summary.count_user_owes += 1
    return summary


def summarize_balances(balances: Iterable[int]) -> BalanceSummary:
    """Fold one user's net balance per group (or per friend) into a summary."""
    summary = BalanceSummary()
    for balance in balances:
        if balance > 0:
            summary.total_owed_to_user += balance
            summary.count_owed_to_user += 1
        elif balance < 0:
            summary.total_user_owes += -balance
            summary.count_user_owes += 1
    return summary


def member_breakdown(
    debts: Sequence[Debt],
    members: Optional[Sequence[MemberId]] = None,
) -> dict[MemberId, MemberDebts]:
    result: dict[MemberId, MemberDebts] = {member: MemberDebts() for member in members or ()}
    for debt in debts:
        result.setdefault(debt.to_user, MemberDebts()).incoming.append(debt)
        result.setdefault(debt.from_user, MemberDebts()).outgoing.append(debt)
    return result
