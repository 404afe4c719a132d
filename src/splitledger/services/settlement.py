from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Mapping, Sequence

from splitledger.db.models import Expense, LedgerEntry, MemberId
from splitledger.errors import ConservationError
from splitledger.logging import get_logger
from splitledger.services.ledger import build_group_entries
from splitledger.services.money import distribute_residual, is_negligible, to_cents

log = get_logger(__name__)


@dataclass(slots=True)
class Debt:
    from_user: MemberId
    to_user: MemberId
    amount_cents: int


def net_balances(entries: Iterable[LedgerEntry]) -> dict[MemberId, int]:
    balances: dict[MemberId, int] = {}
    for entry in entries:
        balances[entry.member_id] = balances.get(entry.member_id, 0) + entry.net_cents
    return balances


def settle(balances: Mapping[MemberId, int]) -> List[Debt]:
    """Greedy settlement plan: largest debtor pays largest creditor until nobody is left.

    Not guaranteed minimal for every distribution, but each member ends up
    strictly on one side and the plan reproduces every balance exactly.
    """
    imbalance = sum(balances.values())
    if imbalance != 0:
        log.error("settlement.balances.unbalanced", imbalance=imbalance, members=len(balances))
        raise ConservationError("group balances do not net to zero", imbalance)

    creditors: list[tuple[MemberId, int]] = []
    debtors: list[tuple[MemberId, int]] = []

    for member_id, balance in balances.items():
        if balance > 0:
            creditors.append((member_id, balance))
        elif balance < 0:
            debtors.append((member_id, -balance))

    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    debts: list[Debt] = []
    i, j = 0, 0

    while i < len(creditors) and j < len(debtors):
        cred_id, cred_amount = creditors[i]
        debt_id, debt_amount = debtors[j]

        transfer_amount = min(cred_amount, debt_amount)
        debts.append(Debt(from_user=debt_id, to_user=cred_id, amount_cents=transfer_amount))

        cred_amount -= transfer_amount
        debt_amount -= transfer_amount

        if cred_amount == 0:
            i += 1
        else:
            creditors[i] = (cred_id, cred_amount)

        if debt_amount == 0:
            j += 1
        else:
            debtors[j] = (debt_id, debt_amount)

    log.debug("settlement.computed", creditors=len(creditors), debtors=len(debtors), debts=len(debts))
    return debts


def settle_amounts(balances: Mapping[MemberId, Decimal]) -> List[Debt]:
    """Settle balances given in major units, possibly with sub-cent noise.

    Anything under one cent in magnitude counts as settled and is dropped.
    The rest are rounded to cents, and the cents lost or gained by rounding
    go back onto the largest balances so the group still nets to zero.
    """
    values = {member_id: Decimal(str(balance)) for member_id, balance in balances.items()}
    total = sum(values.values(), Decimal(0))
    if not is_negligible(total):
        log.error("settlement.balances.unbalanced", imbalance=str(total), members=len(values))
        raise ConservationError("group balances do not net to zero", to_cents(total))

    cents = {member_id: to_cents(value) for member_id, value in values.items() if not is_negligible(value)}
    residual = -sum(cents.values())
    order = sorted(cents, key=lambda member_id: abs(values[member_id]), reverse=True)
    return settle(distribute_residual(cents, residual, order))


def group_debts(expenses: Sequence[Expense]) -> List[Debt]:
    return settle(net_balances(build_group_entries(expenses)))
