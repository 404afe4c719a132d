from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Sequence, Union

from splitledger.db.models import (
    Expense,
    ExpenseType,
    LedgerEntry,
    MemberId,
    Payer,
    ReceiptItem,
    Split,
    SplitMethod,
    TaxFigures,
)
from splitledger.errors import ConservationError
from splitledger.logging import get_logger
from splitledger.services.money import ensure_valid_total
from splitledger.services.payers import PayerSpec, compute_payers
from splitledger.services.split import compute_splits

log = get_logger(__name__)


def build_entries(expense: Expense) -> list[LedgerEntry]:
    """Net contribution per member for one expense: paid minus owed.

    Members are listed payers first, then split members, each once. The
    entries must sum to exactly zero; anything else is a data or logic bug
    and raises :class:`ConservationError` instead of being patched over.
    """
    nets: dict[MemberId, int] = {}
    for payer in expense.payers:
        nets[payer.member_id] = nets.get(payer.member_id, 0) + payer.amount_cents
    for split in expense.splits:
        nets[split.member_id] = nets.get(split.member_id, 0) - split.amount_cents

    imbalance = sum(nets.values())
    if imbalance != 0:
        log.error(
            "ledger.conservation.violated",
            expense_id=expense.id,
            group_id=expense.group_id,
            imbalance=imbalance,
        )
        raise ConservationError(f"expense {expense.id} does not net to zero", imbalance)

    return [LedgerEntry(expense_id=expense.id, member_id=member, net_cents=net) for member, net in nets.items()]


def build_group_entries(expenses: Sequence[Expense]) -> list[LedgerEntry]:
    entries: list[LedgerEntry] = []
    for expense in expenses:
        entries.extend(build_entries(expense))
    log.debug("ledger.entries.built", expenses=len(expenses), entries=len(entries))
    return entries


def compose_expense(
    expense_id: str,
    group_id: str,
    total_cents: int,
    method: SplitMethod,
    payers: Sequence[PayerSpec],
    participants: Sequence[MemberId] = (),
    explicit_values: Optional[Mapping[MemberId, Union[int, Decimal]]] = None,
    items: Optional[Sequence[ReceiptItem]] = None,
    charges: Optional[TaxFigures] = None,
    prices_include_tax: bool = False,
    description: str = "",
    created_at: Optional[datetime] = None,
) -> Expense:
    """Allocate payers and splits for a new expense; ``explicit_values`` reads as in :func:`compute_splits`."""
    ensure_valid_total(total_cents)
    method = SplitMethod(method)

    contributions = compute_payers(total_cents, payers)
    shares = compute_splits(
        total_cents,
        method,
        participants=participants,
        explicit_values=explicit_values,
        items=items,
        charges=charges,
        prices_include_tax=prices_include_tax,
    )

    expense = Expense(
        id=expense_id,
        group_id=group_id,
        total_cents=total_cents,
        split_method=method,
        payers=[Payer(member_id=member, amount_cents=amount) for member, amount in contributions.items()],
        splits=[Split(member_id=member, amount_cents=amount) for member, amount in shares.items()],
        type=ExpenseType.EXPENSE,
        description=description,
        items=list(items or []),
        charges=charges,
        prices_include_tax=prices_include_tax,
        created_at=created_at,
    )
    # conservation check
    build_entries(expense)
    return expense


def record_payment(
    payment_id: str,
    group_id: str,
    payer_id: MemberId,
    recipient_id: MemberId,
    amount_cents: int,
    created_at: Optional[datetime] = None,
) -> Expense:
    ensure_valid_total(amount_cents)
    payment = Expense.payment(
        id=payment_id,
        group_id=group_id,
        payer_id=payer_id,
        recipient_id=recipient_id,
        amount_cents=amount_cents,
        created_at=created_at,
    )
    log.info("ledger.payment.recorded", group_id=group_id, payer_id=payer_id, recipient_id=recipient_id, amount_cents=amount_cents)
    return payment
