"""In-progress expense composition.

One :class:`ExpenseDraft` belongs to one user's one add/edit flow and is
passed explicitly between the steps of that flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Union

from splitledger.db.models import Expense, MemberId, ReceiptItem, SplitMethod, TaxFigures
from splitledger.errors import EmptyParticipantsError, SplitSumMismatchError
from splitledger.services.ledger import compose_expense
from splitledger.services.money import TOLERANCE, from_cents, to_cents
from splitledger.services.payers import PayerSpec
from splitledger.services.receipt import ItemizedSplit, ReceiptScan, itemized_splits
from splitledger.services.split import compute_splits


def reconcile_exact_amounts(total_cents: int, values: Mapping[MemberId, Union[Decimal, str, float]]) -> dict[MemberId, int]:
    """Round user-typed amounts to cents, pushing any sub-cent leftover onto the first member.

    The unrounded amounts must already be within one cent of the total;
    larger gaps are the user's to fix.
    """
    if not values:
        raise EmptyParticipantsError()

    amounts = {member: Decimal(str(value)) for member, value in values.items()}
    typed_total = sum(amounts.values(), Decimal(0))
    if abs(from_cents(total_cents) - typed_total) >= TOLERANCE:
        raise SplitSumMismatchError(expected=total_cents, actual=to_cents(typed_total))

    cents = {member: to_cents(amount) for member, amount in amounts.items()}
    first = next(iter(cents))
    cents[first] += total_cents - sum(cents.values())
    return cents


@dataclass(slots=True)
class ExpenseDraft:
    group_id: str
    description: str = ""
    total_cents: int = 0
    split_method: SplitMethod = SplitMethod.EQUAL
    payers: list[PayerSpec] = field(default_factory=list)
    participants: list[MemberId] = field(default_factory=list)
    explicit_values: dict[MemberId, Union[int, Decimal]] = field(default_factory=dict)
    receipt_items: list[ReceiptItem] = field(default_factory=list)
    charges: TaxFigures = field(default_factory=TaxFigures)
    prices_include_tax: bool = False
    receipt_image_url: Optional[str] = None
    expense_id: Optional[str] = None
    date: Optional[datetime] = None

    def set_paid_by(self, *member_ids: MemberId) -> None:
        self.payers = [PayerSpec(member_id=member_id) for member_id in member_ids]

    def set_payer_amounts(self, amounts: Mapping[MemberId, int]) -> None:
        self.payers = [PayerSpec(member_id=member_id, amount_cents=amount) for member_id, amount in amounts.items()]

    def split_equally(self, participants: list[MemberId]) -> None:
        self.split_method = SplitMethod.EQUAL
        self.participants = list(participants)
        self.explicit_values = {}

    def split_by_percentage(self, percentages: Mapping[MemberId, Decimal]) -> None:
        self.split_method = SplitMethod.PERCENTAGE
        self.participants = list(percentages)
        self.explicit_values = dict(percentages)

    def split_exactly(self, values: Mapping[MemberId, Union[Decimal, str, float]]) -> None:
        self.split_method = SplitMethod.EXACT_AMOUNT
        self.participants = list(values)
        self.explicit_values = dict(reconcile_exact_amounts(self.total_cents, values))

    def load_receipt(self, scan: ReceiptScan) -> None:
        self.split_method = SplitMethod.ITEMIZED
        self.total_cents = scan.total_cents
        self.receipt_items = scan.receipt_items()
        self.charges = scan.charges()
        self.prices_include_tax = scan.resolve_prices_include_tax()

    def set_tax_details(self, charges: TaxFigures, prices_include_tax: bool = False) -> None:
        self.charges = charges
        self.prices_include_tax = prices_include_tax

    def assign(self, item_index: int, member_id: MemberId) -> None:
        item = self.receipt_items[item_index]
        if member_id not in item.assigned_to:
            item.assigned_to.append(member_id)

    def unassign(self, item_index: int, member_id: MemberId) -> None:
        item = self.receipt_items[item_index]
        item.assigned_to = [m for m in item.assigned_to if m != member_id]

    def itemized_preview(self) -> ItemizedSplit:
        return itemized_splits(self.receipt_items, self.charges, self.prices_include_tax)

    def preview_splits(self) -> dict[MemberId, int]:
        return compute_splits(
            self.total_cents,
            self.split_method,
            participants=self.participants,
            explicit_values=self.explicit_values,
            items=self.receipt_items,
            charges=self.charges,
            prices_include_tax=self.prices_include_tax,
        )

    def build(self, expense_id: Optional[str] = None) -> Expense:
        if self.split_method == SplitMethod.ITEMIZED:
            self.itemized_preview().ensure_complete()

        new_id = expense_id or self.expense_id
        if new_id is None:
            raise ValueError("expense id is required")

        return compose_expense(
            expense_id=new_id,
            group_id=self.group_id,
            total_cents=self.total_cents,
            method=self.split_method,
            payers=self.payers,
            participants=self.participants,
            explicit_values=self.explicit_values,
            items=self.receipt_items if self.split_method == SplitMethod.ITEMIZED else None,
            charges=self.charges if self.split_method == SplitMethod.ITEMIZED else None,
            prices_include_tax=self.prices_include_tax,
            description=self.description,
            created_at=self.date,
        )

    def reset(self) -> None:
        self.description = ""
        self.total_cents = 0
        self.split_method = SplitMethod.EQUAL
        self.payers = []
        self.participants = []
        self.explicit_values = {}
        self.receipt_items = []
        self.charges = TaxFigures()
        self.prices_include_tax = False
        self.receipt_image_url = None
        self.expense_id = None
        self.date = None
