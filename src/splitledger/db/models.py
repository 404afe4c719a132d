from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from splitledger.errors import AmountOutOfRangeError, SplitError

MemberId = str


class SplitMethod(str, Enum):
    EQUAL = "EQUAL"
    EXACT_AMOUNT = "EXACT_AMOUNT"
    PERCENTAGE = "PERCENTAGE"
    ITEMIZED = "ITEMIZED"


class ExpenseType(str, Enum):
    EXPENSE = "EXPENSE"
    PAYMENT = "PAYMENT"


@dataclass(slots=True)
class Member:
    id: MemberId
    name: str
    is_placeholder: bool = False
    claimed_by: Optional[MemberId] = None


@dataclass(slots=True)
class Payer:
    member_id: MemberId
    amount_cents: int


@dataclass(slots=True)
class Split:
    member_id: MemberId
    amount_cents: int


@dataclass(slots=True)
class ReceiptItem:
    name: str
    price_cents: int
    assigned_to: list[MemberId] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class TaxFigures:
    tax_cents: int = 0
    cgst_cents: int = 0
    sgst_cents: int = 0
    service_charge_cents: int = 0

    @property
    def extra_cents(self) -> int:
        # itemised GST components win over the lump tax figure
        components = self.cgst_cents + self.sgst_cents + self.service_charge_cents
        return components or self.tax_cents


@dataclass(slots=True)
class Expense:
    id: str
    group_id: str
    total_cents: int
    split_method: SplitMethod
    payers: list[Payer]
    splits: list[Split]
    type: ExpenseType = ExpenseType.EXPENSE
    description: str = ""
    items: list[ReceiptItem] = field(default_factory=list)
    charges: Optional[TaxFigures] = None
    prices_include_tax: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def payment(
        cls,
        id: str,
        group_id: str,
        payer_id: MemberId,
        recipient_id: MemberId,
        amount_cents: int,
        created_at: Optional[datetime] = None,
    ) -> "Expense":
        """A direct transfer: the payer pays, the recipient carries the whole obligation."""
        if amount_cents <= 0:
            raise AmountOutOfRangeError("payment amount must be greater than 0")
        if payer_id == recipient_id:
            raise SplitError("payer and recipient must be different members")
        return cls(
            id=id,
            group_id=group_id,
            total_cents=amount_cents,
            split_method=SplitMethod.EXACT_AMOUNT,
            payers=[Payer(member_id=payer_id, amount_cents=amount_cents)],
            splits=[Split(member_id=recipient_id, amount_cents=amount_cents)],
            type=ExpenseType.PAYMENT,
            description="Payment",
            created_at=created_at,
        )

    @property
    def is_payment(self) -> bool:
        return self.type == ExpenseType.PAYMENT


@dataclass(slots=True)
class LedgerEntry:
    expense_id: str
    member_id: MemberId
    net_cents: int


@dataclass(slots=True)
class GroupSnapshot:
    group_id: str
    members: list[Member]
    expenses: list[Expense]
