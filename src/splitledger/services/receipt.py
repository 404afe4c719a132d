"""Itemised receipt splitting.

Items are split among the members assigned to them. Tax and service charges
that are not already baked into item prices are then spread evenly across
everyone who was assigned at least one item.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from splitledger.db.models import MemberId, ReceiptItem, Split, TaxFigures
from splitledger.errors import UnassignedItemError
from splitledger.logging import get_logger
from splitledger.services.money import split_among, to_cents

log = get_logger(__name__)


@dataclass(slots=True)
class ItemizedSplit:
    shares: dict[MemberId, int]
    # indices of items nobody was assigned to; their price is in no share
    unassigned: list[int] = field(default_factory=list)

    @property
    def total_cents(self) -> int:
        return sum(self.shares.values())

    @property
    def is_complete(self) -> bool:
        return not self.unassigned

    def ensure_complete(self) -> None:
        if self.unassigned:
            raise UnassignedItemError(self.unassigned)


def itemized_splits(
    items: Sequence[ReceiptItem],
    charges: Optional[TaxFigures] = None,
    prices_include_tax: bool = False,
) -> ItemizedSplit:
    shares: dict[MemberId, int] = {}
    participants: list[MemberId] = []
    unassigned: list[int] = []

    for index, item in enumerate(items):
        if not item.assigned_to:
            unassigned.append(index)
            continue
        for member in item.assigned_to:
            if member not in participants:
                participants.append(member)
        if item.price_cents <= 0:
            continue
        for member, share in split_among(item.price_cents, item.assigned_to).items():
            shares[member] = shares.get(member, 0) + share

    extra_cents = 0
    if charges is not None and not prices_include_tax:
        extra_cents = charges.extra_cents

    if extra_cents > 0 and participants:
        for member, share in split_among(extra_cents, participants).items():
            shares[member] = shares.get(member, 0) + share

    if unassigned:
        log.debug("receipt.items.unassigned", items=unassigned)

    return ItemizedSplit(shares=shares, unassigned=unassigned)


def detect_prices_include_tax(items: Sequence[ReceiptItem], total_cents: int, charges: TaxFigures) -> bool:
    """Guess whether item prices already include tax.

    They do when the item sum lands closer to the receipt total than to the
    total minus the extra charges.
    """
    items_sum = sum(item.price_cents for item in items)
    subtotal = total_cents - charges.extra_cents
    return abs(items_sum - total_cents) < abs(items_sum - subtotal)


def items_from_splits(splits: Sequence[Split], names: Mapping[MemberId, str]) -> list[ReceiptItem]:
    """Rebuild one pseudo item per member when an itemised expense lost its item data."""
    return [
        ReceiptItem(
            name=f"Split for {names.get(split.member_id, 'User')}",
            price_cents=split.amount_cents,
            assigned_to=[split.member_id],
        )
        for split in splits
        if split.amount_cents > 0
    ]


class ScannedItem(BaseModel):
    name: str = Field(..., description="Line item as printed on the receipt")
    price: Decimal = Field(..., description="Line item price")


class ReceiptScan(BaseModel):
    """Payload produced by the receipt OCR upstream."""

    items: list[ScannedItem] = Field(default_factory=list)
    total: Decimal = Field(..., ge=0, description="Receipt grand total")
    subtotal: Optional[Decimal] = Field(None, description="Total before tax, if printed")
    tax: Decimal = Field(Decimal(0), ge=0)
    cgst: Decimal = Field(Decimal(0), ge=0)
    sgst: Decimal = Field(Decimal(0), ge=0)
    service_charge: Decimal = Field(Decimal(0), ge=0)
    prices_include_tax: Optional[bool] = None

    @field_validator("tax", "cgst", "sgst", "service_charge", mode="before")
    @classmethod
    def _missing_as_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @property
    def total_cents(self) -> int:
        return to_cents(self.total)

    def charges(self) -> TaxFigures:
        return TaxFigures(
            tax_cents=to_cents(self.tax),
            cgst_cents=to_cents(self.cgst),
            sgst_cents=to_cents(self.sgst),
            service_charge_cents=to_cents(self.service_charge),
        )

    def receipt_items(self) -> list[ReceiptItem]:
        return [ReceiptItem(name=item.name, price_cents=to_cents(item.price)) for item in self.items]

    def resolve_prices_include_tax(self) -> bool:
        if self.prices_include_tax is not None:
            return self.prices_include_tax
        return detect_prices_include_tax(self.receipt_items(), self.total_cents, self.charges())
