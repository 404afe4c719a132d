from __future__ import annotations

from decimal import Decimal, ROUND_FLOOR
from typing import Mapping, Optional, Sequence, Union

from splitledger.db.models import MemberId, ReceiptItem, SplitMethod, TaxFigures
from splitledger.errors import (
    AmountOutOfRangeError,
    EmptyParticipantsError,
    PercentageSumMismatchError,
    SplitSumMismatchError,
)
from splitledger.logging import get_logger
from splitledger.services.money import TOLERANCE, distribute_residual, split_among, to_cents
from splitledger.services.receipt import itemized_splits

log = get_logger(__name__)

HUNDRED = Decimal(100)


def equal_split(total_cents: int, participants: Sequence[MemberId]) -> dict[MemberId, int]:
    if not participants:
        raise EmptyParticipantsError()
    if total_cents < len(participants):
        raise AmountOutOfRangeError(f"{total_cents} cents cannot give each of {len(participants)} participants a share")
    return split_among(total_cents, participants)


def exact_split(total_cents: int, amounts: Mapping[MemberId, int]) -> dict[MemberId, int]:
    if not amounts:
        raise EmptyParticipantsError()
    if any(amount < 0 for amount in amounts.values()):
        raise AmountOutOfRangeError("split amounts must be non-negative")

    actual = sum(amounts.values())
    if actual != total_cents:
        raise SplitSumMismatchError(expected=total_cents, actual=actual)
    return dict(amounts)


def percentage_split(total_cents: int, percentages: Mapping[MemberId, Decimal]) -> dict[MemberId, int]:
    if not percentages:
        raise EmptyParticipantsError()

    values = {member: Decimal(str(pct)) for member, pct in percentages.items()}
    if any(pct < 0 for pct in values.values()):
        raise AmountOutOfRangeError("percentages must be non-negative")

    pct_total = sum(values.values(), Decimal(0))
    if abs(pct_total - HUNDRED) >= TOLERANCE:
        raise PercentageSumMismatchError(expected=HUNDRED, actual=pct_total)

    # largest remainder: floor every exact share, then hand the leftover cents
    # to the largest fractional parts, ties in caller order
    exact = {member: Decimal(total_cents) * pct / pct_total for member, pct in values.items()}
    shares = {member: int(value.to_integral_value(rounding=ROUND_FLOOR)) for member, value in exact.items()}
    residual = total_cents - sum(shares.values())
    order = sorted(
        (member for member, pct in values.items() if pct > 0),
        key=lambda member: exact[member] - shares[member],
        reverse=True,
    )
    return distribute_residual(shares, residual, order)


def compute_splits(
    total_cents: int,
    method: SplitMethod,
    participants: Sequence[MemberId] = (),
    explicit_values: Optional[Mapping[MemberId, Union[int, Decimal]]] = None,
    items: Optional[Sequence[ReceiptItem]] = None,
    charges: Optional[TaxFigures] = None,
    prices_include_tax: bool = False,
) -> dict[MemberId, int]:
    """Return how much each participant owes for an expense of ``total_cents``.

    For EXACT_AMOUNT, ``explicit_values`` holds an amount per member: ``int``
    values are cents, ``Decimal`` values are major units. For PERCENTAGE it
    holds percentages. ITEMIZED reads ``items``/``charges`` instead.
    """
    method = SplitMethod(method)

    if method == SplitMethod.EQUAL:
        shares = equal_split(total_cents, participants)
    elif method == SplitMethod.EXACT_AMOUNT:
        amounts = {
            member: value if isinstance(value, int) else to_cents(value)
            for member, value in (explicit_values or {}).items()
        }
        shares = exact_split(total_cents, amounts)
    elif method == SplitMethod.PERCENTAGE:
        shares = percentage_split(total_cents, dict(explicit_values or {}))  # type: ignore[arg-type]
    else:
        itemized = itemized_splits(items or [], charges, prices_include_tax)
        if not itemized.shares:
            raise EmptyParticipantsError("no receipt item is assigned to a member")
        if itemized.total_cents != total_cents:
            raise SplitSumMismatchError(expected=total_cents, actual=itemized.total_cents)
        shares = itemized.shares

    log.debug("split.computed", method=method.value, total_cents=total_cents, participants=len(shares))
    return shares
