"""Integer-cent money helpers.

Every amount inside the ledger is an ``int`` number of cents. ``Decimal``
appears only at the boundary (:func:`to_cents`, :func:`from_cents`) and for
inputs that legitimately carry sub-cent precision, such as percentages.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Hashable, Iterable, Mapping, Optional, Sequence, TypeVar, Union

from splitledger.config import get_settings
from splitledger.errors import AmountOutOfRangeError, EmptyParticipantsError

K = TypeVar("K", bound=Hashable)

CENT = Decimal("0.01")
TOLERANCE = CENT

AmountLike = Union[Decimal, str, int, float]


def to_cents(value: AmountLike) -> int:
    """Convert a major-unit amount to cents, rounding half-up to the nearest cent."""
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, int):
        return value * 100
    if isinstance(value, float):
        value = Decimal(str(value))
    elif isinstance(value, str):
        try:
            value = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a monetary amount: {value!r}") from exc
    if not value.is_finite():
        raise ValueError(f"not a monetary amount: {value!r}")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int, symbol: Optional[str] = None) -> str:
    if symbol is None:
        symbol = get_settings().currency_symbol
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{from_cents(abs(cents)):,.2f}"


def is_negligible(value: Decimal) -> bool:
    return abs(value) < TOLERANCE


def ensure_valid_total(total_cents: int, max_cents: Optional[int] = None) -> None:
    if max_cents is None:
        max_cents = get_settings().max_amount_cents
    if total_cents <= 0:
        raise AmountOutOfRangeError("amount must be greater than 0")
    if total_cents > max_cents:
        raise AmountOutOfRangeError(
            f"amount {from_cents(total_cents)} exceeds maximum limit of {from_cents(max_cents)}"
        )


def split_amount(total_cents: int, count: int) -> list[int]:
    """Split ``total_cents`` into ``count`` shares that differ by at most one cent.

    The first ``total_cents % count`` shares absorb the leftover cents, so the
    result is deterministic for a given order and always sums to the total.
    """
    if count <= 0:
        raise EmptyParticipantsError()
    if total_cents < 0:
        raise AmountOutOfRangeError("amount must be non-negative")

    base, residue = divmod(total_cents, count)
    return [base + 1 if index < residue else base for index in range(count)]


def split_among(total_cents: int, members: Sequence[K]) -> dict[K, int]:
    shares = split_amount(total_cents, len(members))
    result: dict[K, int] = {}
    for member, share in zip(members, shares):
        result[member] = result.get(member, 0) + share
    return result


def merge_shares(shares: Iterable[Mapping[K, int]]) -> dict[K, int]:
    result: dict[K, int] = {}
    for share in shares:
        for member, amount in share.items():
            result[member] = result.get(member, 0) + amount
    return result


def distribute_residual(shares: Mapping[K, int], residual: int, order: Sequence[K]) -> dict[K, int]:
    """Spread ``residual`` cents one at a time over ``order``, cycling as needed."""
    result = dict(shares)
    if residual == 0:
        return result
    if not order:
        raise EmptyParticipantsError()

    idx = 0
    step = 1 if residual > 0 else -1
    while residual != 0:
        member = order[idx % len(order)]
        result[member] = result.get(member, 0) + step
        residual -= step
        idx += 1
    return result
