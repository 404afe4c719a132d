from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from splitledger.db.models import MemberId
from splitledger.errors import AmountOutOfRangeError, NoPayerError, PayerSumMismatchError
from splitledger.services.money import split_among


@dataclass(slots=True)
class PayerSpec:
    member_id: MemberId
    amount_cents: Optional[int] = None


def compute_payers(total_cents: int, payers: Sequence[PayerSpec]) -> dict[MemberId, int]:
    if not payers:
        raise NoPayerError()

    explicit = [payer for payer in payers if payer.amount_cents is not None]
    if not explicit:
        # one payer covers everything; several share it equally in the given order
        return split_among(total_cents, [payer.member_id for payer in payers])

    if len(explicit) != len(payers):
        known = sum(payer.amount_cents or 0 for payer in explicit)
        raise PayerSumMismatchError(expected=total_cents, actual=known)
    if any((payer.amount_cents or 0) < 0 for payer in explicit):
        raise AmountOutOfRangeError("payer amounts must be non-negative")

    contributions: dict[MemberId, int] = {}
    for payer in explicit:
        contributions[payer.member_id] = contributions.get(payer.member_id, 0) + (payer.amount_cents or 0)

    actual = sum(contributions.values())
    if actual != total_cents:
        raise PayerSumMismatchError(expected=total_cents, actual=actual)
    return contributions
