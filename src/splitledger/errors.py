from __future__ import annotations

from decimal import Decimal
from typing import ClassVar, Sequence, Union

Number = Union[int, Decimal]


class LedgerError(Exception):
    code: ClassVar[str] = "LEDGER_ERROR"


class SplitError(LedgerError, ValueError):
    """Bad caller input. The same input always fails the same way."""

    code = "SPLIT_ERROR"


class EmptyParticipantsError(SplitError):
    code = "EMPTY_PARTICIPANTS"

    def __init__(self, message: str = "cannot split across zero participants") -> None:
        super().__init__(message)


class NoPayerError(SplitError):
    code = "NO_PAYER"

    def __init__(self, message: str = "expense has no payer") -> None:
        super().__init__(message)


class AmountOutOfRangeError(SplitError):
    code = "AMOUNT_OUT_OF_RANGE"


class SumMismatchError(SplitError):
    """Explicit values do not reconcile with the expected total."""

    label: ClassVar[str] = "values"

    def __init__(self, expected: Number, actual: Number) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"{self.label} sum to {actual}, expected {expected} (delta {self.delta})")

    @property
    def delta(self) -> Number:
        return self.expected - self.actual


class SplitSumMismatchError(SumMismatchError):
    code = "SPLIT_SUM_MISMATCH"
    label = "split amounts (cents)"


class PercentageSumMismatchError(SumMismatchError):
    code = "PERCENTAGE_SUM_MISMATCH"
    label = "percentages"


class PayerSumMismatchError(SumMismatchError):
    code = "PAYER_SUM_MISMATCH"
    label = "payer amounts (cents)"


class UnassignedItemError(SplitError):
    code = "UNASSIGNED_ITEM"

    def __init__(self, item_indices: Sequence[int]) -> None:
        self.item_indices = tuple(item_indices)
        super().__init__(f"items without assigned members: {list(self.item_indices)}")


class InvalidMemberMappingError(SplitError):
    code = "INVALID_MEMBER_MAPPING"


class ConservationError(LedgerError, RuntimeError):
    """Ledger amounts no longer net to zero. Indicates a bug or corrupt data."""

    code = "CONSERVATION_VIOLATION"

    def __init__(self, message: str, imbalance: int) -> None:
        self.imbalance = imbalance
        super().__init__(f"{message} (imbalance {imbalance} cents)")
