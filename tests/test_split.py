from decimal import Decimal

import pytest

from splitledger.db.models import ReceiptItem, SplitMethod, TaxFigures
from splitledger.errors import (
    AmountOutOfRangeError,
    EmptyParticipantsError,
    PercentageSumMismatchError,
    SplitSumMismatchError,
)
from splitledger.services.split import compute_splits


def test_equal_split_three_ways():
    shares = compute_splits(10000, SplitMethod.EQUAL, ["A", "B", "C"])
    assert shares == {"A": 3334, "B": 3333, "C": 3333}
    assert sum(shares.values()) == 10000


def test_equal_split_empty_participants():
    with pytest.raises(EmptyParticipantsError) as exc:
        compute_splits(10000, SplitMethod.EQUAL, [])
    assert exc.value.code == "EMPTY_PARTICIPANTS"


def test_equal_split_needs_a_cent_per_participant():
    with pytest.raises(AmountOutOfRangeError) as exc:
        compute_splits(2, SplitMethod.EQUAL, ["A", "B", "C"])
    assert exc.value.code == "AMOUNT_OUT_OF_RANGE"
    assert compute_splits(3, SplitMethod.EQUAL, ["A", "B", "C"]) == {"A": 1, "B": 1, "C": 1}


def test_exact_split_passes_through():
    shares = compute_splits(5000, SplitMethod.EXACT_AMOUNT, explicit_values={"A": 1000, "B": 4000})
    assert shares == {"A": 1000, "B": 4000}


def test_exact_split_accepts_decimal_major_units():
    shares = compute_splits(5000, SplitMethod.EXACT_AMOUNT, explicit_values={"A": Decimal("20.00"), "B": 3000})
    assert shares == {"A": 2000, "B": 3000}


def test_exact_split_mismatch_reports_delta():
    with pytest.raises(SplitSumMismatchError) as exc:
        compute_splits(5000, SplitMethod.EXACT_AMOUNT, explicit_values={"A": 1000, "B": 3999})
    assert exc.value.code == "SPLIT_SUM_MISMATCH"
    assert exc.value.delta == 1


def test_percentage_split():
    shares = compute_splits(
        25000,
        SplitMethod.PERCENTAGE,
        explicit_values={"A": Decimal("50"), "B": Decimal("30"), "C": Decimal("20")},
    )
    assert shares == {"A": 12500, "B": 7500, "C": 5000}


def test_percentage_split_rounding_residual_kept_exact():
    shares = compute_splits(
        1000,
        SplitMethod.PERCENTAGE,
        explicit_values={"A": Decimal("33.333"), "B": Decimal("33.333"), "C": Decimal("33.334")},
    )
    assert sum(shares.values()) == 1000
    assert shares == {"A": 333, "B": 333, "C": 334}


def test_percentage_split_zero_member_never_goes_negative():
    shares = compute_splits(
        101,
        SplitMethod.PERCENTAGE,
        explicit_values={"Z": Decimal("0"), "A": Decimal("50"), "B": Decimal("50")},
    )
    assert shares == {"Z": 0, "A": 51, "B": 50}


def test_percentage_split_shares_stay_within_a_cent_of_exact():
    percentages = {"A": Decimal("0"), "B": Decimal("33.33"), "C": Decimal("33.33"), "D": Decimal("33.34")}
    shares = compute_splits(1999, SplitMethod.PERCENTAGE, explicit_values=percentages)
    assert sum(shares.values()) == 1999
    assert shares["A"] == 0
    for member, pct in percentages.items():
        assert abs(shares[member] - Decimal(1999) * pct / 100) < 1


def test_percentage_split_mismatch():
    with pytest.raises(PercentageSumMismatchError) as exc:
        compute_splits(1000, SplitMethod.PERCENTAGE, explicit_values={"A": Decimal("50"), "B": Decimal("40")})
    assert exc.value.delta == Decimal("10")


def test_percentage_within_tolerance_accepted():
    shares = compute_splits(1000, SplitMethod.PERCENTAGE, explicit_values={"A": Decimal("50"), "B": Decimal("49.995")})
    assert sum(shares.values()) == 1000


def test_itemized_delegates_to_receipt_adapter():
    items = [
        ReceiptItem(name="Pizza", price_cents=10000, assigned_to=["A"]),
        ReceiptItem(name="Pasta", price_cents=10000, assigned_to=["B"]),
    ]
    shares = compute_splits(22000, SplitMethod.ITEMIZED, items=items, charges=TaxFigures(tax_cents=2000))
    assert shares == {"A": 11000, "B": 11000}


def test_itemized_total_mismatch():
    items = [ReceiptItem(name="Pizza", price_cents=10000, assigned_to=["A"])]
    with pytest.raises(SplitSumMismatchError):
        compute_splits(12000, SplitMethod.ITEMIZED, items=items)


def test_compute_splits_is_idempotent():
    first = compute_splits(9999, SplitMethod.EQUAL, ["A", "B", "C", "D"])
    second = compute_splits(9999, SplitMethod.EQUAL, ["A", "B", "C", "D"])
    assert first == second
