from decimal import Decimal

import pytest

from splitledger.errors import AmountOutOfRangeError, EmptyParticipantsError
from splitledger.services.money import (
    distribute_residual,
    ensure_valid_total,
    format_cents,
    from_cents,
    split_amount,
    split_among,
    to_cents,
)


def test_split_amount_even():
    assert split_amount(1000, 4) == [250, 250, 250, 250]


def test_split_amount_residue_goes_to_first():
    shares = split_amount(10000, 3)
    assert shares == [3334, 3333, 3333]
    assert sum(shares) == 10000


def test_split_amount_two_leftover_cents():
    assert split_amount(1001, 3) == [334, 334, 333]


def test_split_amount_zero_count():
    with pytest.raises(EmptyParticipantsError):
        split_amount(100, 0)


def test_split_amount_negative_total():
    with pytest.raises(AmountOutOfRangeError):
        split_amount(-1, 2)


def test_split_among_accumulates_duplicates():
    assert split_among(300, ["a", "b", "a"]) == {"a": 200, "b": 100}


def test_to_cents_rounds_half_up():
    assert to_cents(Decimal("10.005")) == 1001
    assert to_cents("0.125") == 13
    assert to_cents(0.1) == 10
    assert to_cents(12) == 1200


def test_to_cents_rejects_garbage():
    with pytest.raises(ValueError):
        to_cents("abc")
    with pytest.raises(TypeError):
        to_cents(True)


def test_from_cents_and_format():
    assert from_cents(123456) == Decimal("1234.56")
    assert format_cents(123456, "₹") == "₹1,234.56"
    assert format_cents(-50, "$") == "-$0.50"


def test_distribute_residual_both_directions():
    assert distribute_residual({"a": 10, "b": 10}, 3, ["a", "b"]) == {"a": 12, "b": 11}
    assert distribute_residual({"a": 10, "b": 10}, -1, ["a", "b"]) == {"a": 9, "b": 10}


def test_ensure_valid_total():
    ensure_valid_total(1)
    with pytest.raises(AmountOutOfRangeError):
        ensure_valid_total(0)
    with pytest.raises(AmountOutOfRangeError):
        ensure_valid_total(1_000_000_001)
    with pytest.raises(AmountOutOfRangeError):
        ensure_valid_total(500, max_cents=100)
