import pytest

from splitledger.db.models import Expense, ExpenseType, Payer, Split, SplitMethod
from splitledger.errors import AmountOutOfRangeError, ConservationError, SplitError
from splitledger.services.ledger import build_entries, compose_expense, record_payment
from splitledger.services.payers import PayerSpec


def _nets(entries):
    return {entry.member_id: entry.net_cents for entry in entries}


def test_build_entries_conserves():
    expense = compose_expense(
        expense_id="e1",
        group_id="g1",
        total_cents=3000,
        method=SplitMethod.EQUAL,
        payers=[PayerSpec("A")],
        participants=["A", "B", "C"],
    )
    entries = build_entries(expense)
    assert _nets(entries) == {"A": 2000, "B": -1000, "C": -1000}
    assert sum(entry.net_cents for entry in entries) == 0
    assert all(entry.expense_id == "e1" for entry in entries)


def test_build_entries_multiple_payers_and_member_only_paying():
    expense = compose_expense(
        expense_id="e2",
        group_id="g1",
        total_cents=10000,
        method=SplitMethod.EQUAL,
        payers=[PayerSpec("A", 6000), PayerSpec("D", 4000)],
        participants=["A", "B"],
    )
    assert _nets(build_entries(expense)) == {"A": 1000, "D": 4000, "B": -5000}


def test_build_entries_detects_conservation_violation():
    expense = Expense(
        id="broken",
        group_id="g1",
        total_cents=10000,
        split_method=SplitMethod.EXACT_AMOUNT,
        payers=[Payer("A", 10000)],
        splits=[Split("A", 5000), Split("B", 4999)],
    )
    with pytest.raises(ConservationError) as exc:
        build_entries(expense)
    assert exc.value.code == "CONSERVATION_VIOLATION"
    assert exc.value.imbalance == 1


def test_payment_entries():
    payment = record_payment("p1", "g1", payer_id="C", recipient_id="A", amount_cents=2000)
    assert payment.type == ExpenseType.PAYMENT
    assert payment.is_payment
    assert _nets(build_entries(payment)) == {"C": 2000, "A": -2000}


def test_payment_to_self_rejected():
    with pytest.raises(SplitError):
        record_payment("p1", "g1", payer_id="A", recipient_id="A", amount_cents=100)


def test_payment_must_be_positive():
    with pytest.raises(AmountOutOfRangeError):
        Expense.payment(id="p1", group_id="g1", payer_id="A", recipient_id="B", amount_cents=0)


def test_compose_expense_rejects_amount_over_limit():
    with pytest.raises(AmountOutOfRangeError):
        compose_expense(
            expense_id="e3",
            group_id="g1",
            total_cents=1_000_000_001,
            method=SplitMethod.EQUAL,
            payers=[PayerSpec("A")],
            participants=["A"],
        )


def test_build_entries_idempotent():
    expense = compose_expense(
        expense_id="e4",
        group_id="g1",
        total_cents=1001,
        method=SplitMethod.EQUAL,
        payers=[PayerSpec("A"), PayerSpec("B")],
        participants=["A", "B", "C"],
    )
    assert build_entries(expense) == build_entries(expense)
