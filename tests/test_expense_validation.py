"""
Tests for obligation record validation.

Covers:
- Expense amount/currency/split rules
- Settlement rules
- Equal split generation
- Moving the rounding residue onto a split
"""
from decimal import Decimal

import pytest

from groupsettle.core.errors import InvalidObligationRecord
from groupsettle.schemas.expense import SplitBase
from groupsettle.utils.expense_validation import (
    balance_splits,
    equal_splits,
    validate_currency,
    validate_expense,
    validate_settlement,
)


def _splits(*pairs):
    return [SplitBase(user_id=user_id, amount=amount) for user_id, amount in pairs]


def test_validate_expense_returns_normalised_currency(users):
    splits = _splits((users["alice"], 45), (users["bob"], 45))
    assert validate_expense(90, " eur ", splits) == "EUR"


def test_validate_expense_accepts_one_cent_rounding(users):
    splits = _splits((users["alice"], 3.33), (users["bob"], 3.33), (users["carol"], 3.33))
    assert validate_expense(10, "USD", splits) == "USD"


@pytest.mark.parametrize("amount", [0, -5])
def test_validate_expense_rejects_non_positive_amount(users, amount):
    with pytest.raises(InvalidObligationRecord, match="positive"):
        validate_expense(amount, "USD", _splits((users["alice"], 0)))


def test_validate_expense_rejects_split_mismatch(users):
    splits = _splits((users["alice"], 30), (users["bob"], 30))
    with pytest.raises(InvalidObligationRecord, match="Split total"):
        validate_expense(90, "USD", splits)


def test_validate_expense_rejects_duplicate_users(users):
    splits = _splits((users["alice"], 45), (users["alice"], 45))
    with pytest.raises(InvalidObligationRecord, match="Duplicate"):
        validate_expense(90, "USD", splits)


def test_validate_expense_rejects_negative_split(users):
    splits = _splits((users["alice"], 100), (users["bob"], -10))
    with pytest.raises(InvalidObligationRecord, match="negative"):
        validate_expense(90, "USD", splits)


def test_validate_expense_rejects_bad_percentage(users):
    splits = [SplitBase(user_id=users["alice"], amount=90, percentage=120)]
    with pytest.raises(InvalidObligationRecord, match="percentage"):
        validate_expense(90, "USD", splits)


def test_validate_expense_requires_splits():
    with pytest.raises(InvalidObligationRecord):
        validate_expense(90, "USD", [])


@pytest.mark.parametrize("code", ["US", "usdx", "12A", ""])
def test_validate_currency_rejects_malformed_codes(code):
    with pytest.raises(InvalidObligationRecord):
        validate_currency(code)


def test_validate_settlement(users):
    assert validate_settlement(users["bob"], users["alice"], 30, "usd") == "USD"

    with pytest.raises(InvalidObligationRecord, match="themselves"):
        validate_settlement(users["bob"], users["bob"], 30, "USD")
    with pytest.raises(InvalidObligationRecord, match="positive"):
        validate_settlement(users["bob"], users["alice"], 0, "USD")


def test_equal_splits_distributes_leftover_cents(users):
    ids = [users["alice"], users["bob"], users["carol"]]
    splits = equal_splits(100, ids)

    assert [s.amount for s in splits] == [33.34, 33.33, 33.33]
    assert sum(Decimal(str(s.amount)) for s in splits) == Decimal("100")
    assert [s.user_id for s in splits] == ids


def test_equal_splits_needs_users():
    with pytest.raises(InvalidObligationRecord):
        equal_splits(10, [])


def test_balance_splits_moves_residue_to_largest_split(users):
    splits = _splits((users["alice"], 3.33), (users["bob"], 3.34), (users["carol"], 3.32))

    balanced = balance_splits(10, splits)

    assert [s.amount for s in balanced] == [3.33, 3.35, 3.32]
    assert sum(Decimal(str(s.amount)) for s in balanced) == Decimal("10.00")


def test_balance_splits_prefers_first_split_on_ties(users):
    splits = _splits((users["alice"], 3.33), (users["bob"], 3.33), (users["carol"], 3.33))

    balanced = balance_splits(10, splits)

    assert [s.amount for s in balanced] == [3.34, 3.33, 3.33]
    assert [s.user_id for s in balanced] == [users["alice"], users["bob"], users["carol"]]


def test_balance_splits_leaves_exact_splits_alone(users):
    splits = _splits((users["alice"], 45), (users["bob"], 45))

    assert [s.amount for s in balance_splits(90, splits)] == [45.0, 45.0]
