"""Obligation record validation utilities."""
import re
from decimal import ROUND_DOWN
from typing import List, Sequence

from groupsettle.core.errors import InvalidObligationRecord
from groupsettle.schemas.expense import SplitBase
from groupsettle.utils.money import CENTS, SETTLEMENT_EPSILON, ZERO, qround, to_decimal

CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def validate_currency(currency: str) -> str:
    """Normalise and check an ISO 4217 style code."""
    code = (currency or "").strip().upper()
    if not CURRENCY_CODE.match(code):
        raise InvalidObligationRecord(f"Invalid currency code: {currency!r}")
    return code


def validate_expense(amount, currency: str, splits: Sequence[SplitBase]) -> str:
    """
    Validate an expense before it enters the ledger.

    Rules:
    - amount must be positive
    - currency must be a 3-letter code
    - at least one split, no user twice
    - split amounts non-negative, percentages within 0..100
    - split amounts sum to amount within 0.01

    Returns the normalised currency code.
    """
    amount = to_decimal(amount)
    if amount <= ZERO:
        raise InvalidObligationRecord(f"Expense amount must be positive: {amount}")

    code = validate_currency(currency)

    if not splits:
        raise InvalidObligationRecord("At least one split is required")

    user_ids = [str(split.user_id) for split in splits]
    if len(user_ids) != len(set(user_ids)):
        raise InvalidObligationRecord("Duplicate users found in splits")

    for split in splits:
        if to_decimal(split.amount) < ZERO:
            raise InvalidObligationRecord(
                f"Split for user {split.user_id} has negative amount: {split.amount}"
            )
        if not 0 <= split.percentage <= 100:
            raise InvalidObligationRecord(
                f"Split for user {split.user_id} has percentage out of range: {split.percentage}"
            )

    split_sum = sum((to_decimal(split.amount) for split in splits), ZERO)
    if abs(split_sum - amount) > SETTLEMENT_EPSILON:
        raise InvalidObligationRecord(
            f"Split total ({split_sum}) must equal expense amount ({amount})"
        )

    return code


def validate_settlement(from_user_id, to_user_id, amount, currency: str) -> str:
    """Validate a payment between two members. Returns the currency code."""
    if str(from_user_id) == str(to_user_id):
        raise InvalidObligationRecord("A member cannot settle with themselves")
    if to_decimal(amount) <= ZERO:
        raise InvalidObligationRecord(f"Settlement amount must be positive: {amount}")
    return validate_currency(currency)


def balance_splits(amount, splits: Sequence[SplitBase]) -> List[SplitBase]:
    """
    Return splits that sum to amount exactly.

    Validation accepts a one cent difference; the residue is moved onto the
    largest split (first one on ties) before the expense is stored.
    """
    total = qround(amount)
    shares = [qround(split.amount) for split in splits]
    residue = total - sum(shares, ZERO)
    if residue != ZERO and shares:
        largest = max(range(len(shares)), key=lambda index: (shares[index], -index))
        shares[largest] += residue
    return [
        SplitBase(user_id=str(split.user_id), amount=float(share), percentage=split.percentage)
        for split, share in zip(splits, shares)
    ]


def equal_splits(amount, user_ids: Sequence[str]) -> List[SplitBase]:
    """
    Split amount equally to the cent.

    Leftover cents go to the first users so the splits always sum to
    amount exactly.
    """
    if not user_ids:
        raise InvalidObligationRecord("At least one split is required")

    total = qround(amount)
    count = len(user_ids)
    base = (total / count).quantize(CENTS, rounding=ROUND_DOWN)
    remainder = int((total - base * count) / CENTS)
    percentage = round(100 / count, 4)

    splits = []
    for index, user_id in enumerate(user_ids):
        share = base + (CENTS if index < remainder else ZERO)
        splits.append(SplitBase(user_id=str(user_id), amount=float(share), percentage=percentage))
    return splits
