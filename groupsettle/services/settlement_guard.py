"""
Settlement idempotency guard.

Decides from persisted settlement history alone whether a payment was
already recorded. Plan entries are re-derived after every change, so an
entry's position or identity in a plan says nothing about whether it was
paid; only completed settlement records do.

Amounts are compared in whole cents: two payments are the same when their
cents differ by at most one. The write-time keys encode exactly that rule.
"""
from typing import Iterable, List, Optional

from groupsettle.core.errors import DuplicateSettlementAttempt
from groupsettle.models.ledger import PaymentPlanEntry
from groupsettle.models.settlement import Settlement
from groupsettle.utils.money import amounts_match, to_cents


def find_recorded(
    proposed: PaymentPlanEntry,
    history: Iterable[Settlement],
    currency: str,
) -> Optional[Settlement]:
    """
    Return the completed settlement matching `proposed`, if any.

    Matches on from user, to user, currency and amount within one cent.
    Every completed settlement counts, however old: a retry must never be
    recorded twice.
    """
    currency = currency.upper()
    for settlement in history:
        if not settlement.is_completed:
            continue
        if str(settlement.from_user_id) != proposed.from_user_id:
            continue
        if str(settlement.to_user_id) != proposed.to_user_id:
            continue
        if settlement.currency.upper() != currency:
            continue
        if not amounts_match(settlement.amount, proposed.amount):
            continue
        return settlement
    return None


def already_recorded(
    proposed: PaymentPlanEntry,
    history: Iterable[Settlement],
    currency: str,
) -> bool:
    return find_recorded(proposed, history, currency) is not None


def ensure_not_recorded(
    proposed: PaymentPlanEntry,
    history: Iterable[Settlement],
    currency: str,
) -> None:
    """Raise DuplicateSettlementAttempt carrying the existing record."""
    existing = find_recorded(proposed, history, currency)
    if existing is not None:
        raise DuplicateSettlementAttempt(existing)


def dedupe_keys(group_id, proposed: PaymentPlanEntry) -> List[str]:
    """
    Write-time form of the guard predicate.

    A payment of c cents claims the keys for c and c + 1. Two payments
    share a key exactly when their cents differ by at most one, so the
    unique index on completed settlements rejects the same pairs that
    find_recorded matches, even for writers racing past the read check.
    """
    cents = to_cents(proposed.amount)
    prefix = ":".join([
        str(group_id),
        proposed.from_user_id,
        proposed.to_user_id,
        proposed.currency.upper(),
    ])
    return [f"{prefix}:{cents}", f"{prefix}:{cents + 1}"]
