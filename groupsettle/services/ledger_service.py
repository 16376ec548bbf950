"""
Ledger reader - projects obligation records into net balances.

Balances are always derived fresh from the full record set of a group
and tracked per original transaction currency. Nothing here touches the
database; the same inputs always give the same output.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from groupsettle.core.errors import InvariantViolation
from groupsettle.models.expense import Expense
from groupsettle.models.group import GroupMember
from groupsettle.models.ledger import Balance, BalancesByCurrency
from groupsettle.models.settlement import Settlement, SettlementStatus
from groupsettle.utils.money import (
    CONSERVATION_TOLERANCE,
    ZERO,
    is_zero,
    to_decimal,
)

logger = logging.getLogger(__name__)


def compute_balances(
    members: Iterable[GroupMember],
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
) -> BalancesByCurrency:
    """
    Compute per-currency net balances for a group.

    Algorithm:
    1. Seed every active member with 0 in every currency in use
    2. Expense: each split user -= split amount, payer += the split total
       (stored splits equal the amount; older records may be a cent off)
    3. Completed settlement: from_user += amount, to_user -= amount
       (pending settlements are advisory and ignored)
    4. Check conservation per currency
    5. Drop balances below epsilon

    Returns: { currency: { user_id: net_amount } }
    Raises InvariantViolation if a currency does not sum to zero.
    """
    live_expenses = [e for e in expenses if not e.is_deleted]
    completed = [s for s in settlements if s.status == SettlementStatus.COMPLETED]

    currencies = {e.currency for e in live_expenses} | {s.currency for s in completed}
    member_ids = [str(m.user_id) for m in members if m.is_active]

    ledger: Dict[str, Dict[str, Decimal]] = {
        currency: {user_id: ZERO for user_id in member_ids}
        for currency in currencies
    }

    for expense in live_expenses:
        balances = ledger[expense.currency]
        payer = str(expense.paid_by)
        shared = ZERO
        for split in expense.splits:
            user_id = str(split.user_id)
            share = to_decimal(split.amount)
            balances[user_id] = balances.get(user_id, ZERO) - share
            shared += share
        balances[payer] = balances.get(payer, ZERO) + shared

    for settlement in completed:
        balances = ledger[settlement.currency]
        amount = to_decimal(settlement.amount)
        from_id = str(settlement.from_user_id)
        to_id = str(settlement.to_user_id)
        balances[from_id] = balances.get(from_id, ZERO) + amount
        balances[to_id] = balances.get(to_id, ZERO) - amount

    for currency, balances in ledger.items():
        check_conservation(balances, currency)

    return {
        currency: {
            user_id: amount
            for user_id, amount in sorted(balances.items())
            if not is_zero(amount)
        }
        for currency, balances in sorted(ledger.items())
    }


def check_conservation(
    balances: Dict[str, Decimal],
    currency: str,
    tolerance: Decimal = CONSERVATION_TOLERANCE,
) -> Decimal:
    """Return the drift of a balance set; raise if it exceeds tolerance."""
    drift = sum(balances.values(), ZERO)
    if abs(drift) > tolerance:
        logger.error(
            "Ledger invariant violated for %s: balances sum to %s", currency, drift
        )
        raise InvariantViolation(
            f"Balances in {currency} sum to {drift}, expected 0",
            currency=currency,
            drift=drift,
        )
    return drift


def flatten_balances(balances_by_currency: BalancesByCurrency) -> List[Balance]:
    """Flat list of Balance rows ordered by currency, then user."""
    return [
        Balance(user_id=user_id, currency=currency, amount=amount)
        for currency, balances in sorted(balances_by_currency.items())
        for user_id, amount in sorted(balances.items())
    ]


def is_group_settled(balances_by_currency: BalancesByCurrency) -> bool:
    return all(not balances for balances in balances_by_currency.values())
