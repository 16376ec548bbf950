"""
Greedy debt simplification for a single currency.

Given net balances (positive = is owed, negative = owes) emit payments
debtor -> creditor that drive every balance to zero. Each round pairs the
largest creditor with the largest debtor (ties: lower user id first), so
N non-zero balances need at most N-1 payments. This is the usual cash-flow
heuristic, not a proven minimum.
"""
import heapq
from decimal import Decimal
from typing import Dict, List, Mapping

from groupsettle.models.ledger import BalancesByCurrency, PaymentPlanEntry, PlanSavings
from groupsettle.services.ledger_service import check_conservation
from groupsettle.utils.money import (
    CONSERVATION_TOLERANCE,
    ZERO,
    is_zero,
    qround,
    to_decimal,
)


def simplify(
    balances: Mapping[str, Decimal],
    currency: str,
    tolerance: Decimal = CONSERVATION_TOLERANCE,
) -> List[PaymentPlanEntry]:
    """
    Build the payment plan for one currency.

    Emitted amounts are rounded half-up to cents; the accumulated rounding
    residue is folded into the last payment.

    Raises InvariantViolation if the balances do not sum to zero.
    """
    exact = {user_id: to_decimal(amount) for user_id, amount in balances.items()}
    check_conservation(exact, currency, tolerance)

    # Max-heaps via negated amounts; user id breaks ties
    creditors = [(-amount, user_id) for user_id, amount in exact.items()
                 if amount > 0 and not is_zero(amount)]
    debtors = [(amount, user_id) for user_id, amount in exact.items()
               if amount < 0 and not is_zero(amount)]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    plan: List[PaymentPlanEntry] = []
    exact_total = ZERO
    emitted_total = ZERO

    while creditors and debtors:
        credit_neg, creditor = heapq.heappop(creditors)
        debt_neg, debtor = heapq.heappop(debtors)
        credit = -credit_neg
        debt = -debt_neg

        transfer = min(credit, debt)
        amount = qround(transfer)
        plan.append(PaymentPlanEntry(
            from_user_id=debtor,
            to_user_id=creditor,
            amount=amount,
            currency=currency,
        ))
        exact_total += transfer
        emitted_total += amount

        remaining_credit = credit - transfer
        remaining_debt = debt - transfer
        if not is_zero(remaining_credit):
            heapq.heappush(creditors, (-remaining_credit, creditor))
        if not is_zero(remaining_debt):
            heapq.heappush(debtors, (-remaining_debt, debtor))

    residue = qround(exact_total - emitted_total)
    if plan and residue != ZERO:
        last = plan[-1]
        plan[-1] = last.model_copy(update={"amount": last.amount + residue})

    return plan


def simplify_by_currency(
    balances_by_currency: BalancesByCurrency,
) -> Dict[str, List[PaymentPlanEntry]]:
    """One independent plan per currency (the currency-faithful view)."""
    return {
        currency: simplify(balances, currency)
        for currency, balances in sorted(balances_by_currency.items())
    }


def apply_plan(
    balances: Mapping[str, Decimal],
    plan: List[PaymentPlanEntry],
) -> Dict[str, Decimal]:
    """Balances after every payment in the plan has been made."""
    result = {user_id: to_decimal(amount) for user_id, amount in balances.items()}
    for entry in plan:
        result[entry.from_user_id] = result.get(entry.from_user_id, ZERO) + entry.amount
        result[entry.to_user_id] = result.get(entry.to_user_id, ZERO) - entry.amount
    return result


def validate_plan(
    balances: Mapping[str, Decimal],
    plan: List[PaymentPlanEntry],
    tolerance: Decimal = CONSERVATION_TOLERANCE,
) -> bool:
    """True when applying the plan leaves every balance within tolerance."""
    return all(abs(amount) <= tolerance for amount in apply_plan(balances, plan).values())


def plan_savings(
    balances: Mapping[str, Decimal],
    plan: List[PaymentPlanEntry],
) -> PlanSavings:
    """
    Compare the plan against every debtor paying every creditor directly.
    """
    creditors = sum(1 for amount in balances.values() if to_decimal(amount) > 0 and not is_zero(amount))
    debtors = sum(1 for amount in balances.values() if to_decimal(amount) < 0 and not is_zero(amount))
    unoptimized = creditors * debtors
    return PlanSavings(
        optimized_count=len(plan),
        unoptimized_count=unoptimized,
        transactions_saved=max(0, unoptimized - len(plan)),
    )
