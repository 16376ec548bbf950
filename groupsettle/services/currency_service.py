"""
Currency reconciliation.

Converts per-currency balance sets into one balance set in a target
currency using an injected rate table. The per-currency balances are
never modified; the reconciled view is always derived from them.
"""
import logging
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from groupsettle.core.config import settings
from groupsettle.core.errors import InvariantViolation, MissingExchangeRate
from groupsettle.models.ledger import BalancesByCurrency, PaymentPlanEntry
from groupsettle.services.simplifier import simplify
from groupsettle.utils.money import CONSERVATION_TOLERANCE, ZERO, is_zero, qround, to_decimal

logger = logging.getLogger(__name__)


class RateTable:
    """
    Currency -> currency rate lookup.

    rates[from][to] is how many units of `to` one unit of `from` buys.
    Same-currency lookups return 1; any other missing pair raises
    MissingExchangeRate, there is no implicit 1:1 fallback.
    """

    def __init__(self, rates: Mapping[str, Mapping[str, float]]):
        self._rates: Dict[str, Dict[str, Decimal]] = {
            source.upper(): {target.upper(): to_decimal(rate) for target, rate in targets.items()}
            for source, targets in rates.items()
        }

    def rate(self, from_currency: str, to_currency: str) -> Decimal:
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return Decimal("1")
        rate = self._rates.get(from_currency, {}).get(to_currency)
        if rate is None:
            raise MissingExchangeRate(from_currency, to_currency)
        return rate

    def convert(self, amount, from_currency: str, to_currency: str) -> Decimal:
        return to_decimal(amount) * self.rate(from_currency, to_currency)

    def currencies(self) -> List[str]:
        found = set(self._rates)
        for targets in self._rates.values():
            found.update(targets)
        return sorted(found)


def get_rate_table() -> RateTable:
    """Rate table from configuration (refreshed outside this service)."""
    return RateTable(settings.EXCHANGE_RATES)


def base_currency_amount(amount, currency: str, base_currency: str, rate_table: RateTable) -> Decimal:
    """Snapshot conversion stored on an expense when it is created."""
    return qround(rate_table.convert(amount, currency, base_currency))


def reconcile(
    balances_by_currency: BalancesByCurrency,
    target_currency: str,
    rate_table: RateTable,
    drift_tolerance: Optional[float] = None,
) -> Dict[str, Decimal]:
    """
    Merge per-currency balances into one balance map in target_currency.

    Every rate is resolved before anything is summed, so a missing rate
    fails the whole request. Inconsistent rates can leave the unified map
    slightly off zero; that drift must stay within
    max(drift_tolerance * volume, 0.01) where volume is the converted sum
    of positive balances. Accepted drift is assigned to the largest
    balance so the result conserves exactly.

    Raises MissingExchangeRate, InvariantViolation.
    """
    target_currency = target_currency.upper()
    if drift_tolerance is None:
        drift_tolerance = settings.RECONCILIATION_DRIFT_TOLERANCE

    rates = {
        currency: rate_table.rate(currency, target_currency)
        for currency in balances_by_currency
    }

    unified: Dict[str, Decimal] = {}
    volume = ZERO
    for currency, balances in sorted(balances_by_currency.items()):
        rate = rates[currency]
        for user_id, amount in balances.items():
            converted = to_decimal(amount) * rate
            unified[user_id] = unified.get(user_id, ZERO) + converted
            if converted > 0:
                volume += converted

    drift = sum(unified.values(), ZERO)
    bound = max(to_decimal(drift_tolerance) * volume, CONSERVATION_TOLERANCE)
    if abs(drift) > bound:
        logger.error(
            "Reconciled balances in %s drift by %s (bound %s); rate table is inconsistent",
            target_currency, drift, bound,
        )
        raise InvariantViolation(
            f"Reconciled balances in {target_currency} sum to {drift}, allowed {bound}",
            currency=target_currency,
            drift=drift,
        )

    if unified and drift != ZERO:
        # ties on magnitude go to the lower user id
        absorber = min(unified, key=lambda user_id: (-abs(unified[user_id]), user_id))
        unified[absorber] -= drift

    return {
        user_id: amount
        for user_id, amount in sorted(unified.items())
        if not is_zero(amount)
    }


def reconciled_plan(
    balances_by_currency: BalancesByCurrency,
    target_currency: str,
    rate_table: RateTable,
    drift_tolerance: Optional[float] = None,
) -> List[PaymentPlanEntry]:
    """Reconcile into target_currency, then simplify once."""
    unified = reconcile(balances_by_currency, target_currency, rate_table, drift_tolerance)
    return simplify(unified, target_currency.upper())
