"""
Derived ledger structures - never persisted.

- Balance: signed net amount per (user, currency); positive = is owed,
  negative = owes
- PaymentPlanEntry: one suggested payment, debtor -> creditor
- Amounts are Decimal; presentation converts at the API boundary
"""
from decimal import Decimal
from typing import Dict

from pydantic import BaseModel, ConfigDict

# currency -> user_id -> signed net amount
BalancesByCurrency = Dict[str, Dict[str, Decimal]]


class Balance(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    currency: str
    amount: Decimal


class PaymentPlanEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_user_id: str
    to_user_id: str
    amount: Decimal
    currency: str


class PlanSavings(BaseModel):
    optimized_count: int
    unoptimized_count: int
    transactions_saved: int
