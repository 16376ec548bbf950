from typing import Dict, List
from pydantic import BaseModel


class BalanceResponse(BaseModel):
    user_id: str
    user_name: str
    currency: str
    amount: float


class GroupBalancesResponse(BaseModel):
    group_id: str
    base_currency: str
    balances: Dict[str, List[BalanceResponse]]
    is_settled: bool


class PaymentResponse(BaseModel):
    from_user_id: str
    from_user_name: str
    to_user_id: str
    to_user_name: str
    amount: float
    currency: str


class PlanSavingsResponse(BaseModel):
    optimized_count: int
    unoptimized_count: int
    transactions_saved: int


class CurrencyPlanResponse(BaseModel):
    currency: str
    payments: List[PaymentResponse]
    savings: PlanSavingsResponse


class GroupPlanResponse(BaseModel):
    group_id: str
    plans: List[CurrencyPlanResponse]


class ReconciledPlanResponse(BaseModel):
    group_id: str
    target_currency: str
    balances: List[BalanceResponse]
    payments: List[PaymentResponse]
