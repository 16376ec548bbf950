from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from groupsettle.core.auth import get_current_user_id
from groupsettle.models.group import Group
from groupsettle.models.ledger import PaymentPlanEntry
from groupsettle.schemas.ledger import (
    BalanceResponse,
    CurrencyPlanResponse,
    GroupBalancesResponse,
    GroupPlanResponse,
    PaymentResponse,
    PlanSavingsResponse,
    ReconciledPlanResponse,
)
from groupsettle.services.ledger_service import is_group_settled
from groupsettle.services.settlement_service import SettlementService
from groupsettle.services.simplifier import plan_savings

router = APIRouter()


def _balance_rows(group: Group, currency: str, balances) -> List[BalanceResponse]:
    return [
        BalanceResponse(
            user_id=user_id,
            user_name=group.member_name(user_id),
            currency=currency,
            amount=float(amount)
        )
        for user_id, amount in balances.items()
    ]


def _payment_rows(group: Group, plan: List[PaymentPlanEntry]) -> List[PaymentResponse]:
    return [
        PaymentResponse(
            from_user_id=entry.from_user_id,
            from_user_name=group.member_name(entry.from_user_id),
            to_user_id=entry.to_user_id,
            to_user_name=group.member_name(entry.to_user_id),
            amount=float(entry.amount),
            currency=entry.currency
        )
        for entry in plan
    ]


@router.get("/{group_id}/balances", response_model=GroupBalancesResponse)
async def get_group_balances(group_id: str, user_id: str = Depends(get_current_user_id)):
    """Net balances per currency (positive = is owed)."""
    snapshot, balances = await SettlementService.get_balances(group_id, user_id)
    group = snapshot.group
    return GroupBalancesResponse(
        group_id=str(group.id),
        base_currency=group.base_currency,
        balances={
            currency: _balance_rows(group, currency, currency_balances)
            for currency, currency_balances in balances.items()
        },
        is_settled=is_group_settled(balances)
    )


@router.get("/{group_id}/plan", response_model=GroupPlanResponse)
async def get_group_plan(group_id: str, user_id: str = Depends(get_current_user_id)):
    """Suggested payments, one plan per currency."""
    snapshot, balances, plans = await SettlementService.get_plans(group_id, user_id)
    group = snapshot.group
    return GroupPlanResponse(
        group_id=str(group.id),
        plans=[
            CurrencyPlanResponse(
                currency=currency,
                payments=_payment_rows(group, plan),
                savings=PlanSavingsResponse(**plan_savings(balances[currency], plan).model_dump())
            )
            for currency, plan in plans.items()
        ]
    )


@router.get("/{group_id}/plan/reconciled", response_model=ReconciledPlanResponse)
async def get_reconciled_plan(
    group_id: str,
    target: Optional[str] = Query(None, min_length=3, max_length=3),
    user_id: str = Depends(get_current_user_id)
):
    """Single plan with every currency converted into `target` (group base by default)."""
    snapshot, unified, plan = await SettlementService.get_reconciled_plan(group_id, user_id, target)
    group = snapshot.group
    target_currency = (target or group.base_currency).upper()
    return ReconciledPlanResponse(
        group_id=str(group.id),
        target_currency=target_currency,
        balances=_balance_rows(group, target_currency, unified),
        payments=_payment_rows(group, plan)
    )
