from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response, status

from groupsettle.core.auth import get_current_user_id
from groupsettle.schemas.settlement import (
    SettlementCreate,
    SettlementRecordResponse,
    SettlementResponse,
)
from groupsettle.services.settlement_service import SettlementService

router = APIRouter()


@router.get("/groups/{group_id}/settlements", response_model=List[SettlementResponse])
async def list_group_settlements(group_id: str, user_id: str = Depends(get_current_user_id)):
    """Settlement history, newest first."""
    settlements = await SettlementService.list_for_group(group_id, user_id)
    return [SettlementResponse.from_model(s) for s in settlements]


@router.post("/groups/{group_id}/settlements", response_model=SettlementRecordResponse)
async def record_settlement(
    group_id: str,
    settlement_in: SettlementCreate,
    response: Response,
    user_id: str = Depends(get_current_user_id)
):
    """
    Record a payment as completed.

    201 when recorded, 200 with the existing record when this payment was
    already recorded (safe to retry).
    """
    settlement, created = await SettlementService.record_payment(group_id, settlement_in, user_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return SettlementRecordResponse(
        settlement=SettlementResponse.from_model(settlement),
        created=created
    )


@router.post(
    "/groups/{group_id}/settlements/pending",
    response_model=SettlementResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_pending_settlement(
    group_id: str,
    settlement_in: SettlementCreate,
    user_id: str = Depends(get_current_user_id)
):
    settlement = await SettlementService.create_pending(group_id, settlement_in, user_id)
    return SettlementResponse.from_model(settlement)


@router.put("/settlements/{settlement_id}/mark-paid", response_model=SettlementRecordResponse)
async def mark_settlement_paid(settlement_id: str, user_id: str = Depends(get_current_user_id)):
    settlement, created = await SettlementService.mark_paid(settlement_id, user_id)
    return SettlementRecordResponse(
        settlement=SettlementResponse.from_model(settlement),
        created=created
    )


@router.delete("/settlements/{settlement_id}")
async def delete_settlement(settlement_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = await SettlementService.delete(settlement_id, user_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Settlement not found")
    return {"message": "Settlement deleted successfully"}
