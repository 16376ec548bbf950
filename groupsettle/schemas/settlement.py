from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime

class SettlementCreate(BaseModel):
    from_user_id: str
    to_user_id: str
    amount: float = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    notes: Optional[str] = Field(None, max_length=500)

class SettlementResponse(BaseModel):
    id: str
    group_id: str
    from_user_id: str
    to_user_id: str
    amount: float
    currency: str
    status: str
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_model(cls, settlement) -> "SettlementResponse":
        return cls(
            id=str(settlement.id),
            group_id=str(settlement.group_id),
            from_user_id=str(settlement.from_user_id),
            to_user_id=str(settlement.to_user_id),
            amount=settlement.amount,
            currency=settlement.currency,
            status=settlement.status,
            paid_at=settlement.paid_at,
            notes=settlement.notes,
            created_at=settlement.created_at,
        )

class SettlementRecordResponse(BaseModel):
    """Result of a mark-paid action; created=False means it was already recorded."""
    settlement: SettlementResponse
    created: bool
