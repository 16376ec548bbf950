from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from groupsettle.models.base import MongoModel, PyObjectId


class SettlementStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class Settlement(MongoModel):
    """
    One payment between two group members.

    Invariants:
    - amount > 0, from_user_id != to_user_id
    - Once completed, amount/currency/parties never change; the only
      correction is deletion by a group admin
    - Completed records carry dedupe_keys guarded by a unique index
    """
    group_id: PyObjectId
    from_user_id: PyObjectId
    to_user_id: PyObjectId
    amount: float = Field(gt=0)
    currency: str
    status: SettlementStatus = SettlementStatus.PENDING
    paid_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    dedupe_keys: Optional[List[str]] = None
    created_by: Optional[PyObjectId] = None

    @property
    def is_completed(self) -> bool:
        return self.status == SettlementStatus.COMPLETED
