from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from groupsettle.models.expense import ExpenseCategory

class SplitBase(BaseModel):
    user_id: str
    amount: float
    percentage: float = 0.0

    model_config = {"from_attributes": True}

class ExpenseBase(BaseModel):
    description: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    category: ExpenseCategory = ExpenseCategory.OTHER
    date: Optional[datetime] = None
    paid_by: str

    model_config = {"from_attributes": True}

class ExpenseCreate(ExpenseBase):
    # Omitted: computed from the configured rate snapshot
    base_currency_amount: Optional[float] = Field(None, gt=0)
    # Omitted: split equally among all active members
    splits: List[SplitBase] = []

class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=200)
    amount: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    base_currency_amount: Optional[float] = Field(None, gt=0)
    category: Optional[ExpenseCategory] = None
    date: Optional[datetime] = None
    paid_by: Optional[str] = None
    splits: Optional[List[SplitBase]] = None

class ExpenseResponse(BaseModel):
    id: str
    group_id: str
    description: str
    amount: float
    currency: str
    base_currency_amount: float
    category: str
    date: datetime
    paid_by: str
    splits: List[SplitBase]
    created_by: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, expense) -> "ExpenseResponse":
        return cls(
            id=str(expense.id),
            group_id=str(expense.group_id),
            description=expense.description,
            amount=expense.amount,
            currency=expense.currency,
            base_currency_amount=expense.base_currency_amount,
            category=expense.category,
            date=expense.date,
            paid_by=str(expense.paid_by),
            splits=[
                SplitBase(user_id=str(s.user_id), amount=s.amount, percentage=s.percentage)
                for s in expense.splits
            ],
            created_by=str(expense.created_by),
            created_at=expense.created_at,
            updated_at=expense.updated_at,
        )
