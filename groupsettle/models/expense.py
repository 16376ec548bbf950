"""
Expense model - an obligation record.

- One payer, one or more splits (user, owed amount, owed percentage)
- sum(split.amount) == amount within 0.01
- base_currency_amount is fixed from the rate snapshot at creation time
- Soft-deleted: deleted expenses stay in the collection so the
  obligation history keeps its change timestamps
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from groupsettle.models.base import MongoModel, PyObjectId, utcnow


class ExpenseCategory(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    TRAVEL = "travel"
    HOUSING = "housing"
    OTHER = "other"


class Split(BaseModel):
    user_id: PyObjectId
    amount: float
    percentage: float = 0.0


class Expense(MongoModel):
    group_id: PyObjectId
    description: str
    amount: float
    currency: str  # ISO 4217, upper case
    base_currency_amount: float
    category: ExpenseCategory = ExpenseCategory.OTHER
    date: datetime = Field(default_factory=utcnow)
    paid_by: PyObjectId
    splits: List[Split]

    created_by: PyObjectId
    updated_by: Optional[PyObjectId] = None
    is_deleted: bool = False
