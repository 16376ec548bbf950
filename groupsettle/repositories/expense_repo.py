from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId

from groupsettle.models.base import utcnow
from groupsettle.models.expense import Expense


class ExpenseRepository:
    """Expense (obligation record) database operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["expenses"]

    async def insert(self, expense: Expense) -> Expense:
        result = await self.collection.insert_one(expense.to_document())
        expense.id = result.inserted_id
        return expense

    async def get(self, expense_id: str) -> Optional[Expense]:
        """Get a live expense by id."""
        if not ObjectId.is_valid(expense_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(expense_id), "is_deleted": False})
        if doc:
            return Expense(**doc)
        return None

    async def replace(self, expense: Expense) -> Expense:
        """Replace amount/splits of an edited expense."""
        expense.updated_at = utcnow()
        await self.collection.replace_one({"_id": expense.id}, expense.to_document())
        return expense

    async def soft_delete(self, expense_id: str, user_id: str) -> bool:
        """
        Soft delete an expense.

        updated_at moves forward so the obligation history records the change.
        """
        if not ObjectId.is_valid(expense_id):
            return False
        result = await self.collection.update_one(
            {"_id": ObjectId(expense_id), "is_deleted": False},
            {"$set": {
                "is_deleted": True,
                "updated_by": ObjectId(user_id),
                "updated_at": utcnow()
            }}
        )
        return result.modified_count > 0

    async def list_for_group(self, group_id: str, include_deleted: bool = False, session=None) -> List[Expense]:
        query = {"group_id": ObjectId(group_id)}
        if not include_deleted:
            query["is_deleted"] = False
        docs = await self.collection.find(query, session=session).sort("date", -1).to_list(None)
        return [Expense(**doc) for doc in docs]
