"""
SettlementRepository - settlement records.

Completed settlements are only ever appended (or deleted by an admin as a
correction). The append relies on the unique dedupe_keys index so that a
repeated payment cannot be inserted twice, even by concurrent writers.
"""
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from groupsettle.core.errors import DuplicateSettlementAttempt
from groupsettle.models.base import utcnow
from groupsettle.models.settlement import Settlement, SettlementStatus


class SettlementRepository:
    """Repository for settlement records."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["settlements"]

    async def get(self, settlement_id: str) -> Optional[Settlement]:
        if not ObjectId.is_valid(settlement_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(settlement_id)})
        if doc:
            return Settlement(**doc)
        return None

    async def get_by_dedupe_keys(self, dedupe_keys: List[str]) -> Optional[Settlement]:
        doc = await self.collection.find_one({"dedupe_keys": {"$in": dedupe_keys}})
        if doc:
            return Settlement(**doc)
        return None

    async def list_for_group(self, group_id: str, session=None) -> List[Settlement]:
        """All settlements of a group, newest first."""
        docs = await self.collection.find(
            {"group_id": ObjectId(group_id)}, session=session
        ).sort("created_at", -1).to_list(None)
        return [Settlement(**doc) for doc in docs]

    async def insert_pending(self, settlement: Settlement) -> Settlement:
        settlement.status = SettlementStatus.PENDING.value
        settlement.dedupe_keys = None
        result = await self.collection.insert_one(settlement.to_document())
        settlement.id = result.inserted_id
        return settlement

    async def append_completed(self, settlement: Settlement) -> Settlement:
        """
        Insert a completed settlement in one write.

        Raises DuplicateSettlementAttempt (carrying the stored record) when
        one of its dedupe keys is already taken.
        """
        if settlement.status != SettlementStatus.COMPLETED or not settlement.dedupe_keys:
            raise ValueError("append_completed needs a completed settlement with dedupe keys")
        try:
            result = await self.collection.insert_one(settlement.to_document())
        except DuplicateKeyError:
            existing = await self.get_by_dedupe_keys(settlement.dedupe_keys)
            raise DuplicateSettlementAttempt(existing)
        settlement.id = result.inserted_id
        return settlement

    async def complete_pending(
        self, settlement_id: str, paid_at: datetime, dedupe_keys: List[str]
    ) -> Optional[Settlement]:
        """
        Flip a pending settlement to completed.

        Conditional on status still being pending: of two concurrent
        callers only one gets the document back, the other gets None.
        """
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": ObjectId(settlement_id), "status": SettlementStatus.PENDING.value},
                {"$set": {
                    "status": SettlementStatus.COMPLETED.value,
                    "paid_at": paid_at,
                    "dedupe_keys": dedupe_keys,
                    "updated_at": utcnow()
                }},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            existing = await self.get_by_dedupe_keys(dedupe_keys)
            raise DuplicateSettlementAttempt(existing)
        if doc:
            return Settlement(**doc)
        return None

    async def delete(self, settlement_id: str) -> bool:
        if not ObjectId.is_valid(settlement_id):
            return False
        result = await self.collection.delete_one({"_id": ObjectId(settlement_id)})
        return result.deleted_count > 0
