from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId

from groupsettle.models.group import Group


class GroupRepository:
    """Read access to groups and their members (membership provider)."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["groups"]

    async def get_group(self, group_id: str, session=None) -> Optional[Group]:
        """Get a group by id, None if missing or id is malformed."""
        if not ObjectId.is_valid(group_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(group_id)}, session=session)
        if doc:
            return Group(**doc)
        return None
