"""
Group model - read-only view used as the membership provider.

Groups and their members are managed by another service; the
settlement engine only needs active members (to seed zero balances and
label results), the admins (correction path) and the base currency.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from groupsettle.models.base import MongoModel, PyObjectId, utcnow


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


# Embedded documents don't need MongoModel (no separate _id)
class GroupMember(BaseModel):
    user_id: PyObjectId
    name: str
    email: Optional[str] = None
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True


class Group(MongoModel):
    name: str
    description: Optional[str] = None
    base_currency: str = "USD"
    members: List[GroupMember] = []
    admin_ids: List[PyObjectId] = []
    created_by: Optional[PyObjectId] = None

    def active_members(self) -> List[GroupMember]:
        return [m for m in self.members if m.is_active]

    def is_active_member(self, user_id) -> bool:
        return any(str(m.user_id) == str(user_id) for m in self.active_members())

    def is_admin(self, user_id) -> bool:
        if any(str(a) == str(user_id) for a in self.admin_ids):
            return True
        return any(
            str(m.user_id) == str(user_id) and m.role == MemberRole.ADMIN
            for m in self.members
        )

    def member_name(self, user_id) -> str:
        for member in self.members:
            if str(member.user_id) == str(user_id):
                return member.name
        return "Unknown"
