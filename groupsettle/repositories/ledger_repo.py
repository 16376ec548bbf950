"""
LedgerSnapshotReader - consistent reads of a group's obligation history.

The group, its expenses and its settlements are read inside one session
with snapshot read concern, so balance computation never observes half
of a concurrent write.
"""
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo.read_concern import ReadConcern

from groupsettle.models.expense import Expense
from groupsettle.models.group import Group
from groupsettle.models.settlement import Settlement
from groupsettle.repositories.expense_repo import ExpenseRepository
from groupsettle.repositories.group_repo import GroupRepository
from groupsettle.repositories.settlement_repo import SettlementRepository


class LedgerSnapshot(BaseModel):
    """All records of one group as of a single point in time."""
    group: Group
    expenses: List[Expense]  # including soft-deleted ones
    settlements: List[Settlement]

    @property
    def live_expenses(self) -> List[Expense]:
        return [e for e in self.expenses if not e.is_deleted]


class LedgerSnapshotReader:
    """Reads a LedgerSnapshot for a group."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.groups = GroupRepository(db)
        self.expenses = ExpenseRepository(db)
        self.settlements = SettlementRepository(db)

    async def read(self, group_id: str) -> Optional[LedgerSnapshot]:
        """Returns None if the group does not exist."""
        async with await self.db.client.start_session() as session:
            async with session.start_transaction(read_concern=ReadConcern("snapshot")):
                group = await self.groups.get_group(group_id, session=session)
                if group is None:
                    return None
                expenses = await self.expenses.list_for_group(
                    group_id, include_deleted=True, session=session
                )
                settlements = await self.settlements.list_for_group(group_id, session=session)

        return LedgerSnapshot(group=group, expenses=expenses, settlements=settlements)
