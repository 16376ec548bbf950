from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from groupsettle.models.expense import Expense, Split
from groupsettle.models.group import Group, GroupMember, MemberRole
from groupsettle.models.settlement import Settlement, SettlementStatus
from groupsettle.repositories.ledger_repo import LedgerSnapshot

# Fixed ids so that alice < bob < carol < dave (tie-break order)
ALICE = "000000000000000000000001"
BOB = "000000000000000000000002"
CAROL = "000000000000000000000003"
DAVE = "000000000000000000000004"
GROUP_ID = "0000000000000000000000aa"

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def users():
    return {"alice": ALICE, "bob": BOB, "carol": CAROL, "dave": DAVE}


@pytest.fixture
def group_id():
    return GROUP_ID


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def group():
    """Alice (admin), Bob and Carol; Dave left the group."""
    return Group(
        _id=ObjectId(GROUP_ID),
        name="Trip",
        base_currency="USD",
        members=[
            GroupMember(user_id=ALICE, name="Alice", role=MemberRole.ADMIN),
            GroupMember(user_id=BOB, name="Bob"),
            GroupMember(user_id=CAROL, name="Carol"),
            GroupMember(user_id=DAVE, name="Dave", is_active=False),
        ],
        admin_ids=[ALICE],
        created_by=ALICE,
    )


@pytest.fixture
def make_expense():
    def _make(paid_by, amount, splits, currency="USD", updated_at=T0, **kwargs):
        return Expense(
            group_id=GROUP_ID,
            description=kwargs.pop("description", "Dinner"),
            amount=amount,
            currency=currency,
            base_currency_amount=kwargs.pop("base_currency_amount", amount),
            paid_by=paid_by,
            splits=[Split(user_id=user_id, amount=share) for user_id, share in splits.items()],
            created_by=paid_by,
            created_at=updated_at,
            updated_at=updated_at,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_settlement():
    def _make(from_user, to_user, amount, currency="USD",
              status=SettlementStatus.COMPLETED, paid_at=None):
        if paid_at is None and status == SettlementStatus.COMPLETED:
            paid_at = T0 + timedelta(hours=1)
        return Settlement(
            group_id=GROUP_ID,
            from_user_id=from_user,
            to_user_id=to_user,
            amount=amount,
            currency=currency,
            status=status,
            paid_at=paid_at,
            created_at=paid_at or T0,
        )
    return _make


@pytest.fixture
def make_snapshot(group):
    def _make(expenses=(), settlements=()):
        return LedgerSnapshot(group=group, expenses=list(expenses), settlements=list(settlements))
    return _make


@pytest.fixture
def mock_db():
    """Motor database double: every collection method is an AsyncMock."""
    db = MagicMock()
    collections = {}
    for name in ("groups", "expenses", "settlements"):
        collection = MagicMock()
        collection.insert_one = AsyncMock()
        collection.find_one = AsyncMock()
        collection.find_one_and_update = AsyncMock()
        collection.update_one = AsyncMock()
        collection.replace_one = AsyncMock()
        collection.delete_one = AsyncMock()
        collections[name] = collection
        setattr(db, name, collection)
    db.__getitem__.side_effect = collections.__getitem__
    return db
