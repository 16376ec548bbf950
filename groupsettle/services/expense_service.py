import logging
from typing import List

from fastapi import HTTPException, status

from groupsettle.db.mongo import get_database
from groupsettle.models.base import utcnow
from groupsettle.models.expense import Expense, Split
from groupsettle.models.group import Group
from groupsettle.repositories.expense_repo import ExpenseRepository
from groupsettle.repositories.group_repo import GroupRepository
from groupsettle.schemas.expense import ExpenseCreate, ExpenseUpdate, SplitBase
from groupsettle.services.currency_service import RateTable, base_currency_amount, get_rate_table
from groupsettle.utils.expense_validation import balance_splits, equal_splits, validate_expense

logger = logging.getLogger(__name__)


async def _load_group(group_id: str, user_id: str) -> Group:
    db = await get_database()
    group = await GroupRepository(db).get_group(group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    if not group.is_active_member(user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied to this group")
    return group


def _ensure_members(group: Group, paid_by: str, splits: List[SplitBase]) -> None:
    if not group.is_active_member(paid_by):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payer is not a member of the group")
    if any(not group.is_active_member(split.user_id) for split in splits):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="One or more users in splits are not members of the group"
        )


class ExpenseService:
    @staticmethod
    async def list_for_group(group_id: str, user_id: str) -> List[Expense]:
        await _load_group(group_id, user_id)
        db = await get_database()
        return await ExpenseRepository(db).list_for_group(group_id)

    @staticmethod
    async def create(
        group_id: str,
        expense_in: ExpenseCreate,
        user_id: str,
        rate_table: RateTable | None = None,
    ) -> Expense:
        """
        Create an expense.

        Without splits the amount is shared equally by all active members.
        base_currency_amount is taken from the request or converted with the
        current rate table, and never recomputed afterwards.
        """
        group = await _load_group(group_id, user_id)

        splits = expense_in.splits or equal_splits(
            expense_in.amount, [str(m.user_id) for m in group.active_members()]
        )
        currency = validate_expense(expense_in.amount, expense_in.currency, splits)
        _ensure_members(group, expense_in.paid_by, splits)
        splits = balance_splits(expense_in.amount, splits)

        base_amount = expense_in.base_currency_amount
        if base_amount is None:
            base_amount = float(base_currency_amount(
                expense_in.amount, currency, group.base_currency, rate_table or get_rate_table()
            ))

        expense = Expense(
            group_id=group.id,
            description=expense_in.description,
            amount=expense_in.amount,
            currency=currency,
            base_currency_amount=base_amount,
            category=expense_in.category,
            date=expense_in.date or utcnow(),
            paid_by=expense_in.paid_by,
            splits=[Split(**split.model_dump()) for split in splits],
            created_by=user_id,
            updated_by=user_id,
        )

        db = await get_database()
        expense = await ExpenseRepository(db).insert(expense)
        logger.info("Created expense %s in group %s", expense.id, group_id)
        return expense

    @staticmethod
    async def update(
        expense_id: str,
        expense_in: ExpenseUpdate,
        user_id: str,
        rate_table: RateTable | None = None,
    ) -> Expense:
        """
        Edit an expense; the result is re-validated like a new one.

        base_currency_amount is only re-derived when amount or currency
        changed and no explicit value was sent.
        """
        db = await get_database()
        repo = ExpenseRepository(db)
        existing = await repo.get(expense_id)
        if existing is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")

        group = await _load_group(str(existing.group_id), user_id)
        if user_id not in (str(existing.created_by), str(existing.paid_by)) and not group.is_admin(user_id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot edit this expense")

        update_data = expense_in.model_dump(exclude_unset=True)
        amount = update_data.get("amount", existing.amount)
        currency = update_data.get("currency", existing.currency)
        paid_by = update_data.get("paid_by", str(existing.paid_by))
        if expense_in.splits is not None:
            splits = expense_in.splits
        else:
            splits = [SplitBase(user_id=str(s.user_id), amount=s.amount, percentage=s.percentage)
                      for s in existing.splits]

        currency = validate_expense(amount, currency, splits)
        _ensure_members(group, paid_by, splits)
        splits = balance_splits(amount, splits)

        base_amount = update_data.get("base_currency_amount")
        if base_amount is None:
            if amount != existing.amount or currency != existing.currency:
                base_amount = float(base_currency_amount(
                    amount, currency, group.base_currency, rate_table or get_rate_table()
                ))
            else:
                base_amount = existing.base_currency_amount

        doc = existing.model_dump(by_alias=True)
        doc.update({
            "description": update_data.get("description", existing.description),
            "amount": amount,
            "currency": currency,
            "base_currency_amount": base_amount,
            "category": update_data.get("category", existing.category),
            "date": update_data.get("date") or existing.date,
            "paid_by": paid_by,
            "splits": [split.model_dump() for split in splits],
            "updated_by": user_id,
        })
        updated = Expense(**doc)
        return await repo.replace(updated)

    @staticmethod
    async def delete(expense_id: str, user_id: str) -> bool:
        db = await get_database()
        repo = ExpenseRepository(db)
        existing = await repo.get(expense_id)
        if existing is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")

        group = await _load_group(str(existing.group_id), user_id)
        if user_id not in (str(existing.created_by), str(existing.paid_by)) and not group.is_admin(user_id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot delete this expense")

        deleted = await repo.soft_delete(expense_id, user_id)
        if deleted:
            logger.info("Deleted expense %s from group %s", expense_id, existing.group_id)
        return deleted
