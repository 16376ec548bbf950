from typing import List
from fastapi import APIRouter, Depends, status

from groupsettle.core.auth import get_current_user_id
from groupsettle.schemas.expense import ExpenseCreate, ExpenseResponse, ExpenseUpdate
from groupsettle.services.expense_service import ExpenseService

router = APIRouter()


@router.get("/groups/{group_id}/expenses", response_model=List[ExpenseResponse])
async def list_group_expenses(group_id: str, user_id: str = Depends(get_current_user_id)):
    expenses = await ExpenseService.list_for_group(group_id, user_id)
    return [ExpenseResponse.from_model(expense) for expense in expenses]


@router.post("/groups/{group_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    group_id: str,
    expense_in: ExpenseCreate,
    user_id: str = Depends(get_current_user_id)
):
    expense = await ExpenseService.create(group_id, expense_in, user_id)
    return ExpenseResponse.from_model(expense)


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    expense_in: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id)
):
    expense = await ExpenseService.update(expense_id, expense_in, user_id)
    return ExpenseResponse.from_model(expense)


@router.delete("/expenses/{expense_id}")
async def delete_expense(expense_id: str, user_id: str = Depends(get_current_user_id)):
    await ExpenseService.delete(expense_id, user_id)
    return {"message": "Expense deleted successfully"}
