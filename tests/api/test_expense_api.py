"""
Test expense endpoints
"""
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch

from fastapi import HTTPException
from httpx import AsyncClient, ASGITransport

from groupsettle.core.auth import get_current_user_id
from groupsettle.core.errors import MissingExchangeRate
from groupsettle.main import app

SERVICE = "groupsettle.services.expense_service.ExpenseService"


@pytest_asyncio.fixture
async def client(users):
    app.dependency_overrides[get_current_user_id] = lambda: users["alice"]
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_create_expense(client, users, group_id, make_expense):
    alice, bob = users["alice"], users["bob"]
    expense = make_expense(alice, 50, {alice: 25, bob: 25}, description="Pizza")
    create = AsyncMock(return_value=expense)

    with patch(f"{SERVICE}.create", new=create):
        response = await client.post(
            f"/api/v1/groups/{group_id}/expenses",
            json={
                "description": "Pizza",
                "amount": 50,
                "currency": "USD",
                "paid_by": alice,
                "splits": [{"user_id": alice, "amount": 25}, {"user_id": bob, "amount": 25}],
            }
        )

    assert response.status_code == 201
    data = response.json()
    assert data["description"] == "Pizza"
    assert data["paid_by"] == alice
    assert [s["user_id"] for s in data["splits"]] == [alice, bob]
    expense_in = create.call_args.args[1]
    assert len(expense_in.splits) == 2


@pytest.mark.asyncio
async def test_create_expense_validation(client, users, group_id):
    response = await client.post(
        f"/api/v1/groups/{group_id}/expenses",
        json={"description": "Pizza", "amount": -5, "currency": "USD", "paid_by": users["alice"]}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_expense_missing_rate(client, users, group_id):
    with patch(f"{SERVICE}.create", new=AsyncMock(side_effect=MissingExchangeRate("GBP", "USD"))):
        response = await client.post(
            f"/api/v1/groups/{group_id}/expenses",
            json={"description": "Ferry", "amount": 10, "currency": "GBP", "paid_by": users["alice"]}
        )

    assert response.status_code == 422
    assert response.json()["from_currency"] == "GBP"


@pytest.mark.asyncio
async def test_list_expenses_forbidden(client, group_id):
    error = HTTPException(status_code=403, detail="Access denied to this group")

    with patch(f"{SERVICE}.list_for_group", new=AsyncMock(side_effect=error)):
        response = await client.get(f"/api/v1/groups/{group_id}/expenses")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_delete_expense(client, users, make_expense):
    expense = make_expense(users["alice"], 10, {users["alice"]: 10})

    with patch(f"{SERVICE}.delete", new=AsyncMock(return_value=True)):
        response = await client.delete(f"/api/v1/expenses/{expense.id}")

    assert response.status_code == 200
    assert "deleted" in response.json()["message"]
