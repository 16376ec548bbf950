import pytest
from datetime import timedelta

from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from groupsettle.core.auth import create_access_token, get_current_user_id


def _credentials(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_valid_token_yields_user_id(users):
    token = create_access_token(users["carol"])
    assert await get_current_user_id(_credentials(token)) == users["carol"]


@pytest.mark.asyncio
async def test_expired_token_rejected(users):
    token = create_access_token(users["carol"], expires_delta=timedelta(minutes=-5))

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_id(_credentials(token))

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_rejected():
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_id(_credentials("not.a.token"))

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_subject_must_be_object_id():
    token = create_access_token("someone@example.com")

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_id(_credentials(token))

    assert exc_info.value.status_code == 401
