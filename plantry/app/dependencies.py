from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from plantry.shared.utils import require_auth, ForbiddenException, UnauthorizedException


def get_session_factory(request: Request) -> async_sessionmaker:
    return request.app.state.sessionmaker


async def get_session(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


async def get_current_user(request: Request, payload: dict = Depends(require_auth)) -> dict:
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedException("Invalid authentication credentials")
    request.state.user_id = user_id
    return {"id": user_id, "role": payload.get("role", "customer")}


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user["role"] != "admin":
        raise ForbiddenException("Admin access required")
    return user
