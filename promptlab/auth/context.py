"""AuthContext and FastAPI dependencies for authenticated routes.

``CurrentAuth`` pairs the authenticated user id with the request's
AsyncSession so routers can hand both to a feature service.
"""

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from promptlab.database.session import DbSession

from .manager import AuthManager


async def get_user_id(request: Request) -> UUID:
    """Resolve the caller through the app's auth manager.

    The resolved id is cached on ``request.state`` so repeated dependencies
    in one request do not re-verify the token.
    """
    cached = getattr(request.state, "user_id", None)
    if cached is not None:
        return cached

    auth_manager: AuthManager = request.app.state.auth_manager
    user = await auth_manager.authenticate(request)
    request.state.user_id = user.id
    return user.id


# Usage: async def my_route(user_id: UserId) -> Response:
UserId = Annotated[UUID, Depends(get_user_id)]


@dataclass
class AuthContext:
    """Request-scoped user id and database session."""

    user_id: UUID
    session: AsyncSession


async def get_auth_context(user_id: UserId, session: DbSession) -> AuthContext:
    """Build an AuthContext for the current request."""
    return AuthContext(user_id=user_id, session=session)


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]
