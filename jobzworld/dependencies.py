"""FastAPI dependencies for database sessions, services, authentication and authorization."""

from typing import Annotated, AsyncIterator
from fastapi import Depends, Path, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import TokenService
from .db import Database
from .errors import Forbidden, InvalidToken, Unauthorized
from .mailer import Mailer
from .models import User, UserRole
from .schemas import MAX_DB_INT
from .services import AuthService


# ==================== Request Parameters ====================

# Ids and pages end up in INTEGER comparisons and OFFSET clauses
ResourceId = Annotated[int, Path(ge=1, le=MAX_DB_INT)]
PageNumber = Annotated[int, Query(le=MAX_DB_INT)]


# ==================== Application State ====================


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


async def get_session(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    """One session per request; anything not committed is rolled back on close."""
    async with database.session() as session:
        yield session


def get_auth_service(
    session: AsyncSession = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
) -> AuthService:
    return AuthService(session, tokens, mailer, clock=tokens.clock)


# ==================== Authentication Dependencies ====================

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    tokens: TokenService = Depends(get_token_service),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Get authenticated user from the bearer access token. Raises 401 if missing, invalid or expired."""
    if credentials is None:
        raise Unauthorized("Access token required")

    try:
        payload = tokens.verify_access(credentials.credentials)
    except InvalidToken as e:
        raise Unauthorized("Invalid or expired token") from e

    user = await session.get(User, payload.user_id)
    if user is None:
        raise Unauthorized("User not found")
    return user


def require_role(role: UserRole):
    """Build a dependency that admits only users of the given role (403 otherwise)."""

    async def _require_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role.value:
            raise Forbidden("Insufficient permissions")
        return current_user

    return _require_role


require_candidate = require_role(UserRole.CANDIDATE)
require_employer = require_role(UserRole.EMPLOYER)
