"""Database operations for credentials: users, refresh-token sessions, reset tokens.

Functions here only stage changes on the caller's session. Committing is left to
the service layer so that multi-step operations (register, claim, rotate) stay a
single transaction.
"""

from datetime import datetime
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User, UserSession, PasswordResetToken, UserRole
from .logger import logger


# ==================== Users ====================


async def insert_user(
    session: AsyncSession, email: str, password_hash: str, role: UserRole
) -> User:
    """Stage a new unverified user and flush to obtain its id.

    Raises IntegrityError on duplicate email.
    """
    user = User(email=email, password_hash=password_hash, role=role.value, is_verified=False)
    session.add(user)
    await session.flush()
    logger.debug(f"User staged: id={user.id} email={email}")
    return user


async def select_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Retrieve a user by (already normalised) email address."""
    result = await session.execute(select(User).where(User.email == email))
    return result.scalars().first()


async def select_user(session: AsyncSession, user_id: int) -> User | None:
    """Retrieve a user by ID."""
    return await session.get(User, user_id)


async def mark_user_verified(session: AsyncSession, user_id: int) -> int:
    """Set is_verified; returns the number of rows touched (0 for unknown ids)."""
    result = await session.execute(
        update(User).where(User.id == user_id).values(is_verified=True)
    )
    return result.rowcount


async def update_password_hash(session: AsyncSession, user_id: int, password_hash: str) -> None:
    await session.execute(
        update(User).where(User.id == user_id).values(password_hash=password_hash)
    )


# ==================== Sessions ====================


async def replace_sessions(
    session: AsyncSession, user_id: int, token: str, expires_at: datetime
) -> None:
    """Delete every session of the user, then store the new refresh token.

    Both statements run in the caller's transaction, so at most one session
    per user survives the commit.
    """
    await session.execute(delete(UserSession).where(UserSession.user_id == user_id))
    session.add(UserSession(id=token, user_id=user_id, expires_at=expires_at))
    await session.flush()


async def select_live_session(
    session: AsyncSession, token: str, now: datetime
) -> UserSession | None:
    """Return the session row for token unless it has expired."""
    result = await session.execute(
        select(UserSession).where(UserSession.id == token, UserSession.expires_at > now)
    )
    return result.scalars().first()


async def delete_session(session: AsyncSession, token: str) -> int:
    result = await session.execute(delete(UserSession).where(UserSession.id == token))
    return result.rowcount


# ==================== Password Reset Tokens ====================


async def insert_reset_token(
    session: AsyncSession, user_id: int, token: str, expires_at: datetime
) -> PasswordResetToken:
    reset_token = PasswordResetToken(token=token, user_id=user_id, expires_at=expires_at)
    session.add(reset_token)
    await session.flush()
    return reset_token


async def select_usable_reset_token(
    session: AsyncSession, token: str, now: datetime
) -> PasswordResetToken | None:
    """Return the reset token row if it exists, is unexpired, and has not been used.

    The row is locked so two concurrent resets cannot both consume it.
    """
    result = await session.execute(
        select(PasswordResetToken)
        .where(
            PasswordResetToken.token == token,
            PasswordResetToken.expires_at > now,
            PasswordResetToken.used_at.is_(None),
        )
        .with_for_update()
    )
    return result.scalars().first()


async def mark_reset_token_used(session: AsyncSession, token_id: int, now: datetime) -> int:
    """Consume the token; returns 0 if another request consumed it first."""
    result = await session.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.id == token_id, PasswordResetToken.used_at.is_(None))
        .values(used_at=now)
    )
    return result.rowcount
