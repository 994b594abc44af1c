"""Business logic layer for authentication.

Owns the account state machine: registration, login, refresh-token rotation,
logout, email verification and password reset. Every operation runs on the
request's session and commits exactly once.
"""

import secrets
from datetime import datetime, timedelta
from typing import Callable
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .auth import TokenService, hash_password_async, verify_password_async
from .config import settings
from .errors import DuplicateEmail, InvalidCredentials, InvalidToken, InvalidOrExpiredToken
from .logger import logger
from .mailer import Mailer
from .models import User, UserRole, CandidateProfile
from .schemas import AuthResult, TokenPair, TokenPayload, UserOut
from .utils import normalize_email, utcnow


class AuthService:
    """Authentication operations bound to one database session."""

    def __init__(
        self,
        session: AsyncSession,
        tokens: TokenService,
        mailer: Mailer,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.tokens = tokens
        self.mailer = mailer
        self.clock = clock

    # ==================== Helpers ====================

    async def _start_session(self, payload: TokenPayload) -> TokenPair:
        """Issue a token pair and make its refresh token the user's only session."""
        tokens = self.tokens.issue_token_pair(payload)
        expires_at = self.clock() + self.tokens.refresh_lifetime
        await crud.replace_sessions(self.session, payload.user_id, tokens.refresh_token, expires_at)
        return tokens

    @staticmethod
    def _payload_for(user: User) -> TokenPayload:
        return TokenPayload(user_id=user.id, email=user.email, role=user.role)

    async def create_account(self, email: str, password: str, role: UserRole) -> tuple[User, TokenPair]:
        """Stage a new user and its first session without committing.

        Used by registration and by the profile claiming flow, which both need
        the account to land in the same transaction as their other writes.

        Raises:
            DuplicateEmail: an account with this email already exists
        """
        email = normalize_email(email)
        existing_user = await crud.select_user_by_email(self.session, email)
        if existing_user:
            logger.warning(f"Registration failed - email already exists: {email}")
            raise DuplicateEmail(details={"email": email})

        password_hash = await hash_password_async(password)
        try:
            user = await crud.insert_user(self.session, email, password_hash, role)
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            await self.session.rollback()
            logger.warning(f"Registration failed - duplicate email on insert: {email}")
            raise DuplicateEmail(details={"email": email}) from e

        tokens = await self._start_session(self._payload_for(user))
        return user, tokens

    async def send_verification(self, user: User) -> None:
        """Send the verification email; delivery failures are logged, never raised."""
        try:
            await self.mailer.send_verification_email(user.email, user.id)
        except Exception as e:
            logger.error(
                f"Verification email failed for user id={user.id}: {str(e)}", exc_info=True
            )

    # ==================== Authentication ====================

    async def register(
        self, email: str, password: str, role: UserRole, full_name: str | None = None
    ) -> AuthResult:
        """Register a new account, optionally with a minimal candidate profile."""
        logger.info(f"Registering new {role.value}: {normalize_email(email)}")

        user, tokens = await self.create_account(email, password, role)
        if role == UserRole.CANDIDATE and full_name:
            self.session.add(CandidateProfile(user_id=user.id, full_name=full_name))

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateEmail(details={"email": user.email}) from e
        await self.session.refresh(user)
        logger.info(f"User registered successfully: id={user.id} email={user.email}")

        await self.send_verification(user)
        return AuthResult(user=UserOut.model_validate(user), tokens=tokens)

    async def login(self, email: str, password: str, role: UserRole) -> AuthResult:
        """Authenticate and start a new session, replacing any previous one.

        Unknown email, wrong role and wrong password all fail the same way.
        """
        email = normalize_email(email)
        logger.info(f"Authentication attempt for user: {email}")

        user = await crud.select_user_by_email(self.session, email)
        if not user or user.role != role.value:
            logger.warning(f"Authentication failed - no {role.value} account for: {email}")
            raise InvalidCredentials()
        if not await verify_password_async(password, user.password_hash):
            logger.warning(f"Authentication failed - invalid password for user: {email}")
            raise InvalidCredentials()

        tokens = await self._start_session(self._payload_for(user))
        await self.session.commit()
        logger.info(f"Authentication successful for user: {email} (id={user.id})")
        return AuthResult(user=UserOut.model_validate(user), tokens=tokens)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token: the presented one stops working, a new pair is returned."""
        try:
            payload = self.tokens.verify_refresh(refresh_token)
        except InvalidToken as e:
            logger.warning(f"Refresh rejected: {e.message}")
            raise InvalidToken() from e

        live_session = await crud.select_live_session(self.session, refresh_token, self.clock())
        if live_session is None or live_session.user_id != payload.user_id:
            logger.warning(f"Refresh rejected - no live session for user id={payload.user_id}")
            raise InvalidToken()

        tokens = await self._start_session(payload)
        await self.session.commit()
        logger.debug(f"Refresh token rotated for user id={payload.user_id}")
        return tokens

    async def logout(self, refresh_token: str) -> None:
        """Delete the session for this refresh token; unknown tokens are ignored."""
        deleted = await crud.delete_session(self.session, refresh_token)
        await self.session.commit()
        logger.info(f"Logout processed (sessions removed: {deleted})")

    async def get_user(self, user_id: int) -> User | None:
        return await crud.select_user(self.session, user_id)

    # ==================== Verification & Password Reset ====================

    async def verify_email(self, user_id: int) -> None:
        updated = await crud.mark_user_verified(self.session, user_id)
        await self.session.commit()
        if updated:
            logger.info(f"Email verified for user id={user_id}")
        else:
            logger.debug(f"Email verification for unknown user id={user_id} ignored")

    async def request_password_reset(self, email: str) -> None:
        """Create a one-hour reset token and email it.

        Unknown emails return silently so callers cannot probe for accounts.
        """
        email = normalize_email(email)
        user = await crud.select_user_by_email(self.session, email)
        if not user:
            logger.info(f"Password reset requested for unknown email: {email}")
            return

        reset_token = secrets.token_hex(32)
        expires_at = self.clock() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        await crud.insert_reset_token(self.session, user.id, reset_token, expires_at)
        await self.session.commit()
        logger.info(f"Password reset token issued for user id={user.id}")

        try:
            await self.mailer.send_password_reset_email(user.email, reset_token)
        except Exception as e:
            logger.error(
                f"Password reset email failed for user id={user.id}: {str(e)}", exc_info=True
            )

    async def reset_password(self, token: str, new_password: str) -> None:
        """Consume a reset token and set the new password.

        Other reset tokens and active sessions of the user are left untouched.
        """
        now = self.clock()
        reset_token = await crud.select_usable_reset_token(self.session, token, now)
        if reset_token is None:
            logger.warning("Password reset rejected - invalid, expired or used token")
            raise InvalidOrExpiredToken()

        password_hash = await hash_password_async(new_password)
        await crud.update_password_hash(self.session, reset_token.user_id, password_hash)
        if not await crud.mark_reset_token_used(self.session, reset_token.id, now):
            await self.session.rollback()
            raise InvalidOrExpiredToken()

        await self.session.commit()
        logger.info(f"Password reset completed for user id={reset_token.user_id}")
