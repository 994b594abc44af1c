"""Authentication utilities for password hashing and JWT token management."""

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Callable
from jose import JWTError, jwt
import bcrypt
from .config import settings, Settings
from .errors import InvalidToken, ExpiredToken
from .schemas import TokenPair, TokenPayload
from .utils import utcnow

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


# ==================== Password Hashing ====================

def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plain text password using bcrypt for secure storage."""
    password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password_bytes, salt)
    # Return as string for database storage
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    password_bytes = plain_password.encode('utf-8')[:BCRYPT_MAX_BYTES]
    hashed_bytes = hashed_password.encode('utf-8')
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # Malformed stored hash
        return False


async def hash_password_async(password: str) -> str:
    """bcrypt is CPU bound; keep it off the event loop."""
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)


# ==================== JWT Token Management ====================

class TokenService:
    """Issues and verifies access/refresh token pairs.

    Access and refresh tokens are signed with separate secrets, so one can
    never be replayed as the other. Expiry is checked against ``clock`` rather
    than the wall clock, which lets tests move time forward.
    """

    def __init__(self, config: Settings = settings, clock: Callable[[], datetime] = utcnow):
        self.access_secret = config.JWT_SECRET_KEY
        self.refresh_secret = config.JWT_REFRESH_SECRET_KEY
        self.algorithm = config.JWT_ALGORITHM
        self.access_lifetime = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_lifetime = timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS)
        self.clock = clock

    def issue_token_pair(self, payload: TokenPayload) -> TokenPair:
        """Sign a fresh access/refresh pair for the given identity."""
        now = self.clock()
        access_token = self._encode(payload, ACCESS_TOKEN_TYPE, self.access_secret, now, self.access_lifetime)
        refresh_token = self._encode(payload, REFRESH_TOKEN_TYPE, self.refresh_secret, now, self.refresh_lifetime)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _encode(
        self,
        payload: TokenPayload,
        token_type: str,
        secret: str,
        issued_at: datetime,
        lifetime: timedelta,
    ) -> str:
        claims = {
            "sub": str(payload.user_id),
            "email": payload.email,
            "role": payload.role.value,
            "type": token_type,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
            # Two pairs issued within the same second must still differ
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str, token_type: str | None = None) -> TokenPayload:
        """Decode and validate a token.

        Raises:
            ExpiredToken: signature is valid but ``exp`` has passed
            InvalidToken: bad signature, malformed token, or wrong claims
        """
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidToken("Invalid token") from e

        exp = claims.get("exp")
        if not isinstance(exp, int):
            raise InvalidToken("Invalid token")
        if self.clock().timestamp() >= exp:
            raise ExpiredToken()

        if token_type is not None and claims.get("type") != token_type:
            raise InvalidToken("Invalid token")

        try:
            return TokenPayload(
                user_id=int(claims["sub"]),
                email=claims["email"],
                role=claims["role"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken("Invalid token") from e

    def verify_access(self, token: str) -> TokenPayload:
        return self.verify(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> TokenPayload:
        return self.verify(token, self.refresh_secret, REFRESH_TOKEN_TYPE)
