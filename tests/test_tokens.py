"""
Unit tests for token issuance/verification and password hashing.
"""

import pytest
from jose import jwt
from jobzworld.auth import TokenService, hash_password, verify_password, hash_password_async
from jobzworld.config import settings
from jobzworld.errors import ExpiredToken, InvalidToken
from jobzworld.models import UserRole
from jobzworld.schemas import TokenPayload


@pytest.fixture
def payload():
    return TokenPayload(user_id=7, email="alice@example.com", role=UserRole.CANDIDATE)


class TestTokenService:
    """Test TokenService issue/verify."""

    def test_issue_and_verify_pair(self, tokens, payload):
        """Both tokens decode back to the same identity."""
        pair = tokens.issue_token_pair(payload)

        assert tokens.verify_access(pair.access_token) == payload
        assert tokens.verify_refresh(pair.refresh_token) == payload

    def test_tokens_signed_with_separate_secrets(self, tokens, payload):
        """An access token is not accepted as a refresh token and vice versa."""
        pair = tokens.issue_token_pair(payload)

        with pytest.raises(InvalidToken):
            tokens.verify_refresh(pair.access_token)
        with pytest.raises(InvalidToken):
            tokens.verify_access(pair.refresh_token)

    def test_claims(self, tokens, payload, clock):
        """Access lifetime is 15 minutes and the refresh lifetime 7 days."""
        pair = tokens.issue_token_pair(payload)
        access = jwt.get_unverified_claims(pair.access_token)
        refresh = jwt.get_unverified_claims(pair.refresh_token)

        issued_at = int(clock().timestamp())
        assert access["sub"] == "7"
        assert access["role"] == "candidate"
        assert access["type"] == "access"
        assert access["exp"] - issued_at == 15 * 60
        assert refresh["type"] == "refresh"
        assert refresh["exp"] - issued_at == 7 * 24 * 60 * 60

    def test_pairs_issued_in_same_second_differ(self, tokens, payload):
        first = tokens.issue_token_pair(payload)
        second = tokens.issue_token_pair(payload)

        assert first.access_token != second.access_token
        assert first.refresh_token != second.refresh_token

    def test_access_token_expires(self, tokens, payload, clock):
        pair = tokens.issue_token_pair(payload)

        clock.advance(minutes=14, seconds=59)
        assert tokens.verify_access(pair.access_token) == payload

        clock.advance(seconds=1)
        with pytest.raises(ExpiredToken):
            tokens.verify_access(pair.access_token)

    def test_refresh_token_expires_after_seven_days(self, tokens, payload, clock):
        pair = tokens.issue_token_pair(payload)

        clock.advance(days=7)
        with pytest.raises(ExpiredToken):
            tokens.verify_refresh(pair.refresh_token)

    def test_expired_is_an_invalid_token(self):
        """Callers that only care about validity can catch InvalidToken."""
        assert issubclass(ExpiredToken, InvalidToken)

    def test_tampered_token_rejected(self, tokens, payload):
        pair = tokens.issue_token_pair(payload)
        header, body, signature = pair.access_token.split(".")
        flipped = "B" if signature[0] == "A" else "A"
        tampered = f"{header}.{body}.{flipped}{signature[1:]}"

        with pytest.raises(InvalidToken):
            tokens.verify_access(tampered)

    @pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
    def test_malformed_token_rejected(self, tokens, token):
        with pytest.raises(InvalidToken):
            tokens.verify_access(token)

    def test_token_without_identity_claims_rejected(self, tokens):
        token = jwt.encode(
            {"type": "access", "exp": 4102444800},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(InvalidToken):
            tokens.verify_access(token)

    def test_default_clock_is_wall_clock(self, payload):
        service = TokenService(settings)
        pair = service.issue_token_pair(payload)
        assert service.verify_access(pair.access_token).user_id == 7


class TestPasswordHashing:
    """Test bcrypt helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("Passw0rd!", rounds=4)

        assert hashed != "Passw0rd!"
        assert verify_password("Passw0rd!", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_cost_factor_is_encoded(self):
        hashed = hash_password("Passw0rd!", rounds=5)
        assert hashed.startswith("$2b$05$")

    def test_salted(self):
        assert hash_password("Passw0rd!", rounds=4) != hash_password("Passw0rd!", rounds=4)

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("Passw0rd!", "not-a-bcrypt-hash") is False

    @pytest.mark.asyncio
    async def test_async_hash(self):
        hashed = await hash_password_async("Passw0rd!")
        assert verify_password("Passw0rd!", hashed)
