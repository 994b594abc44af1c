"""
Integration tests for the authentication endpoints.
Covers registration, login, token rotation, logout, email verification,
password reset and the response envelope.
"""

import pytest
from sqlalchemy import select, func
from conftest import register, bearer
from jobzworld.models import PasswordResetToken, User


# ============================================================================
# POST /auth/register
# ============================================================================

@pytest.mark.asyncio
async def test_register_success(client, candidate_data, mailer):
    """Registering returns 201 with the user and a token pair."""
    response = await client.post("/auth/register", json=candidate_data)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert "verify" in body["message"].lower()

    user = body["data"]["user"]
    assert user["email"] == candidate_data["email"]
    assert user["role"] == "candidate"
    assert user["is_verified"] is False
    assert "password_hash" not in user
    assert "password" not in user

    tokens = body["data"]["tokens"]
    assert tokens["accessToken"] and tokens["refreshToken"]

    assert len(mailer.sent) == 1
    assert mailer.sent[0]["subject"] == "Verify your Jobzworld account"


@pytest.mark.asyncio
async def test_register_accepts_user_type_alias(client):
    response = await client.post("/auth/register", json={
        "email": "boss@example.com",
        "password": "Passw0rd!",
        "user_type": "employer",
    })

    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == "employer"


@pytest.mark.asyncio
async def test_register_duplicate_email(client, candidate_data):
    """Registering the same email twice returns 409."""
    await register(client, candidate_data)

    response = await client.post("/auth/register", json={**candidate_data, "email": "ALICE@example.com"})

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "DUPLICATE_EMAIL"
    assert "already exists" in body["message"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "password",
    ["short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
)
async def test_register_weak_password(client, candidate_data, password):
    """Passwords that miss any rule of the policy are rejected with 400."""
    response = await client.post("/auth/register", json={**candidate_data, "password": password})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert any(err["field"] == "password" for err in body["details"]["errors"])


@pytest.mark.asyncio
async def test_register_invalid_email(client, candidate_data):
    response = await client.post("/auth/register", json={**candidate_data, "email": "not-an-email"})

    assert response.status_code == 400
    assert any(err["field"] == "email" for err in response.json()["details"]["errors"])


@pytest.mark.asyncio
async def test_register_unknown_role(client, candidate_data):
    response = await client.post("/auth/register", json={**candidate_data, "role": "admin"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_register_missing_fields(client):
    response = await client.post("/auth/register", json={"email": "alice@example.com"})

    assert response.status_code == 400
    fields = {err["field"] for err in response.json()["details"]["errors"]}
    assert {"password", "role"} <= fields


@pytest.mark.asyncio
async def test_register_whitespace_full_name(client, candidate_data):
    response = await client.post("/auth/register", json={**candidate_data, "full_name": "   "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_register_email_failure_still_succeeds(client, candidate_data, mailer, database):
    """A mail outage does not roll back the account."""
    mailer.fail = True

    response = await client.post("/auth/register", json=candidate_data)

    assert response.status_code == 201
    async with database.session() as session:
        total = (await session.execute(select(func.count()).select_from(User))).scalar()
    assert total == 1


# ============================================================================
# POST /auth/login
# ============================================================================

@pytest.mark.asyncio
async def test_login_success(client, candidate_data):
    await register(client, candidate_data)

    response = await client.post("/auth/login", json={
        "email": candidate_data["email"],
        "password": candidate_data["password"],
        "role": "candidate",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["data"]["user"]["email"] == candidate_data["email"]
    assert body["data"]["tokens"]["accessToken"]


@pytest.mark.asyncio
async def test_login_wrong_role(client, candidate_data):
    """A candidate account cannot log in as an employer."""
    await register(client, candidate_data)

    response = await client.post("/auth/login", json={
        "email": candidate_data["email"],
        "password": candidate_data["password"],
        "role": "employer",
    })

    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "INVALID_CREDENTIALS"
    assert body["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_login_wrong_password_and_unknown_email_look_alike(client, candidate_data):
    await register(client, candidate_data)

    wrong_password = await client.post("/auth/login", json={
        "email": candidate_data["email"], "password": "Wrong0rd!", "role": "candidate",
    })
    unknown_email = await client.post("/auth/login", json={
        "email": "nobody@example.com", "password": "Wrong0rd!", "role": "candidate",
    })

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


# ============================================================================
# POST /auth/refresh-token and /auth/logout
# ============================================================================

@pytest.mark.asyncio
async def test_refresh_token_rotation(client, candidate_data):
    """The old refresh token stops working once it has been rotated."""
    data = await register(client, candidate_data)
    old_refresh = data["tokens"]["refreshToken"]

    response = await client.post("/auth/refresh-token", json={"refreshToken": old_refresh})

    assert response.status_code == 200
    new_tokens = response.json()["data"]["tokens"]
    assert new_tokens["refreshToken"] != old_refresh
    assert new_tokens["accessToken"]

    replay = await client.post("/auth/refresh-token", json={"refreshToken": old_refresh})
    assert replay.status_code == 401
    assert replay.json()["error"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_refresh_accepts_snake_case_field(client, candidate_data):
    data = await register(client, candidate_data)

    response = await client.post(
        "/auth/refresh-token", json={"refresh_token": data["tokens"]["refreshToken"]}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_refresh_with_access_token_fails(client, candidate_data):
    data = await register(client, candidate_data)

    response = await client.post("/auth/refresh-token", json={"refreshToken": data["tokens"]["accessToken"]})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


@pytest.mark.asyncio
async def test_refresh_missing_token(client):
    response = await client.post("/auth/refresh-token", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_invalidates_previous_refresh_token(client, candidate_data):
    data = await register(client, candidate_data)

    await client.post("/auth/login", json={
        "email": candidate_data["email"], "password": candidate_data["password"], "role": "candidate",
    })

    response = await client.post("/auth/refresh-token", json={"refreshToken": data["tokens"]["refreshToken"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout(client, candidate_data):
    data = await register(client, candidate_data)
    refresh = data["tokens"]["refreshToken"]

    response = await client.post("/auth/logout", json={"refreshToken": refresh})
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": None, "message": "Logout successful"}

    # Idempotent, and the token is dead afterwards
    again = await client.post("/auth/logout", json={"refreshToken": refresh})
    assert again.status_code == 200
    refreshed = await client.post("/auth/refresh-token", json={"refreshToken": refresh})
    assert refreshed.status_code == 401


# ============================================================================
# GET /auth/profile
# ============================================================================

@pytest.mark.asyncio
async def test_profile_requires_token(client):
    response = await client.get("/auth/profile")

    assert response.status_code == 401
    assert response.json()["error"] == "UNAUTHORIZED"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_profile_rejects_garbage_token(client):
    response = await client.get("/auth/profile", headers=bearer("not-a-token"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_profile_rejects_refresh_token(client, candidate_data):
    data = await register(client, candidate_data)

    response = await client.get("/auth/profile", headers=bearer(data["tokens"]["refreshToken"]))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_profile_returns_current_user(client, candidate_data):
    data = await register(client, candidate_data)

    response = await client.get("/auth/profile", headers=bearer(data["tokens"]["accessToken"]))

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["id"] == data["user"]["id"]
    assert user["email"] == candidate_data["email"]


# ============================================================================
# POST /auth/verify-email/{user_id}
# ============================================================================

@pytest.mark.asyncio
async def test_verify_email(client, candidate_data):
    data = await register(client, candidate_data)
    user_id = data["user"]["id"]

    response = await client.post(f"/auth/verify-email/{user_id}")
    assert response.status_code == 200
    assert response.json()["message"] == "Email verified successfully"

    profile = await client.get("/auth/profile", headers=bearer(data["tokens"]["accessToken"]))
    assert profile.json()["data"]["user"]["is_verified"] is True

    # Verifying twice is harmless
    again = await client.post(f"/auth/verify-email/{user_id}")
    assert again.status_code == 200


@pytest.mark.asyncio
async def test_verify_email_non_numeric_id(client):
    response = await client.post("/auth/verify-email/abc")
    assert response.status_code == 400


# ============================================================================
# Password reset
# ============================================================================

@pytest.mark.asyncio
async def test_request_password_reset_unknown_email(client, database, mailer):
    """The response is identical for unknown emails and no token row is created."""
    response = await client.post("/auth/request-password-reset", json={"email": "nobody@example.com"})

    assert response.status_code == 200
    assert "If an account with that email exists" in response.json()["message"]
    assert mailer.sent == []
    async with database.session() as session:
        total = (await session.execute(select(func.count()).select_from(PasswordResetToken))).scalar()
    assert total == 0


@pytest.mark.asyncio
async def test_password_reset_flow(client, candidate_data, database, mailer):
    await register(client, candidate_data)
    mailer.sent.clear()

    response = await client.post("/auth/request-password-reset", json={"email": candidate_data["email"]})
    assert response.status_code == 200
    assert mailer.sent[0]["subject"] == "Reset your Jobzworld password"

    async with database.session() as session:
        token = (await session.execute(select(PasswordResetToken.token))).scalar_one()
    assert f"token={token}" in mailer.sent[0]["html"]

    response = await client.post("/auth/reset-password", json={"token": token, "password": "NewPassw0rd!"})
    assert response.status_code == 200
    assert response.json()["message"] == "Password reset successfully"

    old_login = await client.post("/auth/login", json={
        "email": candidate_data["email"], "password": candidate_data["password"], "role": "candidate",
    })
    assert old_login.status_code == 401

    new_login = await client.post("/auth/login", json={
        "email": candidate_data["email"], "password": "NewPassw0rd!", "role": "candidate",
    })
    assert new_login.status_code == 200

    # The token is single-use
    reused = await client.post("/auth/reset-password", json={"token": token, "password": "Another1Pass!"})
    assert reused.status_code == 400
    assert reused.json()["error"] == "INVALID_RESET_TOKEN"


@pytest.mark.asyncio
async def test_reset_password_unknown_token(client):
    response = await client.post("/auth/reset-password", json={"token": "f" * 64, "password": "NewPassw0rd!"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired reset token"


@pytest.mark.asyncio
async def test_reset_password_weak_password(client):
    response = await client.post("/auth/reset-password", json={"token": "f" * 64, "password": "weak"})

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


# ============================================================================
# Service endpoints and envelope
# ============================================================================

@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["app"] == "Jobzworld API"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/no-such-route")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated(client):
    response = await client.get("/")
    assert len(response.headers["X-Request-ID"]) == 36
