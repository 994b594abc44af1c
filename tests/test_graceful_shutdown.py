"""
Tests for graceful shutdown: in-flight requests drain, new ones are turned away.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from conftest import register
from jobzworld.auth import verify_password
from jobzworld.config import settings
from jobzworld.main import GracefulShutdownManager, app, create_app, lifespan
from jobzworld.models import CandidateProfile, User


@pytest.fixture
def shutdown_manager():
    """Give the shared app a fresh manager and put the original back afterwards."""
    original = app.state.shutdown_manager
    manager = GracefulShutdownManager()
    app.state.shutdown_manager = manager
    yield manager
    app.state.shutdown_manager = original


@pytest.mark.asyncio
async def test_shutdown_drains_in_flight_login(client, shutdown_manager, candidate_data, guest_profile_data):
    """A login already running finishes; a claim arriving during shutdown gets a 503."""
    await register(client, candidate_data)
    guest = (await client.post("/candidates/guest-profile", json=guest_profile_data)).json()["data"]

    checking_password = asyncio.Event()
    release = asyncio.Event()

    async def slow_verify(plain_password, hashed_password):
        checking_password.set()
        await release.wait()
        return verify_password(plain_password, hashed_password)

    with patch("jobzworld.services.verify_password_async", side_effect=slow_verify):
        login = asyncio.create_task(client.post("/auth/login", json={
            "email": candidate_data["email"],
            "password": candidate_data["password"],
            "role": "candidate",
        }))
        await asyncio.wait_for(checking_password.wait(), timeout=5)
        assert shutdown_manager.active_requests == 1

        shutdown = asyncio.create_task(shutdown_manager.initiate_shutdown())
        await asyncio.sleep(0.2)
        assert not shutdown.done()

        claim = await client.post(f"/candidates/profile/{guest['id']}/claim", json={
            "email": "bob@example.com", "password": "P@ssw0rd1", "full_name": "Bob",
        })

        release.set()
        login_response = await asyncio.wait_for(login, timeout=5)
        await asyncio.wait_for(shutdown, timeout=5)

    assert login_response.status_code == 200
    assert login_response.json()["data"]["tokens"]["accessToken"]

    assert claim.status_code == 503
    assert claim.headers["Retry-After"] == "10"
    assert claim.json() == {
        "success": False,
        "error": "SERVICE_UNAVAILABLE",
        "message": "Service is shutting down - please retry with another instance",
        "details": {},
    }
    # Rejected requests are never counted as in flight
    assert shutdown_manager.active_requests == 0


@pytest.mark.asyncio
async def test_rejected_claim_leaves_profile_unclaimed(client, database, shutdown_manager, guest_profile_data):
    guest = (await client.post("/candidates/guest-profile", json=guest_profile_data)).json()["data"]
    shutdown_manager.is_shutting_down = True

    response = await client.post(f"/candidates/profile/{guest['id']}/claim", json={
        "email": "bob@example.com", "password": "P@ssw0rd1", "full_name": "Bob",
    })

    shutdown_manager.is_shutting_down = False
    assert response.status_code == 503
    async with database.session() as session:
        profile = await session.get(CandidateProfile, guest["id"])
        users = (await session.execute(select(User))).scalars().all()
    assert profile.user_id is None
    assert users == []


@pytest.mark.asyncio
async def test_shutdown_gives_up_after_timeout():
    manager = GracefulShutdownManager()
    assert manager.shutdown_timeout == settings.GRACEFUL_SHUTDOWN_TIMEOUT
    manager.shutdown_timeout = 0.3
    manager.request_started()

    with patch("jobzworld.main.logger") as mock_logger:
        await asyncio.wait_for(manager.initiate_shutdown(), timeout=2)

    assert manager.is_shutting_down is True
    assert manager.active_requests == 1
    assert "forcing shutdown" in mock_logger.warning.call_args[0][0]


@pytest.mark.asyncio
async def test_repeated_shutdown_is_a_no_op():
    manager = GracefulShutdownManager()

    with patch("jobzworld.main.logger") as mock_logger:
        await manager.initiate_shutdown()
        await manager.initiate_shutdown()

    initiated = [c for c in mock_logger.info.call_args_list if c[0][0] == "Graceful shutdown initiated"]
    assert len(initiated) == 1


@pytest.mark.asyncio
async def test_lifespan_drains_then_disposes_database(mailer):
    database = AsyncMock()
    service = create_app(database=database, mailer=mailer, enable_monitoring=False)

    async with lifespan(service):
        database.dispose.assert_not_awaited()

    assert service.state.shutdown_manager.is_shutting_down is True
    database.dispose.assert_awaited_once()
