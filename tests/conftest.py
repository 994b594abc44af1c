"""
Pytest configuration and shared fixtures for testing.
Sets up a per-test database, a recording mailer, and the test client.
"""

import os
import tempfile

# Set TEST_MODE before any app imports to disable rate limiting
os.environ["TEST_MODE"] = "1"

# Enable metrics endpoint for testing
os.environ["ENABLE_METRICS"] = "true"

# Configure the app from the environment only, before importing app modules
_TEST_DIR = tempfile.mkdtemp(prefix="jobzworld-tests-")
os.environ["SKIP_ENV_FILE"] = "1"
os.environ.setdefault("APP_ENV", "test")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/bootstrap.db"
os.environ["JWT_SECRET_KEY"] = "test-access-secret-key-with-at-least-32-chars"
os.environ["JWT_REFRESH_SECRET_KEY"] = "test-refresh-secret-key-with-at-least-32-chars"
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing for tests
os.environ["LOG_FILE"] = ""
os.environ["EMAIL_BACKEND"] = "console"
os.environ["VIDEO_UPLOAD_DIR"] = os.path.join(_TEST_DIR, "videos")

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import NullPool
from jobzworld.main import app
from jobzworld.auth import TokenService
from jobzworld.config import settings
from jobzworld.db import Database
from jobzworld.mailer import Mailer, EmailDeliveryError
from jobzworld.services import AuthService


class RecordingMailer(Mailer):
    """Mailer that keeps sent messages in memory; set ``fail`` to simulate an outage."""

    def __init__(self):
        super().__init__(settings)
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise EmailDeliveryError("SMTP relay unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path):
    """Create a fresh SQLite database with every table for a single test."""
    # NullPool avoids connections outliving the test's event loop
    database = Database(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)
    await database.create_all()
    yield database
    await database.drop_all()
    await database.dispose()


@pytest_asyncio.fixture(scope="function")
async def session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tokens(clock):
    return TokenService(settings, clock=clock)


@pytest.fixture
def auth_service(session, tokens, mailer, clock):
    return AuthService(session, tokens, mailer, clock=clock)


@pytest_asyncio.fixture(scope="function")
async def client(database, mailer):
    """Create a test HTTP client bound to the per-test database and mailer."""
    original_database, original_mailer = app.state.database, app.state.mailer
    app.state.database = database
    app.state.mailer = mailer
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0  # Increase timeout for test stability
    ) as ac:
        yield ac
    app.state.database = original_database
    app.state.mailer = original_mailer


@pytest.fixture
def candidate_data():
    """Sample candidate registration payload."""
    return {
        "email": "alice@example.com",
        "password": "Passw0rd!",
        "role": "candidate",
        "full_name": "Alice Smith",
    }


@pytest.fixture
def employer_data():
    """Sample employer registration payload."""
    return {
        "email": "boss@example.com",
        "password": "Passw0rd!",
        "role": "employer",
    }


@pytest.fixture
def guest_profile_data():
    """Sample onboarding candidate profile."""
    return {
        "full_name": "Guest Candidate",
        "location": "Berlin",
        "languages": ["English", "German"],
        "years_experience": 5,
        "target_job_titles": ["Backend Engineer"],
        "preferred_industries": ["Fintech"],
        "working_model": "hybrid",
        "salary_min": 60000,
        "salary_max": 80000,
        "skills": [{"name": "Python", "proficiency": "expert"}],
    }


@pytest.fixture
def company_data():
    return {
        "company_name": "Acme Corp",
        "industry": "Fintech",
        "company_size": "51-200",
        "location": "Remote",
        "description": "Payments for everyone",
    }


@pytest.fixture
def job_data():
    return {
        "job_title": "Backend Engineer",
        "employment_type": "full-time",
        "working_model": "remote",
        "salary_min": 70000,
        "salary_max": 90000,
        "requirements": ["Python", "SQL"],
    }


async def register(client: AsyncClient, data: dict) -> dict:
    """Register an account and return the envelope's data."""
    response = await client.post("/auth/register", json=data)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def bearer(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}
