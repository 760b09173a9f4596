"""
Farmer Market - Shared Test Fixtures
Provides in-memory database, session stores and HTTP clients.
"""

import os
import tempfile

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.responses import PlainTextResponse

# Configure test environment BEFORE importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="market-logs-")
os.environ["SESSION_PURGE_MINUTES"] = "0"
os.environ["CORS_ORIGINS"] = "http://localhost"

from app.auth import create_user
from app.database import Base, SessionLocal, engine
from app.main import create_app
from app.router import AppRouter
from Security.rbac import current_identity
from Security.session_store import InMemorySessionStore

BASE_URL = "https://testserver"


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def db_tables():
    """Create tables before each test and drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(db_tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    return InMemorySessionStore(clock=clock)


class RecordingHandler:
    """Downstream handler that counts calls and remembers the identity it saw."""

    def __init__(self):
        self.calls = 0
        self.identities = []

    async def __call__(self, request):
        self.calls += 1
        self.identities.append(current_identity(request))
        return PlainTextResponse("ok")


@pytest.fixture
def recording_handler():
    return RecordingHandler()


def make_app(routes, store=None):
    """Build an app from (path, handler, methods, layers) tuples."""
    router = AppRouter(store)
    for path, handler, methods, layers in routes:
        router.add(path, handler, methods=methods, layers=layers)
    return create_app(router, purge_minutes=0)


def make_client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL)


@pytest.fixture
def seeded_users(db):
    """One account per role plus a farmer still waiting for approval."""
    users = {
        "admin": create_user(db, "admin@market.test", "admin-pass", "admin", "Ada Admin"),
        "farmer": create_user(db, "farmer@market.test", "farmer-pass", "farmer", "Fern Farmer", status="approved"),
        "buyer": create_user(db, "buyer@market.test", "buyer-pass", "buyer", "Bo Buyer"),
        "pending": create_user(db, "new-farmer@market.test", "pending-pass", "farmer", "Nia New"),
    }
    return {role: user.id for role, user in users.items()}
