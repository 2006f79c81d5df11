"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from courier_backend.app.main import app
from courier_backend.app.db.session import get_db, Base
from courier_backend.app.core.jwt import create_principal_token
from courier_backend.app.core.redis_client import get_redis
from courier_backend.app.domain.shipments.lifecycle_service import ShipmentLifecycleService
from courier_backend.app.models.enums import UserRole
from courier_backend.app.schemas.auth import Principal
from courier_backend.app.services import directory
from courier_backend.app.services.cache import StatsCache
from courier_backend.app.services.notification_service import (
    NotificationDispatcher, get_notification_dispatcher
)
import courier_backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class RecordingSink:
    """Notification sink that keeps every message for assertions."""

    def __init__(self):
        self.sent = []

    async def send(self, channel, recipient, message):
        self.sent.append((channel, recipient, message))


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def sink():
    """Route API notifications to a recording sink for the test."""
    recording = RecordingSink()
    app.dependency_overrides[get_notification_dispatcher] = lambda: NotificationDispatcher(recording)
    yield recording
    app.dependency_overrides.pop(get_notification_dispatcher, None)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def service(db_session, redis_client_session):
    """Lifecycle service with a recording notification sink."""
    return ShipmentLifecycleService(
        db_session,
        notifier=NotificationDispatcher(RecordingSink()),
        cache=StatsCache(redis_client_session)
    )


# Directory users and their principals

def principal_for(user) -> Principal:
    return Principal(id=user.id, role=user.role, name=user.name, phone=user.phone)


def token_for(principal: Principal) -> str:
    return create_principal_token(principal.id, principal.role, principal.name, principal.phone)


def auth_headers(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {token_for(principal)}"}


@pytest.fixture
async def admin(db_session):
    user = await directory.create_user(db_session, {
        "name": "Admin", "email": "admin@test.com", "role": UserRole.ADMIN, "phone": "9000000001"
    })
    return principal_for(user)


@pytest.fixture
async def agent(db_session):
    user = await directory.create_user(db_session, {
        "name": "Ravi Kumar", "email": "ravi@test.com", "role": UserRole.AGENT, "phone": "9000000002"
    })
    return principal_for(user)


@pytest.fixture
async def other_agent(db_session):
    user = await directory.create_user(db_session, {
        "name": "Meera Shah", "email": "meera@test.com", "role": UserRole.AGENT, "phone": "9000000003"
    })
    return principal_for(user)


@pytest.fixture
async def customer(db_session):
    user = await directory.create_user(db_session, {
        "name": "Jane Doe", "email": "jane@test.com", "role": UserRole.CUSTOMER, "phone": "9000000004"
    })
    return principal_for(user)


def shipment_payload(**overrides) -> dict:
    payload = {
        "sender_name": "Alice Sender",
        "sender_phone": "9111111111",
        "receiver_name": "Bob Receiver",
        "receiver_phone": "9222222222",
        "pickup_address": "12 Market Street",
        "delivery_address": "34 Harbour Road",
        "weight": 10,
        "distance": 5,
    }
    payload.update(overrides)
    return payload
