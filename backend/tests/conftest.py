"""Pytest fixtures for testing."""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BOOTSTRAP_TOKEN", "test-bootstrap-token")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import teamdesk.models  # noqa: F401  (registers every table on Base.metadata)
from teamdesk.core.database import get_db
from teamdesk.core.security import create_access_token, hash_password
from teamdesk.main import app
from teamdesk.models.base import Base
from teamdesk.models.enums import UserRole, UserStatus
from teamdesk.models.team import Team
from teamdesk.models.tenant import Tenant
from teamdesk.models.user import User
from teamdesk.services.notification_service import OutboundEmail, get_notifier

TEST_DATABASE_URL = "sqlite+aiosqlite://"


class RecordingNotifier:
    """Notifier double that keeps every message it was asked to send."""

    def __init__(self):
        self.sent: list[OutboundEmail] = []

    async def send(self, message: OutboundEmail) -> None:
        self.sent.append(message)


class FailingNotifier:
    """Notifier double whose SMTP relay is always down."""

    def __init__(self):
        self.attempts = 0

    async def send(self, message: OutboundEmail) -> None:
        self.attempts += 1
        raise ConnectionRefusedError("smtp relay unavailable")


@pytest.fixture()
def bootstrap_headers() -> dict[str, str]:
    return {"X-Bootstrap-Token": os.environ["BOOTSTRAP_TOKEN"]}


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with tables created from model metadata.

    pysqlite's own transaction handling breaks SAVEPOINT, so BEGIN is emitted
    explicitly.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Test database session, rolled back after the test."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest_asyncio.fixture
async def client(db: AsyncSession, notifier: RecordingNotifier) -> AsyncGenerator[AsyncClient, None]:
    """Test client sharing the test session and recording outgoing mail."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_tenant(db: AsyncSession) -> Tenant:
    tenant = Tenant(name="Acme Support")
    db.add(tenant)
    await db.flush()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(db: AsyncSession) -> Tenant:
    tenant = Tenant(name="Globex Helpdesk")
    db.add(tenant)
    await db.flush()
    return tenant


@pytest.fixture()
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """User factory.

    Usage: ``await make_user(tenant, "a@x.com", role=UserRole.AGENT)``
    """

    async def _make_user(
        tenant: Tenant,
        email: str,
        role: UserRole = UserRole.VIEWER,
        permissions: list[str] | None = None,
        status: UserStatus = UserStatus.ACTIVE,
        password: str | None = "TestPass123!",
    ) -> User:
        user = User(
            tenant_id=tenant.id,
            email=email,
            first_name=email.split("@")[0].title(),
            last_name="Tester",
            password_hash=hash_password(password) if password else None,
            role=role,
            status=status,
            permissions=list(permissions or []),
        )
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest_asyncio.fixture
async def test_owner(make_user, test_tenant: Tenant) -> User:
    return await make_user(test_tenant, "owner@acme.example.com", role=UserRole.OWNER)


@pytest_asyncio.fixture
async def test_admin(make_user, test_tenant: Tenant) -> User:
    return await make_user(test_tenant, "admin@acme.example.com", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def test_super_admin(make_user, test_tenant: Tenant) -> User:
    return await make_user(test_tenant, "root@acme.example.com", role=UserRole.SUPER_ADMIN)


@pytest_asyncio.fixture
async def test_agent(make_user, test_tenant: Tenant) -> User:
    return await make_user(test_tenant, "agent@acme.example.com", role=UserRole.AGENT)


@pytest_asyncio.fixture
async def test_viewer(make_user, test_tenant: Tenant) -> User:
    return await make_user(test_tenant, "viewer@acme.example.com", role=UserRole.VIEWER)


@pytest_asyncio.fixture
async def default_team(db: AsyncSession, test_tenant: Tenant) -> Team:
    team = Team(tenant_id=test_tenant.id, name="General", color="#3B82F6", is_default=True)
    db.add(team)
    await db.flush()
    return team


def auth_headers_for(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    return auth_headers_for
