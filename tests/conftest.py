"""
Pytest fixtures for EventGate tests.
"""

import os
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure test config is set before importing eventgate modules.
os.environ.setdefault("EVENTGATE_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("EVENTGATE_ENV", "development")
os.environ.setdefault("EVENTGATE_ADMIN_EMAILS", "admin@example.test")
os.environ.setdefault(
    "EVENTGATE_DATABASE_URL",
    os.getenv("EVENTGATE_TEST_DATABASE_URL", "sqlite+aiosqlite://"),
)

from eventgate.auth.context import CallerContext
from eventgate.auth.models import User
from eventgate.config import settings
from eventgate.db.base import Base
import eventgate.db.tables  # noqa: F401
from eventgate.engine import EventGateEngine
from eventgate.models import Role

pytest_plugins = ("pytest_asyncio",)

IN_MEMORY_SQLITE = "sqlite+aiosqlite://"


def _ensure_test_database_url(database_url: str) -> None:
    if database_url != IN_MEMORY_SQLITE and "test" not in database_url:
        raise RuntimeError(
            "Refusing to run EventGate tests against a non-test database. "
            "Set EVENTGATE_TEST_DATABASE_URL to a dedicated test database."
        )


def _create_test_engine(database_url: str):
    if not database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=settings.debug, pool_pre_ping=True)

    engine = create_async_engine(
        database_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's implicit transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture
async def engine():
    """Create a test engine and wire it into eventgate.db.base."""
    _ensure_test_database_url(settings.database_url)
    engine = _create_test_engine(settings.database_url)

    # Override global engine/session factory for dependency injection.
    from eventgate import db as db_module

    db_module.base.engine = engine
    db_module.base.async_session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Provide a clean database session per test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
        await session.rollback()


async def make_user(
    session: AsyncSession,
    name: str,
    role: Role = Role.HOST,
    email: str | None = None,
) -> User:
    user = User(
        id=uuid4(),
        external_id=f"ext-{uuid4().hex[:12]}",
        email=email,
        name=name,
        role=role,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def host_user(session) -> User:
    return await make_user(session, "Hana Host", email="hana@example.test")


@pytest.fixture
async def other_host_user(session) -> User:
    return await make_user(session, "Omar Other", email="omar@example.test")


@pytest.fixture
async def admin_user(session) -> User:
    return await make_user(session, "Ada Admin", role=Role.ADMIN, email="admin@example.test")


@pytest.fixture
def host(host_user) -> CallerContext:
    return CallerContext.from_user(host_user)


@pytest.fixture
def other_host(other_host_user) -> CallerContext:
    return CallerContext.from_user(other_host_user)


@pytest.fixture
def admin(admin_user) -> CallerContext:
    return CallerContext.from_user(admin_user)


@pytest.fixture
def event_date() -> datetime:
    return datetime(2030, 6, 15, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def complete_fields(event_date) -> dict:
    """Field set that passes submission validation."""
    return {
        "title": "AI Mixer",
        "short_description": "An evening of demos and conversation about applied machine learning.",
        "event_date": event_date,
        "venue": "Main Hall",
        "capacity": 80,
        "formats": ["Networking Mixer"],
        "target_audience": "Founders and engineers",
        "agreement_accepted": True,
    }


@pytest.fixture
async def draft_event(session, host, complete_fields):
    """A complete, submittable draft owned by the host."""
    engine = EventGateEngine(session)
    event_id = await engine.create_event(host)
    await engine.update_event(host, event_id, **complete_fields)
    return event_id


@pytest.fixture
async def submitted_event(session, host, admin_user, draft_event):
    """The complete draft, submitted while an admin exists to be notified."""
    engine = EventGateEngine(session)
    await engine.submit_event(host, draft_event)
    return draft_event


@pytest.fixture
async def approved_event(session, admin, submitted_event):
    engine = EventGateEngine(session)
    await engine.approve_event(admin, submitted_event)
    return submitted_event


@pytest.fixture
async def client(session):
    """Async test client with overridden dependencies."""
    from eventgate.api.deps import get_db_session
    from eventgate.main import app

    async def override_get_db_session():
        yield session

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
