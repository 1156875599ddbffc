"""
Shared test fixtures for UntitledOne API tests.

Provides database session management, test clients, an email outbox, and
user/project fixtures.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from factories import add_member, create_project, create_user
from untitledone.auth.jwt import create_access_token
from untitledone.config import settings
from untitledone.database import Base, enable_sqlite_savepoints, get_db
from untitledone.main import app
from untitledone.middleware.rate_limit import reset_limiter

# Import models so they're registered with Base.metadata before table creation
from untitledone import models  # noqa: F401
from untitledone.models.project import Project
from untitledone.models.user import User
from untitledone.services.email import EmailSender, get_email_sender

# Test database URL (uses separate test database)
TEST_DATABASE_URL = settings.test_database_url

# Create test engine with NullPool to avoid connection issues
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=NullPool,
    echo=False,
)
if test_engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(test_engine)

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enforce_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
        # SQLite ignores ON DELETE rules unless asked to enforce them.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class RecordingEmailSender(EmailSender):
    """Email sender that records messages instead of calling the API."""

    def __init__(self):
        super().__init__(api_key="test-key", from_address="test@untitledone.test", api_url="http://email.test")
        self.outbox: list[dict[str, str]] = []

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        self.outbox.append({"to": to, "subject": subject, "html": html_body})
        return True


# --- Rate Limiter Reset Fixture ---


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset rate limiter before each test to ensure test isolation."""
    reset_limiter()
    yield


# --- Database Fixtures ---


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create tables before each test function, drop after.
    Provides isolated database state per test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession,
    email_sender: RecordingEmailSender,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client configured for testing.
    Overrides the database and email dependencies.
    """

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=False,
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Authentication Helper Fixtures ---


@pytest.fixture
def auth_headers():
    """Factory fixture for creating Bearer headers for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    return _auth_headers


# --- User and Project Fixtures ---


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    """Project owner."""
    return await create_user(db_session, "owner", display_name="Olivia Owner")


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await create_user(db_session, "alice", display_name="Alice Adams")


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    return await create_user(db_session, "bob", display_name="Bob Brown")


@pytest_asyncio.fixture
async def outsider(db_session: AsyncSession) -> User:
    """User who belongs to no project."""
    return await create_user(db_session, "mallory")


@pytest_asyncio.fixture
async def project(db_session: AsyncSession, owner: User) -> Project:
    """Project owned by ``owner``."""
    return await create_project(db_session, owner, name="Summer Vibes EP")


@pytest_asyncio.fixture
async def project_with_alice(db_session: AsyncSession, project: Project, alice: User) -> Project:
    """Project where alice is an editor."""
    await add_member(db_session, project, alice, role="editor")
    return project

