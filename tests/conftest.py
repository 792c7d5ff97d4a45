"""
Pytest fixtures for customize service tests.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Callable, Dict, Generator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.database import get_db
from src.engines.customize.extensions import CustomizeExtensions, get_customize_extensions
from src.kernel.identity.jwt import JWTManager
from src.kernel.identity.nonce import NonceManager
from src.kernel.models.base import Base
from src.kernel.models.user import User, UserRole
from tests.factories import OptionFactory, TransactionPostFactory, UserFactory


# In-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


async def _make_user(db_session: AsyncSession, role: UserRole, email: str) -> User:
    user = await UserFactory(db_session).create(role=role, email=email)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.ADMINISTRATOR, "admin@example.com")


@pytest_asyncio.fixture
async def designer_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.DESIGNER, "designer@example.com")


@pytest_asyncio.fixture
async def editor_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.EDITOR, "editor@example.com")


@pytest_asyncio.fixture
async def subscriber_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, UserRole.SUBSCRIBER, "subscriber@example.com")


@pytest.fixture
def user_factory(db_session: AsyncSession) -> UserFactory:
    return UserFactory(db_session)


@pytest.fixture
def option_factory(db_session: AsyncSession) -> OptionFactory:
    return OptionFactory(db_session)


@pytest.fixture
def transaction_post_factory(db_session: AsyncSession) -> TransactionPostFactory:
    return TransactionPostFactory(db_session)


@pytest.fixture
def jwt_manager() -> JWTManager:
    """JWT manager using the application's secret, so the API accepts its tokens."""
    return JWTManager()


@pytest.fixture
def nonce_manager() -> NonceManager:
    return NonceManager()


@pytest.fixture
def auth_headers(jwt_manager: JWTManager) -> Callable[[User], Dict[str, str]]:
    """Build Bearer headers for a user."""

    def _headers(user: User) -> Dict[str, str]:
        role = user.role.value if isinstance(user.role, UserRole) else str(user.role)
        token, _, _ = jwt_manager.create_access_token(
            user_id=user.id,
            email=user.email,
            role=role,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@asynccontextmanager
async def _app_client(session_maker, raise_app_exceptions: bool = True) -> AsyncIterator[AsyncClient]:
    from src.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the app with the test database."""
    async with _app_client(session_maker) as ac:
        yield ac


@pytest_asyncio.fixture
async def error_client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Like client, but server errors come back as responses instead of raising."""
    async with _app_client(session_maker, raise_app_exceptions=False) as ac:
        yield ac


@pytest.fixture
def customize_extensions() -> Generator[CustomizeExtensions, None, None]:
    """A fresh extension set used by the app for one test."""
    from src.main import app

    extensions = CustomizeExtensions()
    app.dependency_overrides[get_customize_extensions] = lambda: extensions
    try:
        yield extensions
    finally:
        app.dependency_overrides.pop(get_customize_extensions, None)


@pytest.fixture
def new_uuid() -> str:
    return str(uuid.uuid4())
