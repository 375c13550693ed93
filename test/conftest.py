"""
Pytest configuration and fixtures for engagement service tests
"""

import os
import sys
from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

# Settings are read at import time, so point them at SQLite before importing the package
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_JSON", "false")

import engagement.database as database_module  # noqa: E402
from engagement.auth import create_access_token  # noqa: E402
from engagement.database import Base, get_db  # noqa: E402
from engagement.exception_handlers import register_exception_handlers  # noqa: E402
from engagement.models import Category, Content, ContentStatus, User  # noqa: E402
from engagement.routes import content, likes, monitoring, views  # noqa: E402
from engagement.utils.spotlight_cache import InMemorySpotlightCache  # noqa: E402

# Test database URL (SQLite in-memory for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# One shared connection so every session sees the same in-memory database
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

# Replace the package's engine and session maker with test versions
database_module.engine = test_engine
database_module.AsyncSessionLocal = TestSessionLocal


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="function")
async def setup_test_database():
    """Create a fresh schema for each test function that needs it."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def test_db(setup_test_database) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests that need it."""
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
async def enforce_foreign_keys(test_db: AsyncSession) -> AsyncGenerator[None, None]:
    """Turn on SQLite foreign key checks for one test. SQLite leaves them off by default."""
    await test_db.execute(text("PRAGMA foreign_keys=ON"))
    await test_db.commit()
    yield
    await test_db.rollback()
    await test_db.execute(text("PRAGMA foreign_keys=OFF"))
    await test_db.commit()


@pytest.fixture
async def test_user(test_db: AsyncSession) -> User:
    """Create a test user"""
    user = User(username="testuser", email="testuser@example.com")
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest.fixture
async def other_user(test_db: AsyncSession) -> User:
    """Create a second user"""
    user = User(username="otheruser", email="other@example.com")
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest.fixture
async def test_category(test_db: AsyncSession) -> Category:
    """Create a test category"""
    category = Category(name="Technology", slug="technology", icon="chip")
    test_db.add(category)
    await test_db.commit()
    await test_db.refresh(category)
    return category


@pytest.fixture
async def test_content(test_db: AsyncSession, test_user: User, test_category: Category) -> Content:
    """Create a published content item with zeroed counters"""
    item = Content(
        title="Test Article",
        description="An article used in tests",
        status=ContentStatus.PUBLISHED,
        category_id=test_category.id,
        author_id=test_user.id,
    )
    test_db.add(item)
    await test_db.commit()
    await test_db.refresh(item)
    return item


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Bearer token headers for test_user"""
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def spotlight_cache(fake_clock: FakeClock) -> InMemorySpotlightCache:
    return InMemorySpotlightCache(default_ttl=300, clock=fake_clock)


@pytest.fixture
def test_app(spotlight_cache: InMemorySpotlightCache) -> FastAPI:
    """Minimal app without lifespan, wired to the test database"""
    app = FastAPI()
    app.state.spotlight_cache = spotlight_cache
    app.include_router(content.router, prefix="/api/v1")
    app.include_router(views.router, prefix="/api/v1")
    app.include_router(likes.router, prefix="/api/v1")
    app.include_router(monitoring.router)
    register_exception_handlers(app)

    async def override_get_db():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app: FastAPI, setup_test_database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the minimal test app"""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac
