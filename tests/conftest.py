"""Shared test fixtures — single test DB for all test modules."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from src.db.tables import Base
from src.db.engine import get_session

# Use a shared in-memory DB with check_same_thread=False and StaticPool
# This ensures all connections see the same in-memory database.
from sqlalchemy.pool import StaticPool

TEST_DB_URL = "sqlite+aiosqlite:///file:test?mode=memory&cache=shared&uri=true"

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)

RECIPE_ID = "11111111-1111-4111-8111-111111111111"
OTHER_RECIPE_ID = "22222222-2222-4222-8222-222222222222"
USER_ID = "33333333-3333-4333-8333-333333333333"
ADMIN_ID = "44444444-4444-4444-8444-444444444444"


async def override_get_session():
    async with TestSession() as session:
        yield session


# Import app and override BEFORE any test module imports app
from src.api.main import app  # noqa: E402

app.dependency_overrides[get_session] = override_get_session

# Patch the engine module so anything opening its own session hits the test DB
import src.db.engine as _engine_mod  # noqa: E402
_engine_mod.async_session = TestSession
_engine_mod.engine = test_engine


@asynccontextmanager
async def get_test_session():
    """Context manager for seeding data in tests."""
    async with TestSession() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after. Seeds two recipes, a user and an admin."""
    import src.db.user_tables  # noqa: F401
    import src.db.comment_tables  # noqa: F401
    import src.db.report_tables  # noqa: F401
    import src.db.post_tables  # noqa: F401
    import src.db.audit_tables  # noqa: F401
    from src.auth import hash_password
    from src.db.tables import RecipeRow
    from src.db.user_tables import UserRow
    from src.middleware.metrics import metrics

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSession() as session:
        session.add_all([
            UserRow(id=USER_ID, email="cook@test.com", password_hash=hash_password("pass1234"),
                    display_name="Cook", role="user"),
            UserRow(id=ADMIN_ID, email="admin@test.com", password_hash=hash_password("pass1234"),
                    display_name="Admin", role="admin"),
        ])
        session.add_all([
            RecipeRow(id=RECIPE_ID, title="Test Chicken Bowl", slug="test-chicken-bowl", author_id=USER_ID),
            RecipeRow(id=OTHER_RECIPE_ID, title="Lemon Tart", slug="lemon-tart", author_id=USER_ID),
        ])
        await session.commit()

    metrics.reset()

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db():
    """A session for calling services directly."""
    async with TestSession() as session:
        yield session


@pytest_asyncio.fixture
async def user_headers():
    from src.auth import create_tokens
    return {"Authorization": f"Bearer {create_tokens(USER_ID)['access_token']}"}


@pytest_asyncio.fixture
async def admin_headers():
    from src.auth import create_tokens
    return {"Authorization": f"Bearer {create_tokens(ADMIN_ID)['access_token']}"}


@pytest_asyncio.fixture
async def user_actor():
    from src.services.audit import Actor
    return Actor(id=USER_ID, email="cook@test.com", role="user")


@pytest_asyncio.fixture
async def admin_actor():
    from src.services.audit import Actor
    return Actor(id=ADMIN_ID, email="admin@test.com", role="admin")


@pytest_asyncio.fixture
async def make_comment():
    """Factory seeding a comment row directly; returns its id."""
    from src.db.comment_tables import CommentRow

    async def _make(recipe_id=RECIPE_ID, *, rating=None, status="pending",
                    content="Tasty!", user_id=USER_ID, created_at=None):
        comment_id = str(uuid.uuid4())
        async with TestSession() as session:
            row = CommentRow(id=comment_id, recipe_id=recipe_id, user_id=user_id,
                             content=content, rating=rating, status=status)
            if created_at is not None:
                row.created_at = created_at
            session.add(row)
            await session.commit()
        return comment_id

    return _make


@pytest_asyncio.fixture
async def make_post():
    from src.db.post_tables import PostRow

    async def _make(content="Look at my sourdough", author_id=USER_ID):
        post_id = str(uuid.uuid4())
        async with TestSession() as session:
            session.add(PostRow(id=post_id, author_id=author_id, content=content))
            await session.commit()
        return post_id

    return _make
