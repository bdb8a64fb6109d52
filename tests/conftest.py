import os

# Must be set before money_matters.core.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from money_matters.db.base import Base
from money_matters.db.session import get_db
from money_matters.main import app
from money_matters.services.user_service import create_user
from money_matters.services.group_services import create_group
from money_matters.models.group_member import GroupMember


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make_user(name="Alice", email=None, password="secret123"):
        email = email or f"{name.lower()}@example.com"
        return await create_user(db, email, password, name)
    return _make_user


@pytest.fixture
async def alice(make_user):
    return await make_user("Alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("Bob")


@pytest.fixture
async def carol(make_user):
    return await make_user("Carol")


@pytest.fixture
async def trip(db, alice, bob):
    """Group created by Alice with Bob added."""
    group = await create_group(db, "Trip", alice.id)
    db.add(GroupMember(group_id=group["id"], user_id=bob.id))
    await db.commit()
    return group
