import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.deps import get_notification_dispatcher
from app.core.auth import User, create_access_token
from app.core.database import Base, enable_sqlite_foreign_keys, get_async_session
from app.models.savings_goal import SavingsGoal
from app.utils.notifications import NotificationDispatcher


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db):
    saver = User(email="saver@example.com", full_name="Test Saver")
    db.add(saver)
    await db.commit()
    await db.refresh(saver)
    return saver


@pytest.fixture
def dispatcher(session_factory):
    return NotificationDispatcher(maxsize=10, session_factory=session_factory)


@pytest.fixture
def make_goal(db, user):
    async def _make_goal(target, current="0", name="Emergency fund", created_at=None, owner=None):
        goal = SavingsGoal(
            user_id=(owner or user).id,
            name=name,
            target_amount=Decimal(str(target)),
            current_amount=Decimal(str(current)),
            created_at=created_at or datetime(2026, 1, 1, 9, 0, 0),
        )
        db.add(goal)
        await db.commit()
        await db.refresh(goal)
        return goal
    return _make_goal


@pytest_asyncio.fixture
async def client(session_factory, user, dispatcher):
    async def override_get_async_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    token = create_access_token(str(user.id))
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
