import os

# Настройки читаются при импорте, поэтому окружение задаём до импорта приложения
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MACHINES", '["A", "B"]')

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from laundry_booking.main import app
from laundry_booking.database import Base, get_db

# In-memory SQLite, одно соединение на все сессии теста
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture(autouse=True)
async def testing_session_local():
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    TestingSessionLocal = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestingSessionLocal
    app.dependency_overrides.clear()
    await test_engine.dispose()


@pytest.fixture
async def db_session(testing_session_local):
    async with testing_session_local() as session:
        yield session


@pytest.fixture
def make_client():
    """Клиент с заданным cookie сессии (или без него)."""
    def _make(session_id=None):
        cookies = {"session_id": session_id} if session_id else None
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", cookies=cookies)
    return _make
