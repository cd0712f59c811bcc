import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm import declarative_base

from laundry_booking.config import settings

logger = logging.getLogger(__name__)

# URL БД берём из настроек (переменная окружения DATABASE_URL или .env)
DATABASE_URL = settings.DATABASE_URL

logger.debug("Database URL: %s", DATABASE_URL)

engine = create_async_engine(DATABASE_URL, echo=settings.SQL_ECHO)
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()

# Зависимость для получения сессии БД
async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
