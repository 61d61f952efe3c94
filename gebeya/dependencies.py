from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from gebeya.core.config import get_settings
from gebeya.database import async_session
from gebeya.services.chapa.client import ChapaClient
from gebeya.services.local_store import LocalStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_chapa_client() -> ChapaClient:
    settings = get_settings()
    return ChapaClient(secret_key=settings.CHAPA_SECRET_KEY, base_url=settings.CHAPA_BASE_URL)


def get_local_store() -> LocalStore:
    return LocalStore(get_settings().local_store_file)
