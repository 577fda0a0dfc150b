"""
Durable storage for the CRM refresh token
"""
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import TokenStoreError
from app.models.config_entry import ConfigEntry

logger = logging.getLogger(__name__)

REFRESH_TOKEN_KEY = "KOMMO_REFRESH_TOKEN"


class TokenStore:
    """Reads and rotates the single refresh-token row. Opens its own sessions."""

    def __init__(self, session_factory: async_sessionmaker, key: str = REFRESH_TOKEN_KEY):
        self.session_factory = session_factory
        self.key = key

    async def get_refresh_token(self) -> str:
        try:
            async with self.session_factory() as session:
                entry = await _get_entry(session, self.key)
        except Exception as exc:
            raise TokenStoreError(f"Could not read {self.key}: {exc}") from exc

        if entry is None or not entry.value:
            raise TokenStoreError(f"{self.key} not found; seed it via POST /api/config/refresh-token")
        return entry.value

    async def save_refresh_token(self, token: str) -> None:
        async with self.session_factory() as session:
            await upsert_config_value(session, self.key, token)
        logger.info("refresh_token.saved")


async def _get_entry(session: AsyncSession, key: str):
    result = await session.execute(select(ConfigEntry).where(ConfigEntry.key == key))
    return result.scalar_one_or_none()


async def upsert_config_value(session: AsyncSession, key: str, value: str) -> ConfigEntry:
    """Insert or update a config row and commit"""
    entry = await _get_entry(session, key)
    if entry is None:
        entry = ConfigEntry(key=key, value=value)
        session.add(entry)
    else:
        entry.value = value
        entry.updated_at = datetime.utcnow()
    await session.commit()
    return entry
