"""Key-value cache persisted in the kv_cache table"""
import json
import time
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from ..config import config
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)


class SqliteKeyValueStore:
    """
    Small get/set/delete cache with per-key expiry

    Values are stored as JSON text. Expired entries are treated as missing and
    removed lazily on read.
    """

    def __init__(self, db_path: Optional[str] = None, clock=time.time):
        self._db_path = db_path
        self._clock = clock

    @property
    def db_path(self) -> Path:
        return Path(self._db_path or config.DATABASE_PATH)

    async def get(self, key: str) -> Optional[Any]:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT value, expires_at FROM kv_cache WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
            if not row:
                return None

            value, expires_at = row
            if expires_at is not None and expires_at <= self._clock():
                await db.execute("DELETE FROM kv_cache WHERE key = ?", (key,))
                await db.commit()
                logger.debug("Cache entry expired", key=key)
                return None

        return json.loads(value)

    async def set(self, key: str, value: Any, ex: Optional[int] = None):
        """
        Store a value

        Args:
            key: Cache key
            value: JSON serialisable value
            ex: Time to live in seconds (None keeps it forever)
        """
        expires_at = self._clock() + ex if ex else None
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                INSERT INTO kv_cache (key, value, expires_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, expires_at = excluded.expires_at
            """, (key, json.dumps(value), expires_at))
            await db.commit()

    async def delete(self, key: str):
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM kv_cache WHERE key = ?", (key,))
            await db.commit()
