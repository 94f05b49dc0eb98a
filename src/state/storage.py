# durable key/value storage backing the persisted session
import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS local_storage (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class LocalStorage:
    """
    Minimal string key/value store in a single SQLite file.

    Mirrors a browser's localStorage: get/set/remove of text values.
    """

    def __init__(self, path: str):
        self.path = path
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @asynccontextmanager
    async def connect(self):
        """Yields a connection; the table is created on first use."""
        if self.path != ":memory:":
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        try:
            if not self._initialized:
                async with self._init_lock:
                    if not self._initialized:
                        _logger.debug(f"Initializing local storage at {self.path}...")
                        await conn.execute(_CREATE_TABLE)
                        await conn.commit()
                        self._initialized = True
            yield conn
        finally:
            await conn.close()

    async def get_item(self, key: str) -> Optional[str]:
        async with self.connect() as conn:
            cur = await conn.execute(
                "SELECT value FROM local_storage WHERE key = ?;", (key,)
            )
            row = await cur.fetchone()
            await cur.close()
        return row[0] if row else None

    async def set_item(self, key: str, value: str) -> None:
        async with self.connect() as conn:
            await conn.execute(
                """
                INSERT INTO local_storage(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                """,
                (key, value),
            )
            await conn.commit()

    async def remove_item(self, key: str) -> None:
        async with self.connect() as conn:
            await conn.execute("DELETE FROM local_storage WHERE key = ?;", (key,))
            await conn.commit()
