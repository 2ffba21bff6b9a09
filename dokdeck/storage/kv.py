"""
Durable key-value storage backends.

Reads and writes never raise: a backend that cannot reach its medium logs
the failure and behaves as if the key were absent.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import aiosqlite

logger = logging.getLogger(__name__)

PAT_STORAGE_KEY = "@dokploy/pat"
SERVER_URL_STORAGE_KEY = "@dokploy/server-url"
USER_STORAGE_KEY = "@dokploy/user"


class KeyValueStorage(Protocol):
    """String key-value store used for the PAT, endpoint and cached profile."""
    
    async def get_string(self, key: str) -> Optional[str]:
        ...
    
    async def set(self, key: str, value: str) -> None:
        ...
    
    async def remove(self, key: str) -> None:
        ...


class MemoryKeyValueStorage:
    """Process-local storage. Nothing survives a restart."""
    
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})
    
    async def get_string(self, key: str) -> Optional[str]:
        return self.values.get(key)
    
    async def set(self, key: str, value: str) -> None:
        self.values[key] = value
    
    async def remove(self, key: str) -> None:
        self.values.pop(key, None)


class SqliteKeyValueStorage:
    """
    SQLite-backed storage.
    
    Every call opens its own connection and commits before returning, so a
    completed ``set`` is durable.
    """
    
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
    
    async def init_storage(self) -> None:
        """Create the backing table if needed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self.path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            logger.warning("Failed to initialize storage at %s: %s", self.path, e)
    
    async def get_string(self, key: str) -> Optional[str]:
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    "SELECT value FROM kv_store WHERE key = ?",
                    (key,)
                )
                row = await cursor.fetchone()
        except (aiosqlite.Error, OSError) as e:
            logger.warning("Failed to read %s from storage: %s", key, e)
            return None
        
        if not row:
            return None
        return row[0]
    
    async def set(self, key: str, value: str) -> None:
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute(
                    """
                    INSERT INTO kv_store (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (key, value)
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            logger.warning("Failed to write %s to storage: %s", key, e)
    
    async def remove(self, key: str) -> None:
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            logger.warning("Failed to remove %s from storage: %s", key, e)
