from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

from swrcache._core._storages._async_base import AsyncBaseStorage
from swrcache._core._storages._packing import pack, unpack
from swrcache._core.models import Entry
from swrcache._utils import ensure_cache_dict

logger = logging.getLogger("swrcache.storages")


try:
    import anysqlite

    class AsyncSqliteStorage(AsyncBaseStorage):
        """
        SQLite-backed storage keeping one row per (namespace, cache key).

        Rows are replaced with a single `INSERT OR REPLACE` followed by a commit,
        so a reader never observes a partially written entry.
        """

        def __init__(
            self,
            *,
            connection: Optional[anysqlite.Connection] = None,
            database_path: Union[str, Path] = "swrcache.db",
            namespace: str = "swr-cache-v1",
        ) -> None:
            super().__init__(namespace)
            self.connection = connection
            self.database_path: Path = database_path if isinstance(database_path, Path) else Path(database_path)
            self._initialized = False

        async def _ensure_connection(self) -> anysqlite.Connection:
            """Ensure connection is established and database is initialized."""
            if self.connection is None:
                # Create cache directory and resolve full path on first connection
                parent = self.database_path.parent if self.database_path.parent != Path(".") else None
                full_path = ensure_cache_dict(parent) / self.database_path.name
                self.connection = await anysqlite.connect(str(full_path))
            if not self._initialized:
                await self._initialize_database()
                self._initialized = True
            return self.connection

        async def _initialize_database(self) -> None:
            """Initialize the database schema."""
            assert self.connection is not None
            cursor = await self.connection.cursor()

            await cursor.execute("""
                CREATE TABLE IF NOT EXISTS entries (
                    namespace TEXT NOT NULL,
                    cache_key TEXT NOT NULL,
                    data BLOB NOT NULL,
                    fetched_at REAL,
                    PRIMARY KEY (namespace, cache_key)
                )
            """)

            await self.connection.commit()

        async def get(self, key: str) -> Optional[Entry]:
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "SELECT data FROM entries WHERE namespace = ? AND cache_key = ?",
                (self.namespace, key),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return unpack(row[0])

        async def put(self, key: str, entry: Entry) -> None:
            self.ensure_key_matches(key, entry)
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "INSERT OR REPLACE INTO entries (namespace, cache_key, data, fetched_at) VALUES (?, ?, ?, ?)",
                (self.namespace, key, pack(entry), entry.fetched_at),
            )
            await connection.commit()

        async def remove(self, key: str) -> None:
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute(
                "DELETE FROM entries WHERE namespace = ? AND cache_key = ?",
                (self.namespace, key),
            )
            await connection.commit()

        async def purge_other_namespaces(self) -> int:
            """
            Delete every entry written under a namespace other than this storage's.

            Returns:
                The number of deleted entries.
            """
            connection = await self._ensure_connection()
            cursor = await connection.cursor()
            await cursor.execute("SELECT COUNT(*) FROM entries WHERE namespace != ?", (self.namespace,))
            row = await cursor.fetchone()
            deleted = int(row[0]) if row is not None else 0
            await cursor.execute("DELETE FROM entries WHERE namespace != ?", (self.namespace,))
            await connection.commit()
            logger.debug(f"Purged {deleted} entries from previous cache generations")
            return deleted

        async def close(self) -> None:
            if self.connection is not None:
                await self.connection.close()
                self.connection = None
                self._initialized = False

except ImportError:

    class AsyncSqliteStorage:  # type: ignore[no-redef]
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            raise ImportError(
                "The 'anysqlite' library is required to use the `AsyncSqliteStorage` integration. "
                "Install swrcache with 'pip install swrcache[sqlite]'."
            )
