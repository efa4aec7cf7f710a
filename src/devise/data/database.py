"""Async SQLite database manager for the rate cache.

Uses aiosqlite for non-blocking database operations with WAL mode
so cache reads never stall the event loop while a write is in flight.
"""

import os
from typing import Self

import aiosqlite

from devise.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS cache_entries (
    namespace TEXT NOT NULL,
    cache_key TEXT NOT NULL,
    payload TEXT NOT NULL,
    stored_at REAL NOT NULL,
    PRIMARY KEY (namespace, cache_key)
);
"""


class CacheDatabase:
    """Async SQLite connection manager for cached rate payloads.

    Usage:
        # Context manager (recommended)
        async with CacheDatabase("/path/to/db") as db:
            store = CacheStore(db, "latest_rates", ...)

        # Manual lifecycle
        db = CacheDatabase("/path/to/db")
        await db.connect()
        try:
            ...
        finally:
            await db.close()
    """

    def __init__(self, db_path: str = "data/devise_cache.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Access the raw aiosqlite connection.

        Raises RuntimeError if not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open database connection, configure pragmas, and create schema.

        Creates the parent directory if it does not exist.
        """
        if self._db_path != ":memory:":
            db_dir = os.path.dirname(self._db_path)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")

        await self._create_tables()
        await self._ensure_schema_version()

        logger.info("cache_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("cache_db_closed", db_path=self._db_path)

    async def _create_tables(self) -> None:
        assert self._connection is not None
        await self._connection.executescript(_CREATE_TABLES_SQL)
        await self._connection.commit()

    async def _ensure_schema_version(self) -> None:
        """Insert schema version if not already set."""
        assert self._connection is not None
        cursor = await self._connection.execute(
            "SELECT version FROM schema_version LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            await self._connection.commit()
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
