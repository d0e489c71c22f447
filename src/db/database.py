# manages connections to the store, provides helper methods internal to db package
import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from sqlite3 import Row
from typing import AsyncIterator, Sequence

import aiosqlite

from utils.logger import get_logger

_logger = get_logger(__name__)

_HERE = Path(__file__).parent
SCHEMA_SCRIPTS = [_HERE / "schema.sql"]
SEED_SCRIPTS = [_HERE / "seed-data.sql"]


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


class Database:
    """
    Handle on the storefront's store.

    Constructed once by the composition root and passed to every crud
    function; holds no connection between calls. The schema (and, for a
    fresh file, the seed catalog) is applied lazily on first connect.
    """

    def __init__(self, path: str, seed: bool = True):
        self.path = path
        self.seed = seed
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def _run_scripts(
        self, conn: aiosqlite.Connection, scripts: Sequence[Path]
    ) -> None:
        for script in scripts:
            if not script.exists() or script.stat().st_size == 0:
                continue
            _logger.info(f"Running script {script.name}...")
            await conn.executescript(script.read_text(encoding="utf-8"))
        await conn.commit()

    async def _ensure_initialized(self, conn: aiosqlite.Connection) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            fresh = not await _table_exists(conn, "products")
            await self._run_scripts(conn, SCHEMA_SCRIPTS)
            if fresh and self.seed:
                _logger.info(f"Seeding new store at {self.path}...")
                await self._run_scripts(conn, SEED_SCRIPTS)
            self._initialized = True

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Async context manager yielding an aiosqlite connection with FK enabled."""
        parent = os.path.dirname(self.path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = Row
        try:
            await conn.execute("PRAGMA foreign_keys = ON;")
            await self._ensure_initialized(conn)
            yield conn
        finally:
            await conn.close()
