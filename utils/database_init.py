import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS VOICE_USAGE (
        user_id TEXT NOT NULL,
        usage_date TEXT NOT NULL,
        realtime_minutes REAL NOT NULL DEFAULT 0,
        standard_minutes REAL NOT NULL DEFAULT 0,
        estimated_cost_usd REAL NOT NULL DEFAULT 0,
        last_updated INTEGER,
        PRIMARY KEY (user_id, usage_date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ENTRY (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        effective_date TEXT NOT NULL,
        title TEXT,
        text TEXT NOT NULL DEFAULT '',
        mood_score REAL,
        tags TEXT NOT NULL DEFAULT '[]',
        source TEXT,
        created_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_entry_user_created ON ENTRY (user_id, created_at DESC)",
)


class AsyncDatabaseInitializer:
    """
    Manage the relay's async SQLite database.

    - The database file is located at: <DATABASE_DIR>/relay.db
    - DATABASE_DIR defaults to ./data when unset. A RuntimeError is raised if
      it points at a file or cannot be created.
    - The first call to `ensure_database()` creates the VOICE_USAGE ledger and
      the ENTRY table if they are missing. Existing data is kept: the usage
      ledger must survive restarts for daily quotas to hold.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(self, database_dir: Optional[Path | str] = None) -> None:
        env_dir = database_dir if database_dir is not None else os.getenv("DATABASE_DIR", "data")

        if env_dir is None or not str(env_dir).strip():
            raise RuntimeError(
                "DATABASE_DIR must name a writable directory where the SQLite "
                "database file will be stored."
            )

        db_dir = Path(env_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={str(env_dir)!r} points to a file, not a directory "
                f"({db_dir}). Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "relay.db"

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database at `self.db_path` has the relay schema.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute("PRAGMA journal_mode=WAL")
                        for statement in _SCHEMA:
                            await db.execute(statement)
                        await db.commit()
                    break
                except FileNotFoundError:
                    # On some platforms a transient missing file error may occur; retry a few times.
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(0.1 * attempt)

            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path, timeout=30)
        try:
            yield conn
        finally:
            await conn.close()
