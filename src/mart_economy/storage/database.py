"""sqlite storage for economy save slots, with ordered schema migrations."""
from __future__ import annotations

import contextlib
import importlib
import logging
import pathlib
import sqlite3
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

# Applied in order; a migration's version is its position in this list.
_MIGRATIONS = [
    "001_save_slots",
]


class Database:
    """One shared connection to the save-slot database.

    ``db_path=":memory:"`` keeps everything in memory, which the tests and throwaway
    sessions use.
    """

    def __init__(self, db_path: str = MEMORY) -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        if db_path != MEMORY:
            pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> list[str]:
        """Bring the schema up to date. Returns the migrations applied by this call."""
        conn = self._connect()
        conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER PRIMARY KEY)")
        current = self.schema_version()
        applied = []
        for version, name in enumerate(_MIGRATIONS, 1):
            if version <= current:
                continue
            importlib.import_module(f"mart_economy.storage.migrations.{name}").upgrade(conn)
            conn.execute("INSERT INTO schema_version VALUES (?)", (version,))
            applied.append(name)
        conn.commit()
        if applied:
            logger.info("Applied migrations %s to %s", ", ".join(applied), self.db_path)
        return applied

    def schema_version(self) -> int:
        row = self._connect().execute("SELECT max(version) FROM schema_version").fetchone()
        return row[0] or 0

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if self.db_path != MEMORY:
                self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    @contextlib.contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield the connection; commit when the block succeeds, roll back when it raises."""
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
