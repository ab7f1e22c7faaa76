import sqlite3
import logging
from contextlib import contextmanager
from typing import List, Optional, Tuple

from pydantic import ValidationError as SchemaError

from errors import FormatError, ValidationError
from state import AppState

logger = logging.getLogger(__name__)

STATE_KEY = "resistance-diary-storage"


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "tracker.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;")
        conn.execute(f"DROP TABLE {table}_old;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class KeyValueRepository(BaseRepository):
    """Named text blobs in the ``kv_store`` table."""

    def get(self, key: str) -> Optional[str]:
        rows = self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def set(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO kv_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )

    def delete(self, key: str) -> None:
        self.execute("DELETE FROM kv_store WHERE key = ?;", (key,))

    def keys(self) -> List[str]:
        rows = self.fetch_all("SELECT key FROM kv_store ORDER BY key;")
        return [r[0] for r in rows]


class StateRepository(KeyValueRepository):
    """Stores the whole :class:`AppState` as one JSON blob.

    Datetimes are written as ISO-8601 strings and revived through the model
    schema on load.
    """

    def __init__(self, db_path: str = "tracker.db", key: str = STATE_KEY) -> None:
        super().__init__(db_path)
        self.key = key

    def load(self) -> Optional[AppState]:
        blob = self.get(self.key)
        if blob is None:
            return None
        try:
            return AppState.model_validate_json(blob)
        except (SchemaError, ValidationError) as e:
            logger.warning("Stored state under %r failed validation", self.key)
            raise FormatError(f"stored state is invalid: {e}")

    def save(self, state: AppState) -> None:
        self.set(self.key, state.model_dump_json(by_alias=True))
        logger.debug("Persisted state under %r", self.key)

    def clear(self) -> None:
        self.delete(self.key)
