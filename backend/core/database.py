"""
SQLite database connection and initialization.
"""
import sqlite3
from pathlib import Path
from typing import Optional, List
from contextlib import contextmanager

from .config import DB_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, key)
);
"""


class Database:
    """Database manager for SQLite operations."""

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self.ensure_tables()

    @contextmanager
    def get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_tables(self):
        """Create all tables if they don't exist."""
        with self.get_connection() as conn:
            conn.executescript(SCHEMA)

    def execute(self, query: str, params: Optional[tuple] = None) -> List[sqlite3.Row]:
        """Execute a SELECT query and return results."""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params or ())
            return cursor.fetchall()

    def execute_one(self, query: str, params: Optional[tuple] = None) -> Optional[sqlite3.Row]:
        """Execute a SELECT query and return first result."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_write(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an INSERT/UPDATE/DELETE query and return last row ID."""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params or ())
            return cursor.lastrowid

    def get_value(self, namespace: str, key: str) -> Optional[str]:
        row = self.execute_one(
            "SELECT value FROM kv_store WHERE namespace = ? AND key = ?",
            (namespace, key),
        )
        return row["value"] if row else None

    def set_value(self, namespace: str, key: str, value: str) -> None:
        self.execute_write(
            """
            INSERT INTO kv_store (namespace, key, value, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(namespace, key) DO UPDATE SET
                value = excluded.value,
                updated_at = CURRENT_TIMESTAMP
            """,
            (namespace, key, value),
        )


_db: Optional[Database] = None


def get_db() -> Database:
    """Get the application database, creating it on first use."""
    global _db
    if _db is None:
        _db = Database()
    return _db
