"""
SQLite connection handling and schema for the document and queue tables.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from . import config
from .errors import ConfigurationError, StorageError

# Busy timeout so concurrent drains wait on each other's write locks
CONNECT_TIMEOUT_SEC = 30

REQUIRED_TABLES = ("documents", "index_queue")


@contextmanager
def get_db(db_path: Optional[str] = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection.

    Any sqlite3 error raised while the connection is in use surfaces as
    StorageError; uncommitted work is rolled back.
    """
    path = db_path or config.DB_PATH
    if path == ":memory:":
        # Tables would vanish with each connection
        raise ConfigurationError("In-memory SQLite databases are not supported; use a file path")
    try:
        conn = sqlite3.connect(path, timeout=CONNECT_TIMEOUT_SEC)
    except sqlite3.Error as e:
        raise StorageError(f"Cannot open database {path}: {e}") from e
    try:
        yield conn
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(f"Database error: {e}") from e
    finally:
        conn.close()


def init_db(db_path: Optional[str] = None):
    """Initialize the database with required tables."""
    path = db_path or config.DB_PATH
    config.ensure_db_directory(path)

    with get_db(path) as conn:
        cursor = conn.cursor()

        # One row per (record, owner, category); embedding holds codec bytes
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS documents (
                doc_id TEXT NOT NULL,
                owner_id TEXT NOT NULL,
                source_app TEXT NOT NULL,
                content TEXT NOT NULL,
                embedding BLOB NOT NULL,
                metadata TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (doc_id, owner_id, source_app)
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS index_queue (
                queue_id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                source_app TEXT NOT NULL,
                item_id TEXT NOT NULL,
                action TEXT NOT NULL DEFAULT 'index',
                status TEXT NOT NULL DEFAULT 'pending',
                error_message TEXT,
                created_at TEXT NOT NULL,
                processed_at TEXT
            )
        ''')

        # Create indexes for performance
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(owner_id)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_documents_owner_app ON documents(owner_id, source_app)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_queue_status ON index_queue(status)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_queue_item ON index_queue(source_app, item_id)')

        conn.commit()


def health_check(db_path: Optional[str] = None) -> bool:
    """Check database health."""
    try:
        with get_db(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]
            return all(table in table_names for table in REQUIRED_TABLES)
    except StorageError:
        return False
