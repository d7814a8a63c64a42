"""
Database connection module.

Provides the single shared connection to explorer.db. Every operation, read or
write, goes through one exclusive lock:

    with db.locked() as conn:       # reads
        ...
    with db.transaction() as conn:  # writes, all-or-nothing
        ...

All file parsing must happen before either block is entered so disk-bound work
never holds the store lock.
"""

import sqlite3
import threading
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple
import logging

from media_explorer.config import Config
from media_explorer.etl.schema import create_schema

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DatabaseConnection:
    """
    Owner of the explorer.db connection.

    The connection is opened in autocommit mode (isolation_level=None) so
    transactions are explicit, and with check_same_thread=False because the
    API serves requests from a thread pool; the lock serialises all access.
    """

    def __init__(self, config: Optional[Config] = None, *, use_memory: bool = False):
        """
        Initialize database connection.

        Args:
            config: Configuration object with the store path.
            use_memory: Use a private in-memory store instead of a file.
        """
        self.config = config or Config()
        self.use_memory = use_memory
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @property
    def path(self) -> Optional[Path]:
        """Path of the store file, or None for an in-memory store."""
        return None if self.use_memory else self.config.db_path

    def connect(self) -> sqlite3.Connection:
        """
        Open the store and make sure the schema is current.

        Returns:
            SQLite connection object.

        Raises:
            sqlite3.Error: If connection or schema creation fails.
        """
        if self._connection is not None:
            return self._connection

        if self.use_memory:
            target = MEMORY_DB
        else:
            self.config.ensure_db_dir()
            target = self.config.db_path_str

        try:
            conn = sqlite3.connect(target, isolation_level=None, check_same_thread=False)
            # Cascades are done by hand in loaders.clear_source
            conn.execute("PRAGMA foreign_keys = OFF;")
            create_schema(conn)
        except sqlite3.Error as e:
            logger.error(f"Failed to open store {target}: {e}")
            raise

        self._connection = conn
        logger.info(f"Connected to store: {target}")
        return conn

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
                logger.info("Store connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        """
        Get the raw connection.

        Raises:
            RuntimeError: If connection not established.
        """
        if self._connection is None:
            raise RuntimeError("Database connection not established. Call connect() first.")
        return self._connection

    @contextmanager
    def locked(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock for the duration of a read."""
        conn = self.connection
        with self._lock:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Hold the store lock inside one write transaction.

        Commits once on success; rolls back and re-raises on any exception,
        leaving the previous state intact.
        """
        conn = self.connection
        with self._lock:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                logger.warning("Transaction rolled back")
                raise
            else:
                conn.execute("COMMIT;")

    def vacuum(self) -> None:
        """Reclaim unused pages. Must run outside a transaction."""
        with self.locked() as conn:
            conn.execute("VACUUM;")

    def size_bytes(self) -> int:
        """Size of the store file on disk (0 for in-memory stores)."""
        path = self.path
        if path is None or not path.exists():
            return 0
        return path.stat().st_size

    def get_table_names(self) -> List[str]:
        """
        Get all table names in the store.

        Returns:
            List of table names.
        """
        query = "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
        return [row[0] for row in self.execute_query(query)]

    def get_row_count(self, table_name: str) -> int:
        """
        Get row count for a table.

        SQLite cannot bind identifiers, so only existing table names are accepted.

        Args:
            table_name: Name of the table.

        Returns:
            Number of rows in the table.
        """
        if table_name not in self.get_table_names():
            raise ValueError(f"Unknown table name: {table_name!r}")
        result = self.execute_query(f"SELECT COUNT(*) FROM `{table_name}`;")
        return result[0][0] if result else 0

    def execute_query(
        self, query: str, parameters: Optional[Tuple[Any, ...]] = None
    ) -> List[Tuple[Any, ...]]:
        """
        Execute a read query under the store lock and return all rows.

        Args:
            query: SQL query string.
            parameters: Optional query parameters.

        Returns:
            List of result rows.
        """
        with self.locked() as conn:
            with closing(conn.cursor()) as cursor:
                cursor.execute(query, parameters or ())
                return cursor.fetchall()
