"""
DatabaseInitializer - Handle schema creation and version checks on open.
"""

import logging
import sqlite3
from pathlib import Path

from kvmount.models.exceptions import StorageIOError

logger = logging.getLogger(__name__)


class DatabaseInitializer:
    """
    Prepares a database file for use.

    Responsibilities:
    - Create the parent directory of the database file
    - Switch the journal to WAL so readers get snapshots without blocking
    - Create the bucket tables on first open
    - Refuse files written with an unknown schema version
    """

    SCHEMA_VERSION = 1

    # Every bucket except the root has a row in `buckets`. Each child of a
    # bucket is one row in `nodes`: a sub-bucket has `bucket` set, a leaf
    # value has `value` set. Ordering by `name` is byte order for BLOBs.
    SCHEMA = """
        CREATE TABLE IF NOT EXISTS buckets (
            id INTEGER PRIMARY KEY AUTOINCREMENT
        );
        CREATE TABLE IF NOT EXISTS nodes (
            parent INTEGER NOT NULL,
            name BLOB NOT NULL,
            bucket INTEGER,
            value BLOB,
            PRIMARY KEY (parent, name)
        ) WITHOUT ROWID;
    """

    def __init__(self, path: str, busy_timeout_ms: int) -> None:
        """
        Initialize the database initializer.

        Args:
            path: Absolute path of the database file.
            busy_timeout_ms: How long to wait for a competing writer.
        """
        self.path = path
        self._busy_timeout_ms = busy_timeout_ms

    def needs_schema(self, conn: sqlite3.Connection) -> bool:
        """Check whether the file has no schema yet."""
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        return version == 0

    def initialize(self) -> None:
        """
        Create or validate the schema.

        Raises:
            StorageIOError: If the file is not a database, or was written
                with a different schema version.
        """
        try:
            conn = sqlite3.connect(
                self.path,
                timeout=self._busy_timeout_ms / 1000,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise StorageIOError(f"cannot open database {self.path}: {e}") from e

        try:
            conn.execute("PRAGMA journal_mode=WAL")
            if self.needs_schema(conn):
                logger.info(f"Creating schema in {self.path}")
                conn.executescript(self.SCHEMA)
                conn.execute(f"PRAGMA user_version = {self.SCHEMA_VERSION}")
            else:
                version = conn.execute("PRAGMA user_version").fetchone()[0]
                if version != self.SCHEMA_VERSION:
                    raise StorageIOError(
                        f"unsupported schema version {version} in {self.path}, "
                        f"expected {self.SCHEMA_VERSION}"
                    )
        except sqlite3.Error as e:
            raise StorageIOError(f"cannot initialize database {self.path}: {e}") from e
        finally:
            conn.close()

    def __enter__(self) -> "DatabaseInitializer":
        """Context manager entry."""
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        pass
