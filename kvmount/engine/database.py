"""
Database - Embedded ordered key-value store with nested buckets.
"""

import asyncio
import logging
import os
import sqlite3
import threading
from collections.abc import Callable
from typing import TypeVar

from kvmount.engine.initializer import DatabaseInitializer
from kvmount.engine.transaction import Transaction
from kvmount.models.exceptions import StorageIOError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Database:
    """
    Key-value database of nested buckets, stored in a single SQLite file.

    Provides:
    - view(fn): Run fn(tx) in a read-only snapshot transaction
    - update(fn): Run fn(tx) in a read-write transaction
    - view_sync/update_sync: The same, blocking the calling thread

    Architecture:
    - Every transaction uses its own connection, so transactions may run
      on any thread of the default executor
    - Writers are serialized by a process-wide lock and BEGIN IMMEDIATE
    - The WAL journal lets readers proceed while a writer is active
    - Any exception inside fn rolls the transaction back
    """

    # Default time to wait for a writer in another process (5 seconds)
    DEFAULT_BUSY_TIMEOUT_MS = 5000

    def __init__(self, path: str, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> None:
        """
        Open or create the database.

        Args:
            path: Database file path.
            busy_timeout_ms: Milliseconds to wait on a lock held by another
                process before failing. Maximum: 60000 (1 minute).
        """
        if not path or not path.strip():
            raise ValueError("path cannot be empty")

        if busy_timeout_ms < 0:
            raise ValueError(f"busy_timeout_ms must be >= 0, got {busy_timeout_ms}")
        if busy_timeout_ms > 60000:
            raise ValueError(
                f"busy_timeout_ms cannot exceed 60000ms (1 minute), got {busy_timeout_ms}"
            )

        path = os.path.abspath(path)
        if os.path.isdir(path):
            raise ValueError(f"path is a directory: {path}")

        parent = os.path.dirname(path)
        if os.path.exists(path):
            if not os.access(path, os.W_OK):
                raise PermissionError(f"database not writable: {path}")
        elif os.path.exists(parent) and not os.access(parent, os.W_OK):
            raise PermissionError(
                f"Cannot create database: {path}. Parent directory not writable: {parent}"
            )

        self._path = path
        self._busy_timeout_ms = busy_timeout_ms

        # Serializes writers within this process
        self._write_lock = threading.Lock()

        self._closed = False

        with DatabaseInitializer(self._path, self._busy_timeout_ms) as initializer:
            initializer.initialize()

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def _connect(self) -> sqlite3.Connection:
        if self._closed:
            raise StorageIOError("database is closed")
        return sqlite3.connect(
            self._path,
            timeout=self._busy_timeout_ms / 1000,
            isolation_level=None,
            check_same_thread=False,
        )

    def view_sync(self, fn: Callable[[Transaction], T]) -> T:
        """
        Run fn in a read-only transaction on the calling thread.

        Args:
            fn: Callable receiving the transaction. Its return value must not
                reference buckets, which die with the transaction.

        Returns:
            Whatever fn returns.
        """
        try:
            conn = self._connect()
            try:
                tx = Transaction(conn, writable=False)
                tx.begin()
                try:
                    return fn(tx)
                finally:
                    tx.rollback()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageIOError(f"read transaction failed: {e}") from e

    def update_sync(self, fn: Callable[[Transaction], T]) -> T:
        """
        Run fn in a read-write transaction on the calling thread.

        The transaction commits if fn returns and rolls back if it raises,
        so no partial changes become visible.

        Returns:
            Whatever fn returns.
        """
        with self._write_lock:
            try:
                conn = self._connect()
                try:
                    tx = Transaction(conn, writable=True)
                    tx.begin()
                    try:
                        result = fn(tx)
                    except BaseException:
                        tx.rollback()
                        raise
                    tx.commit()
                    return result
                finally:
                    conn.close()
            except sqlite3.Error as e:
                raise StorageIOError(f"write transaction failed: {e}") from e

    async def view(self, fn: Callable[[Transaction], T]) -> T:
        """Async read-only transaction; fn runs in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.view_sync, fn)

    async def update(self, fn: Callable[[Transaction], T]) -> T:
        """Async read-write transaction; fn runs in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.update_sync, fn)

    def close(self) -> None:
        """Close the database; later transactions fail with StorageIOError."""
        if not self._closed:
            # Wait for an in-flight writer to finish
            with self._write_lock:
                self._closed = True
            logger.debug(f"Closed database {self._path}")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
