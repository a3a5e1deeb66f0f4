"""
Transaction - One read-only or read-write unit of work on the database.
"""

import sqlite3
from collections.abc import Iterator

from kvmount.engine.bucket import ROOT_BUCKET_ID, Bucket
from kvmount.models.exceptions import PermissionDeniedError, StorageIOError


class Transaction:
    """
    A transaction on its own SQLite connection.

    Read-only transactions see a stable snapshot taken at their first
    read. Read-write transactions hold the database write lock from begin
    until commit or rollback.

    The top level of the database only holds buckets, so a transaction
    exposes bucket management but no get/put/delete.
    """

    def __init__(self, conn: sqlite3.Connection, writable: bool) -> None:
        """
        Initialize transaction.

        Args:
            conn: A connection in autocommit mode, owned by this transaction.
            writable: Whether this transaction may modify the database.
        """
        self._conn = conn
        self._writable = writable
        self._closed = True
        self._root = Bucket(self, ROOT_BUCKET_ID)

    @property
    def writable(self) -> bool:
        return self._writable

    @property
    def closed(self) -> bool:
        return self._closed

    def begin(self) -> None:
        self._conn.execute("BEGIN IMMEDIATE" if self._writable else "BEGIN DEFERRED")
        self._closed = False

    def commit(self) -> None:
        if not self._closed:
            self._closed = True
            self._conn.execute("COMMIT")

    def rollback(self) -> None:
        if not self._closed:
            self._closed = True
            self._conn.execute("ROLLBACK")

    def check_writable(self) -> None:
        if not self._writable:
            raise PermissionDeniedError("read-only transaction")

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """
        Run one statement inside this transaction.

        Raises:
            StorageIOError: If the transaction already ended.
        """
        if self._closed:
            raise StorageIOError("transaction is closed")
        return self._conn.execute(sql, params)

    def bucket(self, name: bytes) -> Bucket | None:
        return self._root.bucket(name)

    def create_bucket(self, name: bytes) -> Bucket:
        return self._root.create_bucket(name)

    def delete_bucket(self, name: bytes) -> None:
        self._root.delete_bucket(name)

    def cursor(self) -> Iterator[tuple[bytes, bool]]:
        return self._root.cursor()
