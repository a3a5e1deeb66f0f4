"""
Bucket - A nested container of sub-buckets and leaf values.
"""

from collections.abc import Iterator
from typing import TYPE_CHECKING

from kvmount.interfaces.bucket_like import BucketLike
from kvmount.models.exceptions import (
    AlreadyExistsError,
    MalformedNameError,
    NotFoundError,
    PermissionDeniedError,
)

if TYPE_CHECKING:
    from kvmount.engine.transaction import Transaction

# Parent id used by top-level buckets; the root has no row in `buckets`
ROOT_BUCKET_ID = 0


class Bucket(BucketLike):
    """
    A bucket stored in the database, bound to one transaction.

    Every method runs SQL on the owning transaction's connection, so a
    bucket must not be used after the transaction ends.
    """

    def __init__(self, tx: "Transaction", bucket_id: int) -> None:
        """
        Initialize bucket.

        Args:
            tx: The transaction this bucket was resolved in.
            bucket_id: Row id of the bucket (ROOT_BUCKET_ID for the top level).
        """
        self._tx = tx
        self.id = bucket_id

    def _child(self, name: bytes) -> tuple[int | None, bytes | None] | None:
        """Return (bucket_id, value) for a direct child, or None."""
        return self._tx.execute(
            "SELECT bucket, value FROM nodes WHERE parent = ? AND name = ?",
            (self.id, bytes(name)),
        ).fetchone()

    def bucket(self, name: bytes) -> "Bucket | None":
        row = self._child(name)
        if row is None or row[0] is None:
            return None
        return Bucket(self._tx, row[0])

    def create_bucket(self, name: bytes) -> "Bucket":
        self._tx.check_writable()
        if not name:
            raise MalformedNameError("", "bucket name required")
        if self._child(name) is not None:
            raise AlreadyExistsError(name)

        bucket_id = self._tx.execute("INSERT INTO buckets DEFAULT VALUES").lastrowid
        self._tx.execute(
            "INSERT INTO nodes (parent, name, bucket) VALUES (?, ?, ?)",
            (self.id, bytes(name), bucket_id),
        )
        return Bucket(self._tx, bucket_id)

    def delete_bucket(self, name: bytes) -> None:
        self._tx.check_writable()
        row = self._child(name)
        if row is None or row[0] is None:
            raise NotFoundError(name)

        # Collect the bucket and all of its descendants
        ids = [
            r[0]
            for r in self._tx.execute(
                """
                WITH RECURSIVE sub(id) AS (
                    SELECT ?
                    UNION ALL
                    SELECT n.bucket FROM nodes n JOIN sub ON n.parent = sub.id
                    WHERE n.bucket IS NOT NULL
                )
                SELECT id FROM sub
                """,
                (row[0],),
            ).fetchall()
        ]
        for bucket_id in ids:
            self._tx.execute("DELETE FROM nodes WHERE parent = ?", (bucket_id,))
            self._tx.execute("DELETE FROM buckets WHERE id = ?", (bucket_id,))
        self._tx.execute(
            "DELETE FROM nodes WHERE parent = ? AND name = ?", (self.id, bytes(name))
        )

    def cursor(self) -> Iterator[tuple[bytes, bool]]:
        rows = self._tx.execute(
            "SELECT name, bucket IS NOT NULL FROM nodes WHERE parent = ? ORDER BY name",
            (self.id,),
        ).fetchall()
        return iter([(bytes(name), bool(is_bucket)) for name, is_bucket in rows])

    def get(self, key: bytes) -> bytes | None:
        row = self._child(key)
        if row is None or row[0] is not None:
            return None
        return bytes(row[1])

    def put(self, key: bytes, value: bytes) -> None:
        self._tx.check_writable()
        if not key:
            raise MalformedNameError("", "key required")
        row = self._child(key)
        if row is not None and row[0] is not None:
            raise AlreadyExistsError(key)
        self._tx.execute(
            "INSERT OR REPLACE INTO nodes (parent, name, value) VALUES (?, ?, ?)",
            (self.id, bytes(key), bytes(value)),
        )

    def delete(self, key: bytes) -> None:
        self._tx.check_writable()
        row = self._child(key)
        if row is None:
            return
        if row[0] is not None:
            raise PermissionDeniedError(f"{key!r} is a bucket, not a value")
        self._tx.execute(
            "DELETE FROM nodes WHERE parent = ? AND name = ?", (self.id, bytes(key))
        )

    def __repr__(self) -> str:
        return f"Bucket(id={self.id})"
