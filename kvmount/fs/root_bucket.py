"""
RootBucket - BucketLike view of a transaction's top level.
"""

from collections.abc import Iterator

from kvmount.engine.bucket import Bucket
from kvmount.engine.transaction import Transaction
from kvmount.interfaces.bucket_like import BucketLike
from kvmount.models.exceptions import PermissionDeniedError


class RootBucket(BucketLike):
    """
    The top level of the database, which holds buckets but never values.

    Gives directory code one interface for every level: get() always
    misses and put()/delete() are refused.
    """

    def __init__(self, tx: Transaction) -> None:
        self._tx = tx

    def bucket(self, name: bytes) -> Bucket | None:
        return self._tx.bucket(name)

    def create_bucket(self, name: bytes) -> Bucket:
        return self._tx.create_bucket(name)

    def delete_bucket(self, name: bytes) -> None:
        self._tx.delete_bucket(name)

    def cursor(self) -> Iterator[tuple[bytes, bool]]:
        return self._tx.cursor()

    def get(self, key: bytes) -> bytes | None:
        return None

    def put(self, key: bytes, value: bytes) -> None:
        raise PermissionDeniedError("the root holds buckets only")

    def delete(self, key: bytes) -> None:
        raise PermissionDeniedError("the root holds buckets only")


def resolve_bucket(tx: Transaction, path: tuple[bytes, ...]) -> BucketLike | None:
    """
    Walk from the top level down a path of bucket names.

    Args:
        tx: The transaction to resolve in.
        path: Raw bucket names from the top level; empty for the root.

    Returns:
        The bucket at the end of the path, or None if any step is missing.
    """
    if not path:
        return RootBucket(tx)

    bucket = tx.bucket(path[0])
    for name in path[1:]:
        if bucket is None:
            return None
        bucket = bucket.bucket(name)
    return bucket
