"""
BucketLike abstract base class for containers inside a transaction.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator


class BucketLike(ABC):
    """
    Abstract base class for a container of sub-buckets and leaf values.

    A bucket is only valid inside the transaction that produced it.
    Sub-buckets and values share one key namespace.

    Implementations:
    - Bucket: A nested bucket stored in the database
    - RootBucket: The top level of a transaction, which holds buckets only
    """

    @abstractmethod
    def bucket(self, name: bytes) -> "BucketLike | None":
        """
        Resolve a direct sub-bucket.

        Args:
            name: Raw name of the sub-bucket.

        Returns:
            The sub-bucket if it exists, None otherwise.
        """
        pass

    @abstractmethod
    def create_bucket(self, name: bytes) -> "BucketLike":
        """
        Create a direct sub-bucket.

        Args:
            name: Raw name of the new sub-bucket.

        Returns:
            The new, empty sub-bucket.

        Raises:
            AlreadyExistsError: If a bucket or value already uses the name.
        """
        pass

    @abstractmethod
    def delete_bucket(self, name: bytes) -> None:
        """
        Delete a sub-bucket and everything below it.

        Raises:
            NotFoundError: If no sub-bucket has that name.
        """
        pass

    @abstractmethod
    def cursor(self) -> Iterator[tuple[bytes, bool]]:
        """
        Iterate over direct children in byte order of their keys.

        Returns:
            Iterator yielding (key, is_bucket) tuples.
        """
        pass

    @abstractmethod
    def get(self, key: bytes) -> bytes | None:
        """
        Retrieve a leaf value.

        Returns:
            A copy of the value, or None if absent or if key is a bucket.
        """
        pass

    @abstractmethod
    def put(self, key: bytes, value: bytes) -> None:
        """Insert or replace a leaf value."""
        pass

    @abstractmethod
    def delete(self, key: bytes) -> None:
        """Remove a leaf value; a missing key is not an error."""
        pass
