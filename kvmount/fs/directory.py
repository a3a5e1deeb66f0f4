"""
Directory - A bucket exposed as a directory.
"""

import logging

from kvmount.engine.database import Database
from kvmount.engine.transaction import Transaction
from kvmount.fs.file import File
from kvmount.fs.root_bucket import resolve_bucket
from kvmount.interfaces.bucket_like import BucketLike
from kvmount.models.attributes import NodeAttributes
from kvmount.models.dirent import DirEntry, NodeKind
from kvmount.models.exceptions import (
    AlreadyExistsError,
    MalformedNameError,
    NotFoundError,
    PermissionDeniedError,
)
from kvmount.models.key_codec import encode_key

logger = logging.getLogger(__name__)


class Directory:
    """
    Directory node for one bucket path.

    Holds no state besides the path: every call resolves the path again
    in its own transaction, so a directory whose bucket (or any ancestor)
    was deleted fails every call with NotFoundError.

    Provides:
    - list_children(): Children in key order, with their kind
    - resolve(name): Child directory or file
    - create_container(name): New sub-bucket
    - create_entry(name): New file with one open writable handle
    - remove(name, is_container): Delete a child of the given kind
    """

    def __init__(self, db: Database, path: tuple[bytes, ...] = ()) -> None:
        """
        Initialize directory node.

        Args:
            db: Shared database handle.
            path: Raw bucket names from the top level; empty for the root.
        """
        self._db = db
        self._path = tuple(path)

    @property
    def db(self) -> Database:
        return self._db

    @property
    def path(self) -> tuple[bytes, ...]:
        return self._path

    @property
    def is_root(self) -> bool:
        return not self._path

    def _bucket(self, tx: Transaction) -> BucketLike:
        bucket = resolve_bucket(tx, self._path)
        if bucket is None:
            raise NotFoundError()
        return bucket

    def _child(self, name: bytes) -> "Directory":
        return Directory(self._db, self._path + (bytes(name),))

    async def attributes(self) -> NodeAttributes:
        return NodeAttributes.directory()

    async def list_children(self) -> list[DirEntry]:
        """
        List the children of this bucket.

        Returns:
            Entries ordered by raw key bytes.
        """

        def _list(tx: Transaction) -> list[DirEntry]:
            return [
                DirEntry(
                    name=encode_key(key),
                    raw_name=key,
                    kind=NodeKind.CONTAINER if is_bucket else NodeKind.ENTRY,
                )
                for key, is_bucket in self._bucket(tx).cursor()
            ]

        return await self._db.view(_list)

    async def resolve(self, name: bytes) -> "Directory | File":
        """
        Look up a child by raw name.

        Raises:
            NotFoundError: If no bucket or value has that name.
        """

        def _resolve(tx: Transaction) -> NodeKind:
            bucket = self._bucket(tx)
            if bucket.bucket(name) is not None:
                return NodeKind.CONTAINER
            if bucket.get(name) is not None:
                return NodeKind.ENTRY
            raise NotFoundError(name)

        kind = await self._db.view(_resolve)
        if kind == NodeKind.CONTAINER:
            return self._child(name)
        return File(self, name)

    async def create_container(self, name: bytes) -> "Directory":
        """
        Create a sub-bucket.

        Raises:
            AlreadyExistsError: If the name is already taken.
        """
        logger.debug(f"mkdir {self._path!r} / {name!r}")

        def _create(tx: Transaction) -> None:
            bucket = self._bucket(tx)
            if bucket.bucket(name) is not None:
                raise AlreadyExistsError(name)
            bucket.create_bucket(name)

        await self._db.update(_create)
        return self._child(name)

    async def create_entry(self, name: bytes) -> File:
        """
        Create a file, returned with one writable handle already open.

        Nothing is stored until the first flush.

        Raises:
            PermissionDeniedError: If this is the root directory.
        """
        if self.is_root:
            raise PermissionDeniedError("only buckets can be created at the root")
        if not name:
            raise MalformedNameError("", "file name required")
        logger.debug(f"create {self._path!r} / {name!r}")
        return File(self, name, created=True)

    async def remove(self, name: bytes, is_container: bool) -> None:
        """
        Remove a child; buckets are removed with everything below them.

        Raises:
            NotFoundError: If no child of the requested kind has that name.
        """
        logger.debug(f"remove {self._path!r} / {name!r} (dir={is_container})")

        def _remove(tx: Transaction) -> None:
            bucket = self._bucket(tx)
            if is_container:
                if bucket.bucket(name) is None:
                    raise NotFoundError(name)
                bucket.delete_bucket(name)
            else:
                if bucket.get(name) is None:
                    raise NotFoundError(name)
                bucket.delete(name)

        await self._db.update(_remove)

    def __repr__(self) -> str:
        return f"Directory(path={self._path!r})"
