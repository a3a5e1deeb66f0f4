"""
File - A leaf value exposed as a regular file, with write buffering.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from kvmount.engine.transaction import Transaction
from kvmount.fs.root_bucket import resolve_bucket
from kvmount.models.attributes import NodeAttributes
from kvmount.models.exceptions import (
    FileTooLargeError,
    KVMountError,
    PermissionDeniedError,
    StaleError,
)
from kvmount.models.write_buffer import WriteBuffer

if TYPE_CHECKING:
    from kvmount.fs.directory import Directory

logger = logging.getLogger(__name__)


class File:
    """
    File node for one value, addressed by parent path and raw name.

    States:
    - Unbuffered (no writable handles): the database is authoritative and
      every read takes a fresh snapshot
    - Buffered (one or more writable handles): an in-memory WriteBuffer is
      authoritative until the last writable handle is released

    Writes only touch the buffer; flush() stores the whole buffer in one
    transaction. A per-node lock serializes all buffer operations.
    """

    def __init__(self, parent: "Directory", name: bytes, created: bool = False) -> None:
        """
        Initialize file node.

        Args:
            parent: Directory holding this file.
            name: Raw key of the value in the parent bucket.
            created: True for a file that does not exist yet; it starts
                buffered and empty with one writable handle open.
        """
        self._parent = parent
        self._name = bytes(name)
        self._lock = asyncio.Lock()
        self._writers = 0
        self._buffer: WriteBuffer | None = None

        if created:
            self._writers = 1
            self._buffer = WriteBuffer()

    @property
    def parent(self) -> "Directory":
        return self._parent

    @property
    def name(self) -> bytes:
        return self._name

    @property
    def writers(self) -> int:
        return self._writers

    @property
    def buffered(self) -> bool:
        return self._buffer is not None

    def _load(self, tx: Transaction) -> bytes:
        bucket = resolve_bucket(tx, self._parent.path)
        if bucket is None:
            raise StaleError(self._name)
        value = bucket.get(self._name)
        if value is None:
            raise StaleError(self._name)
        return value

    async def attributes(self) -> NodeAttributes:
        """
        Report mode and size.

        The size comes from the buffer if one exists, otherwise from the
        database; a failed lookup reports size 0 instead of raising.
        """
        async with self._lock:
            if self._buffer is not None:
                return NodeAttributes.file(len(self._buffer))

        try:
            size = await self._parent.db.view(lambda tx: len(self._load(tx)))
        except KVMountError as e:
            logger.debug(f"size lookup failed for {self._name!r}: {e}")
            size = 0
        return NodeAttributes.file(size)

    async def open(self, writable: bool) -> None:
        """
        Open a handle.

        The first writable handle copies the stored value into a new
        buffer; later ones share it. Read-only handles change nothing.

        Raises:
            StaleError: If the value or its bucket no longer exists.
        """
        if not writable:
            return

        async with self._lock:
            if self._writers == 0:
                data = await self._parent.db.view(self._load)
                self._buffer = WriteBuffer(data)
            self._writers += 1

    async def read(self, offset: int, size: int) -> bytes:
        async with self._lock:
            if self._buffer is not None:
                return self._buffer.read(offset, size)

        data = await self._parent.db.view(self._load)
        return data[offset : offset + size]

    async def write(self, offset: int, data: bytes) -> int:
        """
        Write into the buffer.

        Returns:
            Number of bytes accepted (always len(data)).

        Raises:
            PermissionDeniedError: If no writable handle is open.
            FileTooLargeError: If the file would exceed the maximum size.
        """
        async with self._lock:
            if self._buffer is None:
                raise PermissionDeniedError(f"{self._name!r} is not open for writing")
            return self._buffer.write(offset, data)

    async def set_size(self, size: int) -> None:
        """
        Truncate or zero-extend to exactly `size` bytes.

        With no writable handle open, the stored value is resized directly.
        """
        async with self._lock:
            if self._buffer is not None:
                self._buffer.truncate(size)
                return

            if size > WriteBuffer.MAX_SIZE:
                raise FileTooLargeError(size, WriteBuffer.MAX_SIZE)

            def _resize(tx: Transaction) -> None:
                value = self._load(tx)
                if size <= len(value):
                    value = value[:size]
                else:
                    value = value + bytes(size - len(value))
                resolve_bucket(tx, self._parent.path).put(self._name, value)

            await self._parent.db.update(_resize)

    async def flush(self) -> None:
        """
        Store the buffer as the value in one transaction.

        A no-op without a writable handle, so flushing a read-only handle
        can never overwrite the stored value.

        Raises:
            StaleError: If the parent bucket no longer exists.
        """
        async with self._lock:
            if self._buffer is None:
                return

            data = bytes(self._buffer)

            def _store(tx: Transaction) -> None:
                bucket = resolve_bucket(tx, self._parent.path)
                if bucket is None:
                    raise StaleError(self._name)
                bucket.put(self._name, data)

            await self._parent.db.update(_store)
            logger.debug(f"flushed {len(data)} bytes to {self._name!r}")

    async def release(self, writable: bool) -> None:
        """Close a handle; the last writable one discards the buffer."""
        if not writable:
            return

        async with self._lock:
            if self._writers == 0:
                logger.warning(f"release of {self._name!r} without an open writer")
                return
            self._writers -= 1
            if self._writers == 0:
                self._buffer = None

    def __repr__(self) -> str:
        return f"File(parent={self._parent.path!r}, name={self._name!r})"
