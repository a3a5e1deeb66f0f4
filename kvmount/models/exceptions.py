"""
Custom exceptions for the filesystem bridge and storage engine.

Every error carries the errno the transport reports back to the kernel.
"""

import errno as _errno


class KVMountError(Exception):
    """Base class for all errors raised by nodes and the storage engine."""

    errno = _errno.EIO


class NotFoundError(KVMountError):
    """
    Raised when a lookup misses or an ancestor container has vanished.
    """

    errno = _errno.ENOENT

    def __init__(self, name: bytes | None = None, message: str | None = None):
        """
        Initialize not-found error.

        Args:
            name: Raw name of the missing child, if known.
            message: Override for the default message.
        """
        self.name = name
        if message is None:
            message = "no such bucket" if name is None else f"not found: {name!r}"
        super().__init__(message)


class AlreadyExistsError(KVMountError):
    """Raised when a create collides with an existing child."""

    errno = _errno.EEXIST

    def __init__(self, name: bytes):
        self.name = name
        super().__init__(f"already exists: {name!r}")


class PermissionDeniedError(KVMountError):
    """
    Raised for structurally forbidden operations.

    Examples are leaf entries directly under the root, writes through a
    read-only transaction, and writes to a file with no writable handle.
    """

    errno = _errno.EPERM


class MalformedNameError(KVMountError):
    """Raised when a display name does not decode to a raw key."""

    errno = _errno.EINVAL

    def __init__(self, display: str, reason: str):
        """
        Initialize malformed name error.

        Args:
            display: The display name that failed to decode.
            reason: Why decoding failed.
        """
        self.display = display
        super().__init__(f"malformed name {display!r}: {reason}")


class FileTooLargeError(KVMountError):
    """Raised when a write or truncate exceeds the addressable size."""

    errno = _errno.EFBIG

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(f"size {requested} exceeds maximum {limit}")


class StaleError(KVMountError):
    """Raised when a file's parent or entry disappeared after resolution."""

    errno = _errno.ESTALE

    def __init__(self, name: bytes):
        self.name = name
        super().__init__(f"stale file handle: {name!r}")


class StorageIOError(KVMountError):
    """Wraps unexpected failures of the underlying database."""

    errno = _errno.EIO
