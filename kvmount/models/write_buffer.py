"""
WriteBuffer - mutable in-memory file content between open and release.
"""

import sys

from kvmount.models.exceptions import FileTooLargeError


class WriteBuffer:
    """
    Growable byte buffer with file-like offset semantics.

    Supports:
    - Reads that stop at the current length (no zero fill)
    - Writes at any offset, zero-filling gaps
    - Truncation and zero-extension to an exact size
    """

    # Largest size a buffer may reach
    MAX_SIZE = sys.maxsize

    def __init__(self, data: bytes = b"") -> None:
        """
        Initialize buffer.

        Args:
            data: Initial content; copied so callers may reuse their bytes.
        """
        self._data = bytearray(data)

    def read(self, offset: int, size: int) -> bytes:
        """
        Read up to `size` bytes starting at `offset`.

        Returns:
            The bytes available, b"" if offset is at or past the end.
        """
        if offset >= len(self._data):
            return b""
        return bytes(self._data[offset : offset + size])

    def write(self, offset: int, data: bytes) -> int:
        """
        Write `data` at `offset`, growing the buffer as needed.

        Returns:
            Number of bytes written (always len(data)).

        Raises:
            FileTooLargeError: If the resulting size exceeds MAX_SIZE.
        """
        end = offset + len(data)
        if end > self.MAX_SIZE:
            raise FileTooLargeError(end, self.MAX_SIZE)
        if end > len(self._data):
            self._data.extend(bytes(end - len(self._data)))
        self._data[offset:end] = data
        return len(data)

    def truncate(self, size: int) -> None:
        """
        Resize to exactly `size` bytes, zero-extending if it grows.

        Raises:
            FileTooLargeError: If size exceeds MAX_SIZE.
        """
        if size > self.MAX_SIZE:
            raise FileTooLargeError(size, self.MAX_SIZE)
        if size < len(self._data):
            del self._data[size:]
        elif size > len(self._data):
            self._data.extend(bytes(size - len(self._data)))

    def __len__(self) -> int:
        return len(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)
