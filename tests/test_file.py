"""
Tests for File nodes and their write buffer lifecycle.
"""

import logging
import sys

import pytest

from kvmount.fs.directory import Directory
from kvmount.fs.file import File
from kvmount.models.exceptions import (
    FileTooLargeError,
    PermissionDeniedError,
    StaleError,
)


@pytest.fixture
def parent(bukkit):
    """Provide the directory for the "bukkit" bucket."""
    return Directory(bukkit, (b"bukkit",))


class TestReadWrite:
    """Tests for reading and writing file content."""

    async def test_create_write_flush(self, parent, read_value):
        """Test writing "hello" to a new file stores exactly "hello"."""
        node = await parent.create_entry(b"greeting")
        assert await node.write(0, b"hello") == 5
        await node.flush()
        await node.release(True)

        assert read_value(b"bukkit", b"greeting") == b"hello"
        assert await File(parent, b"greeting").read(0, 100) == b"hello"

    async def test_write_at_offset(self, parent, read_value):
        """Test a write past the end zero-fills the gap."""
        node = await parent.create_entry(b"gap")
        await node.write(3, b"offset")
        await node.flush()
        await node.release(True)

        assert read_value(b"bukkit", b"gap") == b"\x00\x00\x00offset"

    async def test_read_unbuffered(self, parent):
        """Test reads without a writer come straight from the database."""
        node = File(parent, b"two")
        assert await node.read(0, 5) == b"hello"
        assert await node.read(1, 2) == b"el"
        assert await node.read(3, 100) == b"lo"

    async def test_read_past_end(self, parent):
        """Test reading at or beyond the end returns no bytes."""
        node = File(parent, b"two")
        assert await node.read(5, 10) == b""
        assert await node.read(100, 10) == b""

        await node.open(True)
        assert await node.read(5, 10) == b""
        await node.release(True)

    async def test_unbuffered_read_sees_new_commits(self, parent, write_value):
        """Test every unbuffered read takes a fresh snapshot."""
        node = File(parent, b"two")
        assert await node.read(0, 100) == b"hello"
        write_value(b"bukkit", b"two", value=b"changed")
        assert await node.read(0, 100) == b"changed"

    async def test_write_without_writer(self, parent):
        """Test writing to a file with no writable handle is refused."""
        node = File(parent, b"two")
        with pytest.raises(PermissionDeniedError):
            await node.write(0, b"nope")

        await node.open(False)
        with pytest.raises(PermissionDeniedError):
            await node.write(0, b"nope")


class TestBuffering:
    """Tests for the shared write buffer."""

    async def test_open_loads_buffer(self, parent):
        """Test the first writable open copies the stored value."""
        node = File(parent, b"two")
        await node.open(True)
        assert node.buffered
        assert node.writers == 1
        assert await node.read(0, 100) == b"hello"

    async def test_read_only_open_does_not_buffer(self, parent):
        """Test read-only handles leave the file unbuffered."""
        node = File(parent, b"two")
        await node.open(False)
        assert not node.buffered
        await node.release(False)
        assert node.writers == 0

    async def test_writers_share_buffer(self, parent, read_value):
        """Test two writable handles on one node see each other's writes."""
        node = File(parent, b"two")
        await node.open(True)
        await node.open(True)
        assert node.writers == 2

        await node.write(0, b"J")
        assert await node.read(0, 100) == b"Jello"
        assert read_value(b"bukkit", b"two") == b"hello"

        await node.release(True)
        assert node.buffered
        assert await node.read(0, 100) == b"Jello"

        await node.flush()
        await node.release(True)
        assert not node.buffered
        assert await node.read(0, 100) == b"Jello"
        assert read_value(b"bukkit", b"two") == b"Jello"

    async def test_unflushed_writes_discarded(self, parent, read_value):
        """Test releasing the last writer without flush drops the buffer."""
        node = File(parent, b"two")
        await node.open(True)
        await node.write(0, b"lost!")
        await node.release(True)

        assert read_value(b"bukkit", b"two") == b"hello"
        assert await node.read(0, 100) == b"hello"

    async def test_later_open_reloads(self, parent, write_value):
        """Test a fresh buffer is loaded after the previous one is released."""
        node = File(parent, b"two")
        await node.open(True)
        await node.release(True)

        write_value(b"bukkit", b"two", value=b"reloaded")
        await node.open(True)
        assert await node.read(0, 100) == b"reloaded"

    async def test_flush_read_only_is_noop(self, parent, write_value, read_value):
        """Test flushing without a writer never overwrites the value."""
        node = File(parent, b"two")
        await node.open(False)
        write_value(b"bukkit", b"two", value=b"someone else")
        await node.flush()

        assert read_value(b"bukkit", b"two") == b"someone else"

    async def test_repeated_flush(self, parent, read_value):
        """Test each flush stores the buffer as it is at that moment."""
        node = File(parent, b"two")
        await node.open(True)
        await node.write(5, b" world")
        await node.flush()
        assert read_value(b"bukkit", b"two") == b"hello world"

        await node.write(0, b"HELLO")
        await node.flush()
        assert read_value(b"bukkit", b"two") == b"HELLO world"

    async def test_extra_release(self, parent, caplog):
        """Test releasing with no writer open only logs a warning."""
        node = File(parent, b"two")
        with caplog.at_level(logging.WARNING):
            await node.release(True)
        assert node.writers == 0
        assert "without an open writer" in caplog.text


class TestSetSize:
    """Tests for truncation and extension."""

    async def test_truncate_buffered(self, parent, write_value, read_value):
        """Test truncating 6 bytes to 3 stores the first 3."""
        write_value(b"bukkit", b"six", value=b"abcdef")
        node = File(parent, b"six")
        await node.open(True)
        await node.set_size(3)
        await node.flush()
        await node.release(True)

        assert read_value(b"bukkit", b"six") == b"abc"

    async def test_extend_buffered(self, parent, read_value):
        """Test growing a buffered file zero-fills."""
        node = File(parent, b"two")
        await node.open(True)
        await node.set_size(7)
        assert (await node.attributes()).size == 7
        await node.flush()

        assert read_value(b"bukkit", b"two") == b"hello\x00\x00"

    async def test_truncate_unbuffered(self, parent, read_value):
        """Test resizing without a writer changes the stored value."""
        node = File(parent, b"two")
        await node.set_size(2)
        assert read_value(b"bukkit", b"two") == b"he"

        await node.set_size(4)
        assert read_value(b"bukkit", b"two") == b"he\x00\x00"

        await node.set_size(0)
        assert read_value(b"bukkit", b"two") == b""

    async def test_too_large(self, parent, read_value):
        """Test writes and truncates beyond the maximum size fail."""
        node = File(parent, b"two")
        with pytest.raises(FileTooLargeError):
            await node.set_size(sys.maxsize + 1)

        await node.open(True)
        with pytest.raises(FileTooLargeError):
            await node.write(sys.maxsize, b"x")
        with pytest.raises(FileTooLargeError):
            await node.set_size(sys.maxsize + 1)

        assert await node.read(0, 100) == b"hello"
        assert read_value(b"bukkit", b"two") == b"hello"


class TestAttributes:
    """Tests for file attributes."""

    async def test_size_from_database(self, parent):
        """Test an unbuffered file reports the stored length."""
        attrs = await File(parent, b"two").attributes()
        assert not attrs.is_dir()
        assert attrs.size == 5

    async def test_size_from_buffer(self, parent):
        """Test a buffered file reports the buffer length."""
        node = File(parent, b"two")
        await node.open(True)
        await node.write(5, b"!!")
        assert (await node.attributes()).size == 7

    async def test_vanished_value_reports_zero(self, parent, bukkit):
        """Test a deleted value reports size 0 instead of failing."""
        node = File(parent, b"two")
        bukkit.update_sync(lambda tx: tx.bucket(b"bukkit").delete(b"two"))
        assert (await node.attributes()).size == 0


class TestStale:
    """Tests for values and buckets deleted under a node."""

    async def test_open_deleted_value(self, parent, bukkit):
        """Test opening a vanished value for writing is stale."""
        node = File(parent, b"two")
        bukkit.update_sync(lambda tx: tx.bucket(b"bukkit").delete(b"two"))
        with pytest.raises(StaleError):
            await node.open(True)
        assert node.writers == 0

    async def test_read_deleted_value(self, parent, bukkit):
        """Test an unbuffered read of a vanished value is stale."""
        node = File(parent, b"two")
        bukkit.update_sync(lambda tx: tx.delete_bucket(b"bukkit"))
        with pytest.raises(StaleError):
            await node.read(0, 10)

    async def test_flush_after_parent_deleted(self, parent, bukkit):
        """Test flushing into a deleted bucket is stale and stores nothing."""
        node = await parent.create_entry(b"orphan")
        await node.write(0, b"data")
        bukkit.update_sync(lambda tx: tx.delete_bucket(b"bukkit"))

        with pytest.raises(StaleError):
            await node.flush()
        assert bukkit.view_sync(lambda tx: tx.bucket(b"bukkit")) is None

    async def test_flush_recreates_deleted_value(self, parent, bukkit, read_value):
        """Test a flush stores the value again if only the value was deleted."""
        node = File(parent, b"two")
        await node.open(True)
        bukkit.update_sync(lambda tx: tx.bucket(b"bukkit").delete(b"two"))

        await node.flush()
        assert read_value(b"bukkit", b"two") == b"hello"
