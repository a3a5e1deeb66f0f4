"""
Concurrency tests for file nodes sharing one database.
"""

import asyncio

from kvmount.fs.directory import Directory
from kvmount.fs.file import File


class TestConcurrentFiles:
    """Concurrent access through file nodes."""

    async def test_many_concurrent_writers(self, bukkit, read_value):
        """Test writers on different files all commit."""
        parent = Directory(bukkit, (b"bukkit",))

        async def writer(writer_id: int) -> None:
            node = await parent.create_entry(f"file{writer_id}".encode())
            for i in range(20):
                await node.write(i * 4, f"{i:04d}".encode())
            await node.flush()
            await node.release(True)

        await asyncio.gather(*(writer(i) for i in range(10)))

        expected = b"".join(f"{i:04d}".encode() for i in range(20))
        for writer_id in range(10):
            assert read_value(b"bukkit", f"file{writer_id}".encode()) == expected

    async def test_last_flush_wins(self, bukkit, read_value):
        """Test independent buffers on one value: the later commit wins."""
        parent = Directory(bukkit, (b"bukkit",))
        first = File(parent, b"two")
        second = File(parent, b"two")
        await first.open(True)
        await second.open(True)

        await first.write(0, b"first")
        await second.write(0, b"second")

        await first.flush()
        assert read_value(b"bukkit", b"two") == b"first"
        await second.flush()
        assert read_value(b"bukkit", b"two") == b"second"

    async def test_concurrent_writes_one_node(self, bukkit, read_value):
        """Test interleaved writes at distinct offsets all land."""
        parent = Directory(bukkit, (b"bukkit",))
        node = File(parent, b"two")
        await node.open(True)
        await node.set_size(0)

        await asyncio.gather(*(node.write(i, bytes([65 + i])) for i in range(26)))
        await node.flush()
        await node.release(True)

        assert read_value(b"bukkit", b"two") == bytes(range(65, 91))

    async def test_readers_never_see_torn_values(self, bukkit, write_value):
        """Test reads during flushes return a whole old or new value."""
        parent = Directory(bukkit, (b"bukkit",))
        old = b"a" * 4096
        new = b"b" * 8192
        write_value(b"bukkit", b"big", value=old)

        writer = File(parent, b"big")
        await writer.open(True)
        await writer.set_size(0)
        await writer.write(0, new)

        async def reader() -> bytes:
            return await File(parent, b"big").read(0, 1 << 20)

        results = await asyncio.gather(
            *(reader() for _ in range(10)), writer.flush(), *(reader() for _ in range(10))
        )
        for data in results[:10] + results[11:]:
            assert data in (old, new)

    async def test_concurrent_mkdir_collision(self, bukkit):
        """Test exactly one of several racing mkdirs succeeds."""
        parent = Directory(bukkit, (b"bukkit",))

        results = await asyncio.gather(
            *(parent.create_container(b"race") for _ in range(5)),
            return_exceptions=True,
        )
        successes = [r for r in results if isinstance(r, Directory)]
        assert len(successes) == 1
        assert len(results) - len(successes) == 4
