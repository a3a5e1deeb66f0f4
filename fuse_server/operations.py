"""
KVOperations - pyfuse3 request handlers backed by directory and file nodes.
"""

import errno
import functools
import logging
import os
import time

import pyfuse3

from fuse_server.inodes import InodeTable, Node
from kvmount.fs.directory import Directory
from kvmount.fs.file import File
from kvmount.fs.filesystem import FileSystem
from kvmount.models.dirent import DirEntry
from kvmount.models.exceptions import KVMountError, MalformedNameError
from kvmount.models.key_codec import decode_key

logger = logging.getLogger(__name__)


def _errno_boundary(handler):
    """Translate node exceptions into FUSE errors for the kernel."""

    @functools.wraps(handler)
    async def wrapper(*args, **kwargs):
        try:
            return await handler(*args, **kwargs)
        except pyfuse3.FUSEError:
            raise
        except KVMountError as e:
            logger.debug(f"{handler.__name__}: {e}")
            raise pyfuse3.FUSEError(e.errno) from e
        except Exception as e:
            logger.exception(f"{handler.__name__} failed")
            raise pyfuse3.FUSEError(errno.EIO) from e

    return wrapper


def _decode_name(name: bytes, malformed_errno: int) -> bytes:
    """Decode a kernel-supplied display name into a raw key."""
    try:
        return decode_key(name.decode("ascii"))
    except UnicodeDecodeError:
        pass
    except MalformedNameError as e:
        logger.debug(str(e))
    raise pyfuse3.FUSEError(malformed_errno)


def _is_writable(flags: int) -> bool:
    return (flags & os.O_ACCMODE) != os.O_RDONLY


class KVOperations(pyfuse3.Operations):
    """
    FUSE operations for one mounted database.

    Responsibilities:
    - Allocate inodes for directory and file nodes (InodeTable)
    - Track open file handles and whether each may write
    - Decode names and convert node errors to errno values

    Malformed names are reported as ENOENT by lookup, unlink and rmdir,
    and as EPERM by mkdir and create.
    """

    def __init__(self, filesystem: FileSystem) -> None:
        super().__init__()
        self._fs = filesystem
        self._inodes = InodeTable(filesystem.root())

        # fh -> (file node, writable)
        self._files: dict[int, tuple[File, bool]] = {}

        # fh -> (directory node, listing snapshot taken at offset 0)
        self._dirs: dict[int, tuple[Directory, list[DirEntry]]] = {}

        self._next_fh = 1

    @property
    def inodes(self) -> InodeTable:
        return self._inodes

    def _new_fh(self) -> int:
        fh = self._next_fh
        self._next_fh += 1
        return fh

    def _node(self, inode: int) -> Node:
        node = self._inodes.get(inode)
        if node is None:
            raise pyfuse3.FUSEError(errno.ENOENT)
        return node

    def _directory(self, inode: int) -> Directory:
        node = self._node(inode)
        if not isinstance(node, Directory):
            raise pyfuse3.FUSEError(errno.ENOTDIR)
        return node

    def _file(self, fh: int) -> tuple[File, bool]:
        try:
            return self._files[fh]
        except KeyError:
            raise pyfuse3.FUSEError(errno.EBADF) from None

    async def _attr(self, inode: int, node: Node) -> pyfuse3.EntryAttributes:
        attrs = await node.attributes()
        now_ns = time.time_ns()

        entry = pyfuse3.EntryAttributes()
        entry.st_ino = inode
        entry.st_mode = attrs.mode
        entry.st_nlink = 2 if attrs.is_dir() else 1
        entry.st_size = attrs.size
        entry.st_uid = os.getuid()
        entry.st_gid = os.getgid()
        entry.st_atime_ns = now_ns
        entry.st_mtime_ns = now_ns
        entry.st_ctime_ns = now_ns
        # The database may change underneath us; never let the kernel cache
        entry.entry_timeout = 0
        entry.attr_timeout = 0
        return entry

    async def _register(self, node: Node, replace: bool = False) -> pyfuse3.EntryAttributes:
        inode, node = self._inodes.register(node, replace=replace)
        return await self._attr(inode, node)

    @_errno_boundary
    async def lookup(self, parent_inode, name, ctx=None):
        directory = self._directory(parent_inode)
        raw_name = _decode_name(name, errno.ENOENT)
        child = await directory.resolve(raw_name)
        return await self._register(child)

    async def forget(self, inode_list):
        for inode, nlookup in inode_list:
            self._inodes.forget(inode, nlookup)

    @_errno_boundary
    async def getattr(self, inode, ctx=None):
        return await self._attr(inode, self._node(inode))

    @_errno_boundary
    async def setattr(self, inode, attr, fields, fh, ctx):
        if fh is not None and fh in self._files:
            node = self._files[fh][0]
        else:
            node = self._node(inode)

        # Mode, ownership and times are fixed; only the size can change
        if fields.update_size:
            if not isinstance(node, File):
                raise pyfuse3.FUSEError(errno.EISDIR)
            await node.set_size(attr.st_size)
        return await self._attr(inode, node)

    @_errno_boundary
    async def opendir(self, inode, ctx):
        directory = self._directory(inode)
        fh = self._new_fh()
        self._dirs[fh] = (directory, [])
        return fh

    @_errno_boundary
    async def readdir(self, fh, start_id, token):
        try:
            directory, entries = self._dirs[fh]
        except KeyError:
            raise pyfuse3.FUSEError(errno.EBADF) from None

        if start_id == 0:
            entries = await directory.list_children()
            self._dirs[fh] = (directory, entries)

        for idx in range(start_id, len(entries)):
            entry = entries[idx]
            if entry.is_dir():
                child = Directory(directory.db, directory.path + (entry.raw_name,))
            else:
                child = File(directory, entry.raw_name)

            # A successful reply counts as a lookup of the entry
            inode, child = self._inodes.register(child)
            attr = await self._attr(inode, child)
            if not pyfuse3.readdir_reply(token, entry.name.encode("ascii"), attr, idx + 1):
                self._inodes.forget(inode, 1)
                break

    async def releasedir(self, fh):
        self._dirs.pop(fh, None)

    @_errno_boundary
    async def mkdir(self, parent_inode, name, mode, ctx):
        directory = self._directory(parent_inode)
        raw_name = _decode_name(name, errno.EPERM)
        child = await directory.create_container(raw_name)
        return await self._register(child)

    @_errno_boundary
    async def create(self, parent_inode, name, mode, flags, ctx):
        directory = self._directory(parent_inode)
        raw_name = _decode_name(name, errno.EPERM)
        node = await directory.create_entry(raw_name)

        inode, node = self._inodes.register(node, replace=True)
        fh = self._new_fh()
        self._files[fh] = (node, True)
        logger.debug(f"create: inode={inode}, fh={fh}, {node!r}")
        return pyfuse3.FileInfo(fh=fh, keep_cache=False), await self._attr(inode, node)

    @_errno_boundary
    async def open(self, inode, flags, ctx):
        node = self._node(inode)
        if not isinstance(node, File):
            raise pyfuse3.FUSEError(errno.EISDIR)

        writable = _is_writable(flags)
        await node.open(writable)

        fh = self._new_fh()
        self._files[fh] = (node, writable)
        return pyfuse3.FileInfo(fh=fh, keep_cache=False)

    @_errno_boundary
    async def read(self, fh, off, size):
        node, _ = self._file(fh)
        return await node.read(off, size)

    @_errno_boundary
    async def write(self, fh, off, buf):
        node, writable = self._file(fh)
        if not writable:
            raise pyfuse3.FUSEError(errno.EBADF)
        return await node.write(off, buf)

    @_errno_boundary
    async def flush(self, fh):
        node, _ = self._file(fh)
        await node.flush()

    @_errno_boundary
    async def fsync(self, fh, datasync):
        node, _ = self._file(fh)
        await node.flush()

    @_errno_boundary
    async def release(self, fh):
        node, writable = self._files.pop(fh, (None, False))
        if node is not None:
            await node.release(writable)

    @_errno_boundary
    async def unlink(self, parent_inode, name, ctx):
        directory = self._directory(parent_inode)
        raw_name = _decode_name(name, errno.ENOENT)
        await directory.remove(raw_name, is_container=False)

    @_errno_boundary
    async def rmdir(self, parent_inode, name, ctx):
        directory = self._directory(parent_inode)
        raw_name = _decode_name(name, errno.ENOENT)
        await directory.remove(raw_name, is_container=True)

    async def statfs(self, ctx):
        st = os.statvfs(os.path.dirname(self._fs.db.path))

        stat_ = pyfuse3.StatvfsData()
        stat_.f_bsize = st.f_bsize
        stat_.f_frsize = st.f_frsize
        stat_.f_blocks = st.f_blocks
        stat_.f_bfree = st.f_bfree
        stat_.f_bavail = st.f_bavail
        stat_.f_files = st.f_files
        stat_.f_ffree = st.f_ffree
        stat_.f_favail = st.f_favail
        stat_.f_namemax = st.f_namemax
        return stat_
