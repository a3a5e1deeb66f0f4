"""
Mount a nested key-value database as a FUSE filesystem.

This package provides:
- Buckets as directories, values as regular files
- Reversible display names for arbitrary binary keys
- Buffered writes stored atomically on flush
- Short transactions per call against an embedded SQLite store
"""

from kvmount.engine.database import Database
from kvmount.fs.filesystem import FileSystem

__all__ = ["Database", "FileSystem"]
