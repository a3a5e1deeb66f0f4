"""
Directory and file nodes bridging buckets and values to filesystem calls.
"""

from kvmount.fs.directory import Directory
from kvmount.fs.file import File
from kvmount.fs.filesystem import FileSystem
from kvmount.fs.root_bucket import RootBucket, resolve_bucket

__all__ = ["Directory", "File", "FileSystem", "RootBucket", "resolve_bucket"]
