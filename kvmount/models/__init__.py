"""
Data models for the filesystem bridge.
"""

from kvmount.models.attributes import DIR_MODE, FILE_MODE, NodeAttributes
from kvmount.models.dirent import DirEntry, NodeKind
from kvmount.models.key_codec import decode_key, encode_key
from kvmount.models.write_buffer import WriteBuffer

__all__ = [
    "DIR_MODE",
    "FILE_MODE",
    "NodeAttributes",
    "DirEntry",
    "NodeKind",
    "decode_key",
    "encode_key",
    "WriteBuffer",
]
