"""
DirEntry and NodeKind for directory listings.
"""

from dataclasses import dataclass
from enum import IntEnum


class NodeKind(IntEnum):
    """Kind of child stored in a bucket."""

    CONTAINER = 0  # Nested bucket, shown as a directory
    ENTRY = 1  # Leaf value, shown as a regular file


@dataclass(frozen=True)
class DirEntry:
    """
    One child of a directory listing.

    Attributes:
        name: Display name produced by the key codec.
        raw_name: The raw key in the bucket.
        kind: Whether the child is a container or a leaf entry.
    """

    name: str
    raw_name: bytes
    kind: NodeKind

    def is_dir(self) -> bool:
        return self.kind == NodeKind.CONTAINER
