"""
NodeAttributes - mode and size reported for directories and files.
"""

import stat
from dataclasses import dataclass

# Modes are fixed; ownership is not modeled
DIR_MODE = stat.S_IFDIR | 0o755
FILE_MODE = stat.S_IFREG | 0o644


@dataclass(frozen=True)
class NodeAttributes:
    """
    Attributes of a node.

    Attributes:
        mode: File-type bits plus permission bits.
        size: Content length in bytes (0 for directories).
    """

    mode: int
    size: int = 0

    @classmethod
    def directory(cls) -> "NodeAttributes":
        return cls(mode=DIR_MODE)

    @classmethod
    def file(cls, size: int) -> "NodeAttributes":
        return cls(mode=FILE_MODE, size=size)

    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)
