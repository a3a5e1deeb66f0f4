"""
InodeTable - Maps kernel inode numbers to directory and file nodes.
"""

import logging

from kvmount.fs.directory import Directory
from kvmount.fs.file import File

logger = logging.getLogger(__name__)

# Same value as pyfuse3.ROOT_INODE
ROOT_INODE = 1

Node = Directory | File


def node_key(node: Node) -> tuple:
    """Identity of the bucket or value a node stands for."""
    if isinstance(node, Directory):
        return ("dir", node.path)
    return ("file", node.parent.path, node.name)


class InodeTable:
    """
    Inode bookkeeping for the kernel's lookup/forget protocol.

    One node object is kept per live inode, so every handle on the same
    value shares one File node and therefore one write buffer. Entries
    are dropped once the kernel forgets all its references.
    """

    def __init__(self, root: Directory) -> None:
        self._nodes: dict[int, Node] = {ROOT_INODE: root}
        self._inodes: dict[tuple, int] = {node_key(root): ROOT_INODE}
        self._lookups: dict[int, int] = {}
        self._next_inode = ROOT_INODE + 1

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, inode: int) -> bool:
        return inode in self._nodes

    def get(self, inode: int) -> Node | None:
        return self._nodes.get(inode)

    def inode_of(self, node: Node) -> int | None:
        return self._inodes.get(node_key(node))

    def register(self, node: Node, replace: bool = False) -> tuple[int, Node]:
        """
        Record a kernel reference to a node.

        Args:
            node: Freshly resolved or created node.
            replace: Install `node` even if another node already stands
                for the same key (used for newly created files).

        Returns:
            (inode, node) where node is the instance the table keeps;
            an existing one is preferred so buffers stay shared.
        """
        key = node_key(node)
        inode = self._inodes.get(key)
        if inode is None:
            inode = self._next_inode
            self._next_inode += 1
            self._inodes[key] = inode
            self._nodes[inode] = node
        elif replace:
            self._nodes[inode] = node

        if inode != ROOT_INODE:
            self._lookups[inode] = self._lookups.get(inode, 0) + 1
        return inode, self._nodes[inode]

    def forget(self, inode: int, nlookup: int) -> None:
        """Drop `nlookup` kernel references; remove the inode at zero."""
        if inode == ROOT_INODE or inode not in self._nodes:
            return

        remaining = self._lookups.get(inode, 0) - nlookup
        if remaining > 0:
            self._lookups[inode] = remaining
            return

        node = self._nodes.pop(inode)
        self._lookups.pop(inode, None)
        if self._inodes.get(node_key(node)) == inode:
            del self._inodes[node_key(node)]
        logger.debug(f"forgot inode {inode}: {node!r}")
