"""
vfs_storage.py - in-memory VFS for the Polina shell emulator

The tree is read once from a real directory (``--storage``) and is never
written back to disk. Nodes are kept in a flat table; a node is identified
by its index in that table, directories keep the indices of their children.

    vfs = VFS("./storage", user="ilya")
    vfs.change_dir(["docs"])
    [n.name for n in vfs.list_dir([])]
"""
from __future__ import annotations

import logging
import os
from collections import deque
from typing import Deque, List, Optional, Union

logger = logging.getLogger(__name__)

ROOT_ID = 0
HISTORY_LIMIT = 30


# ---------- Errors ----------
class VFSError(Exception):
    """Base class for everything the VFS reports back to the shell."""


class VFSNotFound(VFSError):
    pass


class VFSNotADirectory(VFSError):
    pass


class VFSInvalidArgument(VFSError):
    pass


class VFSIOError(VFSError):
    """The storage directory could not be read while building the tree."""


# ---------- Nodes ----------
class FileNode:
    is_dir = False

    def __init__(self, name: str, owner: str):
        self.name = name
        self.owner = owner

    def __repr__(self):
        return f"FileNode({self.name!r}, owner={self.owner!r})"


class DirNode:
    is_dir = True

    def __init__(self, name: str, owner: str):
        self.name = name
        self.owner = owner
        # indices into the owning VFS node table, in disk order
        self.children: List[int] = []

    def __repr__(self):
        return f"DirNode({self.name!r}, owner={self.owner!r}, children={self.children})"


Node = Union[FileNode, DirNode]


# ---------- Build VFS ----------
def build_tree(sys_path: str, owner: str, nodes: List[Node]) -> int:
    """
    Mirror ``sys_path`` into ``nodes`` and return the index of the new root.

    Entries are taken in ``os.listdir`` order. Directories are appended to the
    table before their own children (pre-order). Any OSError, including one
    raised for a nested directory, propagates and leaves no usable tree.
    Symbolic links are recorded as files.
    """
    root_id = len(nodes)
    nodes.append(DirNode("/", owner))

    def _walk(disk_path: str, dir_id: int):
        for entry in os.listdir(disk_path):
            full = os.path.join(disk_path, entry)
            child_id = len(nodes)
            # symlinks are not followed; a link to an ancestor would recurse forever
            if os.path.isdir(full) and not os.path.islink(full):
                nodes.append(DirNode(entry, owner))
                nodes[dir_id].children.append(child_id)
                _walk(full, child_id)
            else:
                nodes.append(FileNode(entry, owner))
                nodes[dir_id].children.append(child_id)

    _walk(sys_path, root_id)
    return root_id


# ---------- VFS session ----------
class VFS:
    def __init__(self, sys_path: str, user: str = "root"):
        self.sys_path = sys_path
        self.user = user
        self.current_path = "/"
        self.history: Deque[str] = deque(maxlen=HISTORY_LIMIT)
        self._nodes: List[Node] = []
        try:
            build_tree(sys_path, user, self._nodes)
        except OSError as e:
            raise VFSIOError(f"cannot read storage {sys_path}: {e}") from e
        logger.debug("VFS built from %s: %d nodes", sys_path, len(self._nodes))

    @property
    def root(self) -> DirNode:
        return self._nodes[ROOT_ID]

    def node(self, node_id: int) -> Node:
        return self._nodes[node_id]

    def record(self, line: str):
        """Append a submitted line to history, dropping the oldest past the limit."""
        self.history.append(line)

    # ---------- Path helpers ----------
    def _absolute(self, path: str) -> str:
        if path.startswith("/"):
            return path
        if self.current_path == "/":
            return "/" + path
        return f"{self.current_path}/{path}"

    def resolve(self, path: str) -> int:
        """Return the id of the node named by ``path`` (absolute or relative to cwd)."""
        parts = [p for p in self._absolute(path).split("/") if p]
        if not parts:
            return ROOT_ID

        node_id = ROOT_ID
        for part in parts:
            node = self._nodes[node_id]
            if not node.is_dir:
                raise VFSNotADirectory(f"{node.name} is a file, not a directory")
            child_id = self.find_child(node_id, part)
            if child_id is None:
                raise VFSNotFound(f"dir not found: {part}")
            node_id = child_id
        return node_id

    def path_of(self, node_id: int) -> str:
        """Canonical path of a node, found by searching down from the root."""
        if node_id == ROOT_ID:
            return "/"

        trail: List[str] = []

        def dfs(current: int) -> bool:
            node = self._nodes[current]
            if not node.is_dir:
                return False
            for child_id in node.children:
                trail.append(self._nodes[child_id].name)
                if child_id == node_id or dfs(child_id):
                    return True
                trail.pop()
            return False

        if dfs(ROOT_ID):
            return "/" + "/".join(trail)
        raise VFSNotFound("node not found")

    @staticmethod
    def _single_arg(args: List[str], default: str) -> str:
        if len(args) > 1:
            raise VFSInvalidArgument("too many args")
        return args[0] if args else default

    # ---------- Operations ----------
    def change_dir(self, args: List[str]) -> int:
        path = self._single_arg(args, "/")
        node_id = self.resolve(path)
        node = self._nodes[node_id]
        if not node.is_dir:
            raise VFSNotADirectory(f"{node.name} is a file, not a directory")
        self.current_path = self.path_of(node_id)
        logger.debug("cwd -> %s", self.current_path)
        return node_id

    def list_dir(self, args: List[str]) -> List[Node]:
        path = self._single_arg(args, self.current_path)
        node = self._nodes[self.resolve(path)]
        if not node.is_dir:
            raise VFSInvalidArgument(f"{node.name}: not a dir")
        return [self._nodes[i] for i in node.children]

    def set_owner(self, path: str, new_owner: str) -> int:
        node_id = self.resolve(path)
        self._nodes[node_id].owner = new_owner
        logger.debug("owner of %s -> %s", path, new_owner)
        return node_id

    def find_child(self, dir_id: int, name: str) -> Optional[int]:
        node = self._nodes[dir_id]
        if not node.is_dir:
            return None
        for child_id in node.children:
            if self._nodes[child_id].name == name:
                return child_id
        return None
