"""Ephemeral read-write mount kept entirely in memory."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from ..types import FSEntry, FSError, Mount, split_path

DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _File:
    content: bytes = b""
    mode: int = 0o644
    mtime: datetime = field(default_factory=_now)
    ctime: datetime = field(default_factory=_now)


@dataclass
class _Dir:
    children: dict[str, "_Node"] = field(default_factory=dict)
    mode: int = 0o755
    mtime: datetime = field(default_factory=_now)
    ctime: datetime = field(default_factory=_now)


@dataclass
class _Link:
    target: str
    mode: int = 0o777
    mtime: datetime = field(default_factory=_now)
    ctime: datetime = field(default_factory=_now)


_Node = Union[_File, _Dir, _Link]


class MemoryMount(Mount):
    """A small in-memory tree of files, directories and symlinks.

    Symlinks are stored and reported but never followed; following them would
    need the whole mount table, which the mount does not see.
    """

    read_only = False

    def __init__(
        self,
        files: Optional[dict[str, str | bytes]] = None,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        self._root = _Dir()
        self._max_file_size = max_file_size
        for path, content in (files or {}).items():
            self.add_file(path, content)

    def add_directory(self, path: str) -> None:
        """Create a directory and any missing parents."""
        self._make_dirs(path, split_path(path))

    def _make_dirs(self, path: str, parts: list[str]) -> _Dir:
        node = self._root
        for part in parts:
            child = node.children.get(part)
            if child is None:
                child = _Dir()
                node.children[part] = child
            if not isinstance(child, _Dir):
                raise FSError("ENOTDIR", path)
            node = child
        return node

    def add_file(self, path: str, content: str | bytes) -> None:
        """Seed a file, creating parent directories as needed."""
        parts = split_path(path)
        if not parts:
            raise FSError("EISDIR", path)
        node = self._make_dirs(path, parts[:-1])
        if isinstance(content, str):
            content = content.encode("utf-8")
        node.children[parts[-1]] = _File(content=content)

    def _lookup(self, path: str) -> _Node:
        node: _Node = self._root
        for part in split_path(path):
            if not isinstance(node, _Dir):
                raise FSError("ENOTDIR", path)
            child = node.children.get(part)
            if child is None:
                raise FSError("ENOENT", path)
            node = child
        return node

    def _parent(self, path: str) -> tuple[_Dir, str]:
        parts = split_path(path)
        if not parts:
            raise FSError("EINVAL", path, "Cannot modify the mount root")
        parent = self._lookup("/" + "/".join(parts[:-1]))
        if not isinstance(parent, _Dir):
            raise FSError("ENOTDIR", path)
        return parent, parts[-1]

    @staticmethod
    def _entry(name: str, node: _Node) -> FSEntry:
        if isinstance(node, _File):
            return FSEntry(name, "file", len(node.content), node.mode, node.mtime, node.ctime)
        if isinstance(node, _Dir):
            return FSEntry(name, "directory", 0, node.mode, node.mtime, node.ctime)
        return FSEntry(name, "symlink", len(node.target), node.mode, node.mtime, node.ctime, node.target)

    async def stat(self, path: str) -> FSEntry:
        parts = split_path(path)
        return self._entry(parts[-1] if parts else "", self._lookup(path))

    async def readdir(self, path: str) -> list[FSEntry]:
        node = self._lookup(path)
        if not isinstance(node, _Dir):
            raise FSError("ENOTDIR", path)
        return [self._entry(name, child) for name, child in sorted(node.children.items())]

    async def read(self, path: str) -> bytes:
        node = self._lookup(path)
        if isinstance(node, _Dir):
            raise FSError("EISDIR", path)
        if isinstance(node, _Link):
            raise FSError("EINVAL", path, "Cannot read a symbolic link")
        return node.content

    async def write(self, path: str, content: bytes) -> None:
        if len(content) > self._max_file_size:
            raise FSError("EINVAL", path, f"File exceeds maximum size of {self._max_file_size} bytes")
        parent, name = self._parent(path)
        existing = parent.children.get(name)
        if isinstance(existing, _Dir):
            raise FSError("EISDIR", path)
        if isinstance(existing, _File):
            existing.content = content
            existing.mtime = _now()
        else:
            parent.children[name] = _File(content=content)
        parent.mtime = _now()

    async def mkdir(self, path: str) -> None:
        parent, name = self._parent(path)
        if name in parent.children:
            raise FSError("EEXIST", path)
        parent.children[name] = _Dir()
        parent.mtime = _now()

    async def unlink(self, path: str) -> None:
        parent, name = self._parent(path)
        node = parent.children.get(name)
        if node is None:
            raise FSError("ENOENT", path)
        if isinstance(node, _Dir):
            raise FSError("EISDIR", path)
        del parent.children[name]
        parent.mtime = _now()

    async def rmdir(self, path: str) -> None:
        parent, name = self._parent(path)
        node = parent.children.get(name)
        if node is None:
            raise FSError("ENOENT", path)
        if not isinstance(node, _Dir):
            raise FSError("ENOTDIR", path)
        if node.children:
            raise FSError("ENOTEMPTY", path)
        del parent.children[name]
        parent.mtime = _now()

    async def rename(self, old_path: str, new_path: str) -> None:
        old_parent, old_name = self._parent(old_path)
        node = old_parent.children.get(old_name)
        if node is None:
            raise FSError("ENOENT", old_path)
        new_parent, new_name = self._parent(new_path)
        target = new_parent.children.get(new_name)
        if isinstance(target, _Dir) and not isinstance(node, _Dir):
            raise FSError("EISDIR", new_path)
        if isinstance(target, _Dir) and target.children:
            raise FSError("ENOTEMPTY", new_path)
        del old_parent.children[old_name]
        new_parent.children[new_name] = node

    async def symlink(self, target: str, path: str) -> None:
        parent, name = self._parent(path)
        if name in parent.children:
            raise FSError("EEXIST", path)
        parent.children[name] = _Link(target=target)

    async def readlink(self, path: str) -> str:
        node = self._lookup(path)
        if not isinstance(node, _Link):
            raise FSError("EINVAL", path, "Not a symbolic link")
        return node.target

    async def chmod(self, path: str, mode: int) -> None:
        self._lookup(path).mode = mode & 0o7777
