"""Filesystem types shared by every mount.

A mount is an independent backend bound to a path prefix. The base class
implements the read-only defaults so that a backend only overrides what it
actually supports.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional


FileType = Literal["file", "directory", "symlink"]

ERROR_MESSAGES = {
    "ENOENT": "No such file or directory",
    "ENOTDIR": "Not a directory",
    "EISDIR": "Is a directory",
    "EACCES": "Permission denied",
    "EROFS": "Read-only file system",
    "EEXIST": "File exists",
    "ENOTEMPTY": "Directory not empty",
    "EINVAL": "Invalid argument",
    "EIO": "Input/output error",
}


class FSError(Exception):
    """Filesystem error carrying one of the closed set of error codes."""

    def __init__(self, code: str, path: str, detail: Optional[str] = None):
        if code not in ERROR_MESSAGES:
            raise ValueError(f"unknown filesystem error code: {code}")
        self.code = code
        self.path = path
        self.detail = detail
        super().__init__(detail or ERROR_MESSAGES[code])

    @property
    def message(self) -> str:
        return self.detail or ERROR_MESSAGES[self.code]

    def __repr__(self) -> str:
        return f"FSError({self.code!r}, {self.path!r})"


@dataclass
class FSEntry:
    """Metadata for a single filesystem node."""

    name: str
    type: FileType
    size: int = 0
    mode: int = 0o644
    mtime: Optional[datetime] = None
    ctime: Optional[datetime] = None
    target: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.type == "file"

    @property
    def is_directory(self) -> bool:
        return self.type == "directory"

    @property
    def is_symlink(self) -> bool:
        return self.type == "symlink"


class Mount(ABC):
    """Base class for mount backends.

    Paths handed to a mount are relative to its mount point and always start
    with "/" ("/" is the mount root).
    """

    read_only = True

    @abstractmethod
    async def stat(self, path: str) -> FSEntry:
        ...

    @abstractmethod
    async def readdir(self, path: str) -> list[FSEntry]:
        ...

    @abstractmethod
    async def read(self, path: str) -> bytes:
        ...

    async def write(self, path: str, content: bytes) -> None:
        raise FSError("EROFS", path)

    async def mkdir(self, path: str) -> None:
        raise FSError("EROFS", path)

    async def unlink(self, path: str) -> None:
        raise FSError("EROFS", path)

    async def rmdir(self, path: str) -> None:
        raise FSError("EROFS", path)

    async def rename(self, old_path: str, new_path: str) -> None:
        raise FSError("EROFS", old_path)

    async def symlink(self, target: str, path: str) -> None:
        raise FSError("EROFS", path)

    async def chmod(self, path: str, mode: int) -> None:
        raise FSError("EROFS", path)

    async def readlink(self, path: str) -> str:
        raise FSError("EINVAL", path)


def split_path(path: str) -> list[str]:
    """Split a mount-relative path into its non-empty segments."""
    return [part for part in path.split("/") if part]
