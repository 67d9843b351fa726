"""Bridge a host directory into the virtual filesystem.

Every virtual path is jailed to the base directory. A path that escapes it,
lexically through ".." or physically through a symlink, fails with EACCES
and never with ENOENT, so callers cannot probe the host layout.
"""

import errno
import logging
import os
import stat as stat_module
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from ..types import FSEntry, FSError, Mount

logger = logging.getLogger(__name__)

_ERRNO_CODES = {
    errno.ENOENT: "ENOENT",
    errno.ENOTDIR: "ENOTDIR",
    errno.EISDIR: "EISDIR",
    errno.EACCES: "EACCES",
    errno.EPERM: "EACCES",
    errno.EROFS: "EROFS",
    errno.EEXIST: "EEXIST",
    errno.ENOTEMPTY: "ENOTEMPTY",
    errno.EINVAL: "EINVAL",
}


@contextmanager
def _translate(path: str) -> Iterator[None]:
    """Re-raise host OSErrors as FSError for the virtual path."""
    try:
        yield
    except FSError:
        raise
    except OSError as e:
        code = _ERRNO_CODES.get(e.errno)
        if code is None:
            raise FSError("EIO", path, e.strerror or str(e)) from e
        raise FSError(code, path) from e


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class LocalMount(Mount):
    """Host directory mount.

    Args:
        base_path: Host directory exposed as the mount root.
        writable: When False every mutator raises EROFS.
        create_if_missing: Create the base directory on construction.
    """

    def __init__(self, base_path: str, *, writable: bool = True, create_if_missing: bool = False):
        if create_if_missing:
            os.makedirs(base_path, exist_ok=True)
        self.base_path = os.path.realpath(base_path)
        self.writable = writable
        self.read_only = not writable

    # Containment

    def contains(self, real_path: str) -> bool:
        return os.path.commonpath([real_path, self.base_path]) == self.base_path

    def _real_path(self, path: str) -> str:
        """Map a virtual path to a host path inside the base directory."""
        candidate = os.path.normpath(os.path.join(self.base_path, path.lstrip("/")))
        if not self.contains(candidate):
            logger.warning("path traversal denied: %s", path)
            raise FSError("EACCES", path, "Path traversal denied")
        if not self.contains(os.path.realpath(candidate)):
            logger.warning("symlink escape denied: %s", path)
            raise FSError("EACCES", path, "Symlink target outside mount")
        return candidate

    def _require_writable(self, path: str) -> None:
        if not self.writable:
            raise FSError("EROFS", path, "Mount is read-only")

    def _entry(self, name: str, real_path: str) -> FSEntry:
        st = os.lstat(real_path)
        target = None
        if stat_module.S_ISLNK(st.st_mode):
            kind = "symlink"
            target = os.readlink(real_path)
        elif stat_module.S_ISDIR(st.st_mode):
            kind = "directory"
        else:
            kind = "file"
        return FSEntry(
            name=name,
            type=kind,
            size=st.st_size,
            mode=st.st_mode & 0o7777,
            mtime=_timestamp(st.st_mtime),
            ctime=_timestamp(st.st_ctime),
            target=target,
        )

    # Reads

    async def stat(self, path: str) -> FSEntry:
        real = self._real_path(path)
        name = os.path.basename(real) if path.strip("/") else os.path.basename(self.base_path)
        with _translate(path):
            return self._entry(name, real)

    async def readdir(self, path: str) -> list[FSEntry]:
        real = self._real_path(path)
        entries = []
        with _translate(path):
            with os.scandir(real) as it:
                children = sorted(it, key=lambda e: e.name)
        for child in children:
            # Entries whose target leaves the jail are hidden rather than reported.
            if child.is_symlink() and not self.contains(os.path.realpath(child.path)):
                continue
            try:
                entries.append(self._entry(child.name, child.path))
            except OSError:
                logger.debug("skipping unreadable entry %s", child.path)
        return entries

    async def read(self, path: str) -> bytes:
        real = self._real_path(path)
        with _translate(path):
            if os.path.isdir(real):
                raise FSError("EISDIR", path)
            with open(real, "rb") as f:
                return f.read()

    async def readlink(self, path: str) -> str:
        real = self._real_path(path)
        with _translate(path):
            if not os.path.islink(real):
                if not os.path.lexists(real):
                    raise FSError("ENOENT", path)
                raise FSError("EINVAL", path, "Not a symbolic link")
            return os.readlink(real)

    # Writes

    async def write(self, path: str, content: bytes) -> None:
        self._require_writable(path)
        real = self._real_path(path)
        with _translate(path):
            if os.path.isdir(real):
                raise FSError("EISDIR", path)
            with open(real, "wb") as f:
                f.write(content)

    async def mkdir(self, path: str) -> None:
        self._require_writable(path)
        real = self._real_path(path)
        with _translate(path):
            os.mkdir(real, 0o755)

    async def unlink(self, path: str) -> None:
        self._require_writable(path)
        real = self._real_path(path)
        with _translate(path):
            if os.path.isdir(real) and not os.path.islink(real):
                raise FSError("EISDIR", path)
            os.unlink(real)

    async def rmdir(self, path: str) -> None:
        self._require_writable(path)
        real = self._real_path(path)
        with _translate(path):
            os.rmdir(real)

    async def rename(self, old_path: str, new_path: str) -> None:
        self._require_writable(old_path)
        real_old = self._real_path(old_path)
        real_new = self._real_path(new_path)
        with _translate(old_path):
            os.rename(real_old, real_new)

    async def symlink(self, target: str, path: str) -> None:
        self._require_writable(path)
        real = self._real_path(path)
        if os.path.isabs(target):
            resolved = os.path.normpath(target)
        else:
            resolved = os.path.normpath(os.path.join(os.path.dirname(real), target))
        if not self.contains(resolved):
            raise FSError("EACCES", path, "Symlink target must be within mount")
        with _translate(path):
            os.symlink(target, real)

    async def chmod(self, path: str, mode: int) -> None:
        self._require_writable(path)
        real = self._real_path(path)
        with _translate(path):
            os.chmod(real, mode & 0o7777)

    # Usage

    async def get_usage(self, path: str) -> int:
        """Bytes used by regular files under a path, symlinks excluded."""
        real = self._real_path(path)
        with _translate(path):
            st = os.lstat(real)
        if not stat_module.S_ISDIR(st.st_mode):
            return 0 if stat_module.S_ISLNK(st.st_mode) else st.st_size
        return self._directory_size(real)

    def _directory_size(self, real_dir: str) -> int:
        total = 0
        try:
            with os.scandir(real_dir) as it:
                children = list(it)
        except OSError:
            logger.debug("cannot scan %s", real_dir)
            return 0
        for child in children:
            if child.is_symlink() or not self.contains(os.path.normpath(child.path)):
                continue
            try:
                if child.is_dir(follow_symlinks=False):
                    total += self._directory_size(child.path)
                elif child.is_file(follow_symlinks=False):
                    total += child.stat(follow_symlinks=False).st_size
            except OSError:
                logger.debug("cannot stat %s", child.path)
        return total
