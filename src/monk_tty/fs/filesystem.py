"""Mount table routing filesystem operations to backends.

Mounts are matched by longest prefix, so the most specific mount wins and a
mount at "/" only catches what nothing else claims.
"""

from dataclasses import dataclass
from typing import Optional

from .types import FSEntry, FSError, Mount


@dataclass
class ResolvedPath:
    mount: Mount
    relative_path: str
    mount_path: str


def normalize(path: str) -> str:
    """Normalize a path: collapse slashes, drop ".", resolve ".." lexically."""
    result: list[str] = []
    for part in path.split("/"):
        if not part or part == ".":
            continue
        if part == "..":
            if result:
                result.pop()
        else:
            result.append(part)
    return "/" + "/".join(result)


def resolve_path(base: str, *paths: str) -> str:
    """Resolve path segments against a base directory."""
    result = base or "/"
    for p in paths:
        if p.startswith("/"):
            result = p
        else:
            result = result + "/" + p
    return normalize(result)


def dirname(path: str) -> str:
    parts = [p for p in normalize(path).split("/") if p]
    return "/" + "/".join(parts[:-1])


def basename(path: str) -> str:
    parts = [p for p in normalize(path).split("/") if p]
    return parts[-1] if parts else ""


class FileSystem:
    """Unified view over a set of mounts."""

    def __init__(self, mounts: Optional[dict[str, Mount]] = None):
        self._mounts: dict[str, Mount] = {}
        self._sorted: list[tuple[str, Mount]] = []
        self._fallback: Optional[Mount] = None
        for path, mount in (mounts or {}).items():
            self.mount(path, mount)

    # Mount table

    def mount(self, path: str, handler: Mount) -> None:
        self._mounts[normalize(path)] = handler
        self._sort()

    def unmount(self, path: str) -> None:
        self._mounts.pop(normalize(path), None)
        self._sort()

    def set_fallback(self, handler: Optional[Mount]) -> None:
        self._fallback = handler

    @property
    def mounts(self) -> dict[str, Mount]:
        return dict(self._mounts)

    def _sort(self) -> None:
        self._sorted = sorted(self._mounts.items(), key=lambda item: len(item[0]), reverse=True)

    def _resolve(self, path: str) -> ResolvedPath:
        normalized = normalize(path)
        for mount_path, handler in self._sorted:
            if mount_path == "/":
                return ResolvedPath(handler, normalized, "/")
            if normalized == mount_path or normalized.startswith(mount_path + "/"):
                return ResolvedPath(handler, normalized[len(mount_path):] or "/", mount_path)
        if self._fallback is not None:
            return ResolvedPath(self._fallback, normalized, "/")
        raise FSError("ENOENT", path)

    def mount_for(self, path: str) -> Mount:
        """Return the mount that serves ``path``."""
        return self._resolve(path).mount

    # Path helpers

    normalize = staticmethod(normalize)
    resolve_path = staticmethod(resolve_path)
    dirname = staticmethod(dirname)
    basename = staticmethod(basename)

    # Operations

    async def stat(self, path: str) -> FSEntry:
        resolved = self._resolve(path)
        return await resolved.mount.stat(resolved.relative_path)

    async def readdir(self, path: str) -> list[FSEntry]:
        """List a directory, including mount points that live directly under it."""
        normalized = normalize(path)
        resolved = self._resolve(path)
        entries = await resolved.mount.readdir(resolved.relative_path)
        names = {entry.name for entry in entries}
        for mount_path, _ in self._sorted:
            if mount_path == "/":
                continue
            if dirname(mount_path) == normalized:
                name = basename(mount_path)
                if name not in names:
                    entries.append(FSEntry(name=name, type="directory", size=0, mode=0o755))
                    names.add(name)
        return entries

    async def read(self, path: str) -> bytes:
        resolved = self._resolve(path)
        return await resolved.mount.read(resolved.relative_path)

    async def read_text(self, path: str) -> str:
        return (await self.read(path)).decode("utf-8", errors="replace")

    async def write(self, path: str, content: str | bytes) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        resolved = self._resolve(path)
        await resolved.mount.write(resolved.relative_path, content)

    async def append(self, path: str, content: str | bytes) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        try:
            existing = await self.read(path)
        except FSError as e:
            if e.code != "ENOENT":
                raise
            existing = b""
        await self.write(path, existing + content)

    async def mkdir(self, path: str) -> None:
        resolved = self._resolve(path)
        await resolved.mount.mkdir(resolved.relative_path)

    async def unlink(self, path: str) -> None:
        resolved = self._resolve(path)
        await resolved.mount.unlink(resolved.relative_path)

    async def rmdir(self, path: str) -> None:
        resolved = self._resolve(path)
        await resolved.mount.rmdir(resolved.relative_path)

    async def rename(self, old_path: str, new_path: str) -> None:
        old = self._resolve(old_path)
        new = self._resolve(new_path)
        if old.mount_path != new.mount_path:
            raise FSError("EINVAL", old_path, "Cannot rename across mount points")
        await old.mount.rename(old.relative_path, new.relative_path)

    async def symlink(self, target: str, path: str) -> None:
        resolved = self._resolve(path)
        await resolved.mount.symlink(target, resolved.relative_path)

    async def readlink(self, path: str) -> str:
        resolved = self._resolve(path)
        return await resolved.mount.readlink(resolved.relative_path)

    async def chmod(self, path: str, mode: int) -> None:
        resolved = self._resolve(path)
        await resolved.mount.chmod(resolved.relative_path, mode)

    async def exists(self, path: str) -> bool:
        try:
            await self.stat(path)
            return True
        except FSError as e:
            if e.code == "ENOENT":
                return False
            raise

    async def is_directory(self, path: str) -> bool:
        try:
            return (await self.stat(path)).is_directory
        except FSError as e:
            if e.code == "ENOENT":
                return False
            raise

    async def usage(self, path: str) -> int:
        """Total size in bytes of the regular files under a path.

        Mounts that know how to compute this cheaply expose ``get_usage``;
        everything else is walked through readdir.
        """
        resolved = self._resolve(path)
        get_usage = getattr(resolved.mount, "get_usage", None)
        if get_usage is not None:
            return await get_usage(resolved.relative_path)
        return await self._walk_usage(normalize(path))

    async def _walk_usage(self, path: str) -> int:
        entry = await self.stat(path)
        if entry.is_file:
            return entry.size
        if not entry.is_directory:
            return 0
        total = 0
        for child in await self.readdir(path):
            if child.is_symlink:
                continue
            child_path = resolve_path(path, child.name)
            if child.is_directory:
                total += await self._walk_usage(child_path)
            elif child.is_file:
                total += child.size
        return total
