"""Read-only mount exposing the command registry as executables."""

from typing import Iterable, Mapping, Optional

from ..types import FSEntry, FSError, Mount, split_path


class BinMount(Mount):
    """Lists every registered command name as an executable file.

    Reading an entry returns the command's manual text when one is known.
    """

    def __init__(self, names: Iterable[str], manuals: Optional[Mapping[str, str]] = None):
        self._names = sorted(set(names))
        self._manuals = dict(manuals or {})

    def _content(self, name: str) -> bytes:
        manual = self._manuals.get(name)
        if manual:
            text = manual if manual.endswith("\n") else manual + "\n"
        else:
            text = f"{name}: built-in command\n"
        return text.encode("utf-8")

    def _name(self, path: str) -> Optional[str]:
        parts = split_path(path)
        if not parts:
            return None
        if len(parts) > 1 or parts[0] not in self._names:
            raise FSError("ENOENT", path)
        return parts[0]

    async def stat(self, path: str) -> FSEntry:
        name = self._name(path)
        if name is None:
            return FSEntry(name="bin", type="directory", size=0, mode=0o755)
        return FSEntry(name=name, type="file", size=len(self._content(name)), mode=0o755)

    async def readdir(self, path: str) -> list[FSEntry]:
        if self._name(path) is not None:
            raise FSError("ENOTDIR", path)
        return [
            FSEntry(name=name, type="file", size=len(self._content(name)), mode=0o755)
            for name in self._names
        ]

    async def read(self, path: str) -> bytes:
        name = self._name(path)
        if name is None:
            raise FSError("EISDIR", path)
        return self._content(name)
