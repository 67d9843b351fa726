"""Read-only view of the process table, modelled on Linux /proc.

Layout::

    /proc/self          -> symlink to the session's pid
    /proc/<pid>/        one directory per process
        cmdline         NUL-separated argv, comm first
        comm            command name
        cwd             working directory
        environ         NUL-separated KEY=VALUE pairs
        status          human-readable summary
        stdout, stderr  captured output
"""

from typing import Optional

from ...process import STATE_NAMES, ProcessRecord, ProcessRegistry
from ..types import FSEntry, FSError, Mount, split_path

PROC_FILES = ("cmdline", "comm", "cwd", "environ", "status", "stdout", "stderr")


def format_status(record: ProcessRecord) -> str:
    lines = [
        f"Name:\t{record.comm}",
        f"State:\t{record.state} ({STATE_NAMES.get(record.state, record.state)})",
        f"Pid:\t{record.pid}",
        f"PPid:\t{record.ppid or 0}",
        f"Uid:\t{record.uid}",
        f"Type:\t{record.type}",
    ]
    if record.exit_code is not None:
        lines.append(f"ExitCode:\t{record.exit_code}")
    if record.error:
        lines.append(f"Error:\t{record.error}")
    if record.started_at:
        lines.append(f"StartedAt:\t{record.started_at.isoformat()}")
    if record.ended_at:
        lines.append(f"EndedAt:\t{record.ended_at.isoformat()}")
    return "\n".join(lines) + "\n"


def file_content(record: ProcessRecord, name: str) -> str:
    if name == "cmdline":
        return "\0".join([record.comm, *record.cmdline]) + "\0"
    if name == "comm":
        return record.comm + "\n"
    if name == "cwd":
        return record.cwd + "\n"
    if name == "environ":
        if not record.environ:
            return ""
        return "\0".join(f"{k}={v}" for k, v in record.environ.items()) + "\0"
    if name == "status":
        return format_status(record)
    if name == "stdout":
        return record.stdout
    if name == "stderr":
        return record.stderr
    return ""


class ProcMount(Mount):
    """Computes every entry on demand from a ProcessRegistry."""

    def __init__(self, registry: ProcessRegistry, session_pid: Optional[int] = None):
        self._registry = registry
        self.session_pid = session_pid

    def _parse(self, path: str) -> tuple[str, Optional[ProcessRecord], Optional[str]]:
        parts = split_path(path)
        if not parts:
            return "root", None, None
        if parts[0] == "self" and len(parts) == 1:
            if self.session_pid is None:
                raise FSError("ENOENT", path)
            return "self", None, None
        if parts[0] == "self":
            if self.session_pid is None:
                raise FSError("ENOENT", path)
            pid = self.session_pid
        elif parts[0].isdigit():
            pid = int(parts[0])
        else:
            raise FSError("ENOENT", path)
        record = self._registry.get(pid)
        if record is None:
            raise FSError("ENOENT", path)
        if len(parts) == 1:
            return "pid", record, None
        if len(parts) > 2 or parts[1] not in PROC_FILES:
            raise FSError("ENOENT", path)
        return "file", record, parts[1]

    def _self_entry(self) -> FSEntry:
        return FSEntry(name="self", type="symlink", size=0, mode=0o777, target=str(self.session_pid))

    @staticmethod
    def _pid_entry(record: ProcessRecord) -> FSEntry:
        return FSEntry(
            name=str(record.pid),
            type="directory",
            size=0,
            mode=0o555,
            mtime=record.started_at or record.created_at,
        )

    async def stat(self, path: str) -> FSEntry:
        kind, record, name = self._parse(path)
        if kind == "root":
            return FSEntry(name="proc", type="directory", size=0, mode=0o555)
        if kind == "self":
            return self._self_entry()
        if kind == "pid":
            return self._pid_entry(record)
        return FSEntry(
            name=name,
            type="file",
            size=len(file_content(record, name).encode("utf-8")),
            mode=0o444,
            mtime=record.started_at or record.created_at,
        )

    async def readdir(self, path: str) -> list[FSEntry]:
        kind, record, _ = self._parse(path)
        if kind == "root":
            entries = [self._pid_entry(r) for r in self._registry.list()]
            if self.session_pid is not None:
                entries.insert(0, self._self_entry())
            return entries
        if kind == "pid":
            return [FSEntry(name=n, type="file", size=0, mode=0o444) for n in PROC_FILES]
        raise FSError("ENOTDIR", path)

    async def read(self, path: str) -> bytes:
        kind, record, name = self._parse(path)
        if kind in ("root", "pid"):
            raise FSError("EISDIR", path)
        if kind == "self":
            raise FSError("EINVAL", path)
        return file_content(record, name).encode("utf-8")

    async def readlink(self, path: str) -> str:
        kind, _, _ = self._parse(path)
        if kind != "self":
            raise FSError("EINVAL", path)
        return str(self.session_pid)
