"""Ps and kill command implementations.

ps reads the process table through /proc, so it sees exactly what the
process-table mount exposes. kill talks to the process registry.
"""

from typing import Optional

from ...fs import FileSystem, FSError
from ...process import ProcessRegistry
from ...session import Session
from ...streams import CommandIO

PROC_ROOT = "/proc"


def parse_status(text: str) -> dict[str, str]:
    fields = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key] = value.strip()
    return fields


class PsCommand:
    """The ps command.

    Usage: ps
    """

    name = "ps"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        if fs is None:
            io.stderr.write("ps: no filesystem available\n")
            return 1
        try:
            entries = await fs.readdir(PROC_ROOT)
        except FSError as e:
            io.stderr.write(f"ps: {PROC_ROOT}: {e.message}\n")
            return 1

        io.stdout.write(f"{'PID':>5} {'PPID':>5} {'STAT':<4} COMMAND\n")
        for entry in sorted((e for e in entries if e.name.isdigit()), key=lambda e: int(e.name)):
            base = f"{PROC_ROOT}/{entry.name}"
            try:
                status = parse_status(await fs.read_text(f"{base}/status"))
                argv = (await fs.read_text(f"{base}/cmdline")).rstrip("\0").split("\0")
            except FSError:
                # Process vanished between listing and reading.
                continue
            state = status.get("State", "?").split(" ")[0]
            io.stdout.write(f"{entry.name:>5} {status.get('PPid', '0'):>5} {state:<4} {' '.join(argv)}\n")
        return 0


class KillCommand:
    """The kill command.

    Usage: kill PID...
    """

    name = "kill"

    def __init__(self, processes: Optional[ProcessRegistry] = None):
        self.processes = processes

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        pids = [a for a in args if not (a.startswith("-") and len(a) > 1)]
        if not pids:
            io.stderr.write("kill: usage: kill pid...\n")
            return 2
        if self.processes is None:
            io.stderr.write("kill: process control unavailable\n")
            return 1

        exit_code = 0
        for arg in pids:
            if not arg.isdigit():
                io.stderr.write(f"kill: {arg}: arguments must be process ids\n")
                exit_code = 1
            elif not self.processes.kill(int(arg)):
                io.stderr.write(f"kill: ({arg}) - No such process\n")
                exit_code = 1
        return exit_code
