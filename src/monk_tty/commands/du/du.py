"""Du command implementation.

Usage: du [-sahcbkm] [-d DEPTH] [PATH]...

Estimate space used by files. Symlinks are never counted.

Options:
  -s        Display only a total for each argument
  -a        Show files as well as directories
  -h        Human-readable sizes (1K, 2M, 3G)
  -c        Produce a grand total
  -d DEPTH  Show directories at most DEPTH levels below the argument
  -b        Sizes in bytes
  -k        Sizes in kilobytes (default)
  -m        Sizes in megabytes
"""

import math
from dataclasses import dataclass
from typing import Optional

from ...fs import FileSystem, FSError
from ...session import Session
from ...streams import CommandIO
from ..ls.ls import human_size


@dataclass
class DuOptions:
    summary: bool = False
    all: bool = False
    human: bool = False
    total: bool = False
    max_depth: float = math.inf
    unit: str = "k"

    def format(self, size: int) -> str:
        if self.human:
            return human_size(size)
        if self.unit == "b":
            return str(size)
        if self.unit == "m":
            return str(math.ceil(size / (1024 * 1024)))
        return str(math.ceil(size / 1024))


class DuCommand:
    """The du command."""

    name = "du"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        options = DuOptions()
        targets: list[str] = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg.startswith("--max-depth="):
                value = arg.split("=", 1)[1]
                if not value.isdigit():
                    io.stderr.write(f"du: invalid maximum depth '{value}'\n")
                    return 1
                options.max_depth = int(value)
            elif arg.startswith("-") and len(arg) > 1:
                for j, c in enumerate(arg[1:], start=1):
                    if c == "s":
                        options.summary = True
                    elif c == "a":
                        options.all = True
                    elif c == "h":
                        options.human = True
                    elif c == "c":
                        options.total = True
                    elif c in "bkm":
                        options.unit = c
                    elif c == "d":
                        value = arg[j + 1:]
                        if not value:
                            i += 1
                            value = args[i] if i < len(args) else ""
                        if not value.isdigit():
                            io.stderr.write(f"du: invalid maximum depth '{value}'\n")
                            return 1
                        options.max_depth = int(value)
                        break
                    else:
                        io.stderr.write(f"du: invalid option -- '{c}'\n")
                        return 1
            else:
                targets.append(arg)
            i += 1

        if fs is None:
            io.stderr.write("du: no filesystem available\n")
            return 1

        exit_code = 0
        grand_total = 0
        for target in targets or ["."]:
            io.check_cancelled()
            path = fs.resolve_path(session.cwd, target)
            try:
                if options.summary:
                    size = await fs.usage(path)
                    io.stdout.write(f"{options.format(size)}\t{target}\n")
                else:
                    rows: list[tuple[str, int]] = []
                    size = await self._walk(fs, path, target, 0, options, io, rows)
                    for row_path, row_size in rows:
                        io.stdout.write(f"{options.format(row_size)}\t{row_path}\n")
            except FSError as e:
                io.stderr.write(f"du: {target}: {e.message}\n")
                exit_code = 1
                continue
            grand_total += size

        if options.total:
            io.stdout.write(f"{options.format(grand_total)}\ttotal\n")
        return exit_code

    async def _walk(
        self,
        fs: FileSystem,
        path: str,
        shown: str,
        depth: int,
        options: DuOptions,
        io: CommandIO,
        rows: list[tuple[str, int]],
    ) -> int:
        io.check_cancelled()
        entry = await fs.stat(path)
        if entry.is_symlink:
            return 0
        if not entry.is_directory:
            if depth == 0 or (options.all and depth <= options.max_depth):
                rows.append((shown, entry.size))
            return entry.size

        total = 0
        for child in await fs.readdir(path):
            if child.is_symlink:
                continue
            child_path = fs.resolve_path(path, child.name)
            child_shown = shown.rstrip("/") + "/" + child.name
            try:
                total += await self._walk(fs, child_path, child_shown, depth + 1, options, io, rows)
            except FSError:
                continue
        if depth <= options.max_depth:
            rows.append((shown, total))
        return total
