"""Ls command implementation.

Usage: ls [-la1dh] [PATH]...

List directory contents. Directories are listed first, then files, each
group sorted by name; directory names carry a trailing "/".

Options:
  -l    Long format (mode, size, date)
  -a    Include entries starting with .
  -1    One entry per line
  -d    List directories themselves, not their contents
  -h    Human-readable sizes with -l
"""

from typing import Optional

from ...fs import FileSystem, FSEntry, FSError
from ...session import Session
from ...streams import CommandIO


def format_mode(entry: FSEntry) -> str:
    kind = {"directory": "d", "symlink": "l"}.get(entry.type, "-")
    bits = ""
    for shift in (6, 3, 0):
        triple = (entry.mode >> shift) & 0o7
        bits += ("r" if triple & 4 else "-") + ("w" if triple & 2 else "-") + ("x" if triple & 1 else "-")
    return kind + bits


def human_size(size: int) -> str:
    units = ["", "K", "M", "G", "T"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    if index == 0:
        return str(size)
    return (f"{value:.1f}" if value < 10 else f"{value:.0f}") + units[index]


class LsCommand:
    """The ls command."""

    name = "ls"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        long_format = show_all = one_per_line = directory = human = False
        paths: list[str] = []

        for arg in args:
            if arg.startswith("-") and len(arg) > 1:
                for c in arg[1:]:
                    if c == "l":
                        long_format = True
                    elif c == "a":
                        show_all = True
                    elif c == "1":
                        one_per_line = True
                    elif c == "d":
                        directory = True
                    elif c == "h":
                        human = True
                    else:
                        io.stderr.write(f"ls: invalid option -- '{c}'\n")
                        return 1
            else:
                paths.append(arg)

        if fs is None:
            io.stderr.write("ls: no filesystem available\n")
            return 1

        def render(entry: FSEntry) -> str:
            suffix = "/" if entry.is_directory else ""
            if not long_format:
                return entry.name + suffix
            size = human_size(entry.size) if human else str(entry.size)
            date = entry.mtime.strftime("%Y-%m-%d") if entry.mtime else " " * 10
            target = f" -> {entry.target}" if entry.is_symlink and entry.target else ""
            return f"{format_mode(entry)}  {size:>8}  {date}  {entry.name}{suffix}{target}"

        targets = paths or ["."]
        exit_code = 0
        for index, target in enumerate(targets):
            io.check_cancelled()
            path = fs.resolve_path(session.cwd, target)
            try:
                entry = await fs.stat(path)
                if directory or not entry.is_directory:
                    entry.name = target
                    io.stdout.write(render(entry) + "\n")
                    continue
                entries = await fs.readdir(path)
            except FSError as e:
                io.stderr.write(f"ls: {target}: {e.message}\n")
                exit_code = 1
                continue

            if not show_all:
                entries = [e for e in entries if not e.name.startswith(".")]
            entries.sort(key=lambda e: (not e.is_directory, e.name))

            if len(targets) > 1:
                if index:
                    io.stdout.write("\n")
                io.stdout.write(f"{target}:\n")
            if long_format:
                io.stdout.write(f"total {len(entries)}\n")
            if long_format or one_per_line:
                for e in entries:
                    io.stdout.write(render(e) + "\n")
            elif entries:
                io.stdout.write("  ".join(render(e) for e in entries) + "\n")
        return exit_code
