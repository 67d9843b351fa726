"""Cat command implementation.

Usage: cat [-n] [FILE]...

Concatenate files to standard output. With no FILE, or when FILE is -,
read standard input.

Options:
  -n    Number all output lines
"""

from typing import Optional

from ...fs import FileSystem, FSError
from ...session import Session
from ...streams import CommandIO


class CatCommand:
    """The cat command."""

    name = "cat"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        number = False
        files: list[str] = []

        for arg in args:
            if arg == "-n":
                number = True
            elif arg.startswith("-") and arg != "-":
                io.stderr.write(f"cat: invalid option -- '{arg[1:2]}'\n")
                return 1
            else:
                files.append(arg)

        if not files:
            files = ["-"]

        exit_code = 0
        line_no = 0
        for f in files:
            io.check_cancelled()
            if f == "-":
                content = await io.stdin.read_all(io.token)
            elif fs is None:
                io.stderr.write(f"cat: {f}: No such file or directory\n")
                exit_code = 1
                continue
            else:
                try:
                    content = await fs.read(fs.resolve_path(session.cwd, f))
                except FSError as e:
                    io.stderr.write(f"cat: {f}: {e.message}\n")
                    exit_code = 1
                    continue

            if number:
                text = content.decode("utf-8", errors="replace")
                lines = text.splitlines(keepends=True)
                out = []
                for line in lines:
                    line_no += 1
                    out.append(f"{line_no:>6}\t{line}")
                io.stdout.write("".join(out))
            else:
                io.stdout.write(content)
        return exit_code
