"""Pwd command implementation.

Usage: pwd

Print the name of the current working directory.
"""

from typing import Optional

from ...fs import FileSystem
from ...session import Session
from ...streams import CommandIO


class PwdCommand:
    """The pwd command."""

    name = "pwd"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        for arg in args:
            if arg in ("-L", "-P"):
                continue
            if arg.startswith("-"):
                io.stderr.write(f"pwd: invalid option -- '{arg[1:2]}'\n")
                return 1
        io.stdout.write(f"{session.cwd}\n")
        return 0
