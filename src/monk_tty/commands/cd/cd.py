"""Cd command implementation.

Usage: cd [DIR]

Change the session's working directory. Without DIR, changes to $HOME.
"""

from typing import Optional

from ...fs import FileSystem, FSError
from ...session import Session
from ...streams import CommandIO


class CdCommand:
    """The cd command."""

    name = "cd"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        if len(args) > 1:
            io.stderr.write("cd: too many arguments\n")
            return 1

        target = args[0] if args else session.env.get("HOME", "/")
        if target == "-":
            target = session.env.get("OLDPWD", session.cwd)

        path = FileSystem.resolve_path(session.cwd, target)
        if fs is not None:
            try:
                entry = await fs.stat(path)
            except FSError as e:
                io.stderr.write(f"cd: {target}: {e.message}\n")
                return 1
            if not entry.is_directory:
                io.stderr.write(f"cd: {target}: Not a directory\n")
                return 1

        session.env["OLDPWD"] = session.cwd
        session.chdir(path)
        return 0
