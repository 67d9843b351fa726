"""Whoami command implementation.

Usage: whoami

Print the session's username.
"""

from typing import Optional

from ...fs import FileSystem
from ...session import Session
from ...streams import CommandIO


class WhoamiCommand:
    """The whoami command."""

    name = "whoami"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        io.stdout.write(f"{session.username}\n")
        return 0
