"""True and false command implementations."""

from typing import Optional

from ...fs import FileSystem
from ...session import Session
from ...streams import CommandIO


class TrueCommand:
    """The true command - do nothing, successfully."""

    name = "true"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        return 0


class FalseCommand:
    """The false command - do nothing, unsuccessfully."""

    name = "false"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        return 1
