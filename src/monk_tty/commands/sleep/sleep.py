"""Sleep command implementation.

Usage: sleep NUMBER[SUFFIX]

Pause for NUMBER seconds. SUFFIX may be s, m, h or d.
"""

import asyncio
from typing import Optional

from ...fs import FileSystem
from ...session import Session
from ...streams import CommandIO

_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(arg: str) -> Optional[float]:
    unit = 1
    if arg and arg[-1] in _UNITS:
        unit = _UNITS[arg[-1]]
        arg = arg[:-1]
    try:
        value = float(arg)
    except ValueError:
        return None
    if value < 0:
        return None
    return value * unit


class SleepCommand:
    """The sleep command."""

    name = "sleep"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        if not args:
            io.stderr.write("sleep: missing operand\n")
            return 1

        total = 0.0
        for arg in args:
            seconds = parse_duration(arg)
            if seconds is None:
                io.stderr.write(f"sleep: invalid time interval '{arg}'\n")
                return 1
            total += seconds

        if io.token is None:
            await asyncio.sleep(total)
        else:
            # Raises CommandCancelled as soon as the token fires.
            await io.token.sleep(total)
        return 0
