"""Env and export command implementations."""

import re
from typing import Optional

from ...fs import FileSystem
from ...session import Session
from ...streams import CommandIO

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Shell-internal variables that are not part of the exported environment.
_HIDDEN = frozenset({"?"})


def _format_env(env: dict[str, str]) -> str:
    lines = [f"{k}={v}" for k, v in sorted(env.items()) if k not in _HIDDEN]
    return "\n".join(lines) + "\n" if lines else ""


class EnvCommand:
    """The env command - print the session environment."""

    name = "env"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        if "--help" in args:
            io.stdout.write("Usage: env\n")
            return 0
        io.stdout.write(_format_env(session.env))
        return 0


class ExportCommand:
    """The export command - set session environment variables.

    Usage: export [NAME[=VALUE]]...
    """

    name = "export"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        if not args:
            io.stdout.write(_format_env(session.env))
            return 0

        exit_code = 0
        for arg in args:
            name, sep, value = arg.partition("=")
            if not _NAME_RE.match(name):
                io.stderr.write(f"export: `{arg}': not a valid identifier\n")
                exit_code = 1
                continue
            if sep:
                session.env[name] = value
            else:
                session.env.setdefault(name, "")
        return exit_code
