"""Core types shared across the shell."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from .fs import FileSystem
    from .session import Session
    from .streams import CommandIO


@dataclass
class ExecResult:
    """Result of executing a command line."""

    stdout: str
    stderr: str
    exit_code: int
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class ExecutionLimits:
    """Limits and tuning knobs for execution.

    Attributes:
        max_awk_call_depth: Deepest user-function recursion an awk program may reach.
        max_filter_rows: Row cap for query-backed filter mounts.
        max_memory_file_size: Largest file an in-memory mount accepts, in bytes.
        awk_yield_interval: Statements an awk program runs between yields to the event loop.
    """

    max_awk_call_depth: int = 64
    max_filter_rows: int = 1000
    max_memory_file_size: int = 50 * 1024 * 1024
    awk_yield_interval: int = 256


class Command(Protocol):
    """A registered command handler.

    Handlers write to ``io.stdout``/``io.stderr`` and return an exit code.
    ``fs`` is None when the command runs outside a filesystem context.
    """

    name: str

    async def execute(
        self,
        session: Session,
        fs: Optional[FileSystem],
        args: list[str],
        io: CommandIO,
    ) -> int:
        ...
