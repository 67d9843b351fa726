"""Main Shell class - the entry point for embedding monk-tty.

Example usage:
    from monk_tty import Shell

    # Synchronous usage (for REPL, scripts)
    shell = Shell(files={"/data.txt": "a b\\nc d\\n"})
    result = shell.run("awk '{print $2}' /data.txt")
    print(result.stdout)  # "b\\nd\\n"

    # Async usage (for connection handlers and bridges)
    shell = Shell()
    result = await shell.exec("echo hello | cat")
    print(result.stdout)  # "hello\\n"

    # Extra mounts are layered over the defaults
    shell = Shell(mounts={"/project": LocalMount("/srv/project")})
"""

import asyncio
import logging
from typing import Optional

import nest_asyncio  # type: ignore[import-untyped]

from .commands import command_manuals, create_command_registry
from .executor import SHELL_NAME, Executor
from .fs import FileSystem, Mount
from .fs.mounts import BinMount, FilterMount, MemoryMount, ProcMount
from .process import ProcessRegistry
from .session import DEFAULT_ENV, Session
from .streams import ByteStream, CancellationToken, CommandIO
from .transaction import ContextSupplier, MountTableContext
from .types import Command, ExecResult, ExecutionLimits

logger = logging.getLogger(__name__)


class Shell:
    """One interactive shell session over a mount table.

    The session's working directory, environment and history persist
    between calls to ``exec``. Background jobs started with ``&`` run in the
    shared process registry.
    """

    def __init__(
        self,
        *,
        mounts: Optional[dict[str, Mount]] = None,
        files: Optional[dict[str, str | bytes]] = None,
        cwd: str = "/",
        env: Optional[dict[str, str]] = None,
        limits: Optional[ExecutionLimits] = None,
        commands: Optional[dict[str, Command]] = None,
        processes: Optional[ProcessRegistry] = None,
        context: Optional[ContextSupplier] = None,
        username: str = "root",
    ):
        """Initialize the shell.

        Args:
            mounts: Extra mounts, layered over the default "/", "/bin" and "/proc".
            files: Initial files for the in-memory root mount.
            cwd: Initial working directory. Created in the default in-memory root when missing.
            env: Additional environment variables.
            limits: Execution limits.
            commands: Custom command registry. If not provided, uses built-in commands.
            processes: Process registry to share with other sessions.
            context: Context supplier. Defaults to building a FileSystem from the mounts.
            username: Name reported by whoami and recorded on processes.
        """
        self._limits = limits or ExecutionLimits()
        self._processes = processes if processes is not None else ProcessRegistry()
        self._commands = commands or create_command_registry(self._processes, self._limits)

        session_env = dict(DEFAULT_ENV)
        if env:
            session_env.update(env)
        pid = self._processes.register_daemon(SHELL_NAME, cwd=cwd, environ=session_env, uid=username)

        table: dict[str, Mount] = {
            "/": MemoryMount(files, max_file_size=self._limits.max_memory_file_size),
            "/bin": BinMount(self._commands, command_manuals(self._commands)),
            "/proc": ProcMount(self._processes, pid),
        }
        if mounts:
            table.update(mounts)
        for mount in table.values():
            if isinstance(mount, FilterMount):
                mount.limit = min(mount.limit, self._limits.max_filter_rows)
        root = table["/"]
        if isinstance(root, MemoryMount) and FileSystem(table).mount_for(cwd) is root:
            root.add_directory(FileSystem.normalize(cwd))

        self._session = Session(
            cwd=cwd,
            env=session_env,
            mounts=table,
            username=username,
            pid=pid,
        )
        self._executor = Executor(
            self._commands,
            context=context or MountTableContext(),
            processes=self._processes,
        )

    @property
    def session(self) -> Session:
        return self._session

    @property
    def processes(self) -> ProcessRegistry:
        return self._processes

    @property
    def fs(self) -> FileSystem:
        """A filesystem over the session's current mount table."""
        return FileSystem(self._session.mounts)

    @property
    def cwd(self) -> str:
        """Get the current working directory."""
        return self._session.cwd

    @property
    def env(self) -> dict[str, str]:
        """Get the environment variables."""
        return self._session.env

    async def exec(
        self,
        line: str,
        *,
        stdin: str | bytes = b"",
        add_to_history: bool = False,
    ) -> ExecResult:
        """Execute one command line.

        Args:
            line: The command line to execute.
            stdin: Data fed to the first stage's standard input.
            add_to_history: Record the line in the session history.

        Returns:
            ExecResult with stdout, stderr, exit_code, and final env.
        """
        token = CancellationToken()
        io = CommandIO(
            stdin=ByteStream.from_data(stdin),
            stdout=ByteStream(),
            stderr=ByteStream(),
            token=token,
        )
        self._session.foreground = token
        try:
            exit_code = await self._executor.execute_line(
                self._session, line, io, add_to_history=add_to_history
            )
        finally:
            self._session.foreground = None
            io.stdout.close()
            io.stderr.close()

        return ExecResult(
            stdout=(await io.stdout.read_all()).decode("utf-8", errors="replace"),
            stderr=(await io.stderr.read_all()).decode("utf-8", errors="replace"),
            exit_code=exit_code,
            env=dict(self._session.env),
        )

    def run(
        self,
        line: str,
        *,
        stdin: str | bytes = b"",
        add_to_history: bool = False,
    ) -> ExecResult:
        """Execute one command line synchronously.

        Works inside a running event loop too, such as a notebook.

        Example:
            >>> shell = Shell()
            >>> shell.run("echo hi").stdout
            'hi\\n'
        """
        try:
            asyncio.get_running_loop()
            # Already inside a loop; allow asyncio.run to nest.
            nest_asyncio.apply()
        except RuntimeError:
            pass
        return asyncio.run(self.exec(line, stdin=stdin, add_to_history=add_to_history))

    def cancel(self) -> bool:
        """Cancel the foreground command. Returns False if nothing is running."""
        token = self._session.foreground
        if token is None:
            return False
        logger.debug("cancelling foreground command of %s", self._session.username)
        token.cancel()
        return True

    async def read_file(self, path: str) -> str:
        """Read a file relative to the working directory."""
        async with self._executor.context.acquire(self._session) as fs:
            return await fs.read_text(fs.resolve_path(self._session.cwd, path))

    async def write_file(self, path: str, content: str | bytes) -> None:
        """Write a file relative to the working directory."""
        async with self._executor.context.acquire(self._session) as fs:
            await fs.write(fs.resolve_path(self._session.cwd, path), content)
