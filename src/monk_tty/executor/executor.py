"""Chain and pipeline execution.

A line is parsed into a Chain. The chain runs either without a filesystem
(when every stage is a pure environment command), inside a filesystem the
caller already holds, or inside one freshly acquired context. Pipelines are
buffered: each stage's stdout is collected in full, concurrently with the
stage itself, and then becomes the next stage's stdin.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from ..fs import FileSystem, FSError
from ..parser import Chain, ParseException, Pipeline, Stage, expand_word, expand_words, parse_command
from ..process import ProcessRegistry
from ..session import Session
from ..streams import ByteStream, CommandCancelled, CommandIO
from ..transaction import ContextSupplier, MountTableContext
from ..types import Command

logger = logging.getLogger(__name__)

SHELL_NAME = "monksh"

# Commands that only touch the session, never the filesystem.
NO_CONTEXT_COMMANDS = frozenset({
    "echo", "env", "export", "clear", "help", "pwd", "whoami",
    "exit", "logout", "quit", "true", "false", "test", "[",
})

EXIT_NOT_FOUND = 127


@dataclass
class Invocation:
    """A stage after variable and wildcard expansion."""

    name: str
    args: list[str]
    input_file: Optional[str] = None
    output_file: Optional[str] = None
    append: bool = False


class Executor:
    """Runs parsed command lines against a command registry."""

    def __init__(
        self,
        commands: Mapping[str, Command],
        context: Optional[ContextSupplier] = None,
        processes: Optional[ProcessRegistry] = None,
    ):
        self.commands = commands
        self.context = context or MountTableContext()
        self.processes = processes

    @staticmethod
    def needs_context(chain: Chain) -> bool:
        """True unless every stage is a pure environment command without redirects."""
        return any(
            stage.command.raw not in NO_CONTEXT_COMMANDS or stage.has_redirects
            for stage in chain.stages
        )

    async def execute_line(
        self,
        session: Session,
        line: str,
        io: CommandIO,
        *,
        add_to_history: bool = False,
        use_context: bool = True,
        fs: Optional[FileSystem] = None,
    ) -> int:
        """Parse and execute one command line, returning its exit code."""
        try:
            chain = parse_command(line)
        except ParseException as e:
            io.stderr.write(f"{SHELL_NAME}: {e}\n")
            return 1
        if chain is None:
            return 0

        if add_to_history:
            session.add_history(line)

        if chain.background:
            return self._execute_background(session, chain, io)

        if fs is not None:
            return await self.execute_chain(session, chain, fs, io)

        if not use_context or not self.needs_context(chain):
            return await self.execute_chain(session, chain, None, io)

        logger.debug("acquiring context for chain %r", line)
        async with self.context.acquire(session) as context_fs:
            return await self.execute_chain(session, chain, context_fs, io)

    async def execute_chain(
        self,
        session: Session,
        chain: Chain,
        fs: Optional[FileSystem],
        io: CommandIO,
    ) -> int:
        exit_code = await self.execute_pipeline(session, chain.first, fs, io)
        session.env["?"] = str(exit_code)
        for op, pipeline in chain.rest:
            if (op == "&&") != (exit_code == 0):
                continue
            exit_code = await self.execute_pipeline(session, pipeline, fs, io)
            session.env["?"] = str(exit_code)
        return exit_code

    async def execute_pipeline(
        self,
        session: Session,
        pipeline: Pipeline,
        fs: Optional[FileSystem],
        io: CommandIO,
    ) -> int:
        try:
            return await self._run_stages(session, pipeline.stages, fs, io)
        except CommandCancelled:
            return CommandCancelled.exit_code

    async def _expand(self, session: Session, stage: Stage, fs: Optional[FileSystem]) -> Invocation:
        env = session.env
        invocation = Invocation(
            name=expand_word(stage.command, env),
            args=await expand_words(stage.args, env, fs, session.cwd),
        )
        if stage.input_file is not None:
            invocation.input_file = expand_word(stage.input_file, env)
        if stage.output_file is not None:
            invocation.output_file = expand_word(stage.output_file, env)
        elif stage.append_file is not None:
            invocation.output_file = expand_word(stage.append_file, env)
            invocation.append = True
        return invocation

    async def _run_stages(
        self,
        session: Session,
        stages: tuple[Stage, ...],
        fs: Optional[FileSystem],
        io: CommandIO,
    ) -> int:
        exit_code = 0
        previous: Optional[bytes] = None
        last = len(stages) - 1
        for i, stage in enumerate(stages):
            io.check_cancelled()
            invocation = await self._expand(session, stage, fs)
            handler = self.commands.get(invocation.name)
            if handler is None:
                io.stderr.write(f"{invocation.name}: command not found\n")
                return EXIT_NOT_FOUND

            if invocation.input_file is not None:
                stdin = await self._open_input(session, fs, invocation, io)
                if stdin is None:
                    return 1
            elif previous is not None:
                stdin = ByteStream.from_data(previous)
            else:
                # The first stage reads whatever the caller supplied.
                stdin = io.stdin

            exit_code, previous = await self._run_stage(
                session, fs, handler, invocation, stdin, io, capture=i < last
            )
        return exit_code

    async def _open_input(
        self,
        session: Session,
        fs: Optional[FileSystem],
        invocation: Invocation,
        io: CommandIO,
    ) -> Optional[ByteStream]:
        target = invocation.input_file
        if fs is None:
            io.stderr.write(f"{SHELL_NAME}: {target}: no filesystem available\n")
            return None
        try:
            content = await fs.read(fs.resolve_path(session.cwd, target))
        except FSError as e:
            io.stderr.write(f"{invocation.name}: {target}: {e.message}\n")
            return None
        return ByteStream.from_data(content)

    async def _run_stage(
        self,
        session: Session,
        fs: Optional[FileSystem],
        handler: Command,
        invocation: Invocation,
        stdin: ByteStream,
        io: CommandIO,
        capture: bool,
    ) -> tuple[int, bytes]:
        """Run one stage. Returns its exit code and, when captured, its stdout."""
        if invocation.output_file is None and not capture:
            stage_io = CommandIO(stdin=stdin, stdout=io.stdout, stderr=io.stderr, token=io.token)
            return await self._invoke(session, fs, handler, invocation, stage_io, io), b""

        stdout = ByteStream()
        stage_io = CommandIO(stdin=stdin, stdout=stdout, stderr=io.stderr, token=io.token)

        async def run() -> int:
            try:
                return await self._invoke(session, fs, handler, invocation, stage_io, io)
            finally:
                stdout.close()

        results = await asyncio.gather(run(), stdout.read_all(io.token), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        exit_code, output = results

        if invocation.output_file is None:
            return exit_code, output

        target = invocation.output_file
        if fs is None:
            io.stderr.write(f"{SHELL_NAME}: {target}: no filesystem available\n")
            return 1, b""
        path = fs.resolve_path(session.cwd, target)
        try:
            if invocation.append:
                await fs.append(path, output)
            else:
                await fs.write(path, output)
        except FSError as e:
            io.stderr.write(f"{SHELL_NAME}: {target}: {e.message}\n")
            return 1, b""
        return exit_code, b""

    async def _invoke(
        self,
        session: Session,
        fs: Optional[FileSystem],
        handler: Command,
        invocation: Invocation,
        stage_io: CommandIO,
        io: CommandIO,
    ) -> int:
        logger.debug("dispatching %s %r", invocation.name, invocation.args)
        try:
            return await handler.execute(session, fs, invocation.args, stage_io)
        except CommandCancelled:
            raise
        except FSError as e:
            io.stderr.write(f"Error: {e.path}: {e.message}\n")
            return 1
        except Exception as e:
            logger.debug("command %s raised", invocation.name, exc_info=True)
            io.stderr.write(f"Error: {e}\n")
            return 1

    def _execute_background(self, session: Session, chain: Chain, io: CommandIO) -> int:
        if self.processes is None:
            io.stderr.write("Error spawning background process: no process registry\n")
            return 1

        snapshot = session.snapshot()
        first = chain.first.stages[0]

        async def job(process_io: CommandIO) -> int:
            async with self.context.acquire(snapshot) as fs:
                return await self.execute_chain(snapshot, chain, fs, process_io)

        try:
            pid = self.processes.spawn(
                job,
                comm=first.command.raw,
                cmdline=[word.raw for word in first.args],
                cwd=session.cwd,
                environ=dict(session.env),
                ppid=session.pid,
                uid=session.username,
            )
        except RuntimeError as e:
            io.stderr.write(f"Error spawning background process: {e}\n")
            return 1
        io.stdout.write(f"[1] {pid}\n")
        return 0
