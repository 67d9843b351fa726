"""Process table for sessions and background jobs.

Records follow the Linux /proc model: a pid, a parent, a command line and a
single-letter state (R running, S sleeping, Z zombie, T stopped, X dead).
Background jobs run as asyncio tasks owned by the registry; nothing awaits
them on the caller's behalf.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Literal, Optional

from .streams import ByteStream, CancellationToken, CommandCancelled, CommandIO

logger = logging.getLogger(__name__)

ProcessState = Literal["R", "S", "Z", "T", "X"]
ProcessType = Literal["command", "script", "cron", "daemon"]

STATE_NAMES = {
    "R": "running",
    "S": "sleeping",
    "Z": "zombie",
    "T": "stopped",
    "X": "dead",
}

ProcessHandler = Callable[[CommandIO], Awaitable[int]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessRecord:
    pid: int
    comm: str
    cmdline: list[str]
    cwd: str = "/"
    environ: dict[str, str] = field(default_factory=dict)
    ppid: Optional[int] = None
    uid: str = "root"
    type: ProcessType = "command"
    state: ProcessState = "S"
    exit_code: Optional[int] = None
    error: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
    created_at: datetime = field(default_factory=_now)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None


class ProcessRegistry:
    """In-memory process table shared by every session of a tenant."""

    def __init__(self) -> None:
        self._next_pid = 1
        self._records: dict[int, ProcessRecord] = {}
        self._tasks: dict[int, asyncio.Task] = {}
        self._tokens: dict[int, CancellationToken] = {}

    def _allocate(self, **kwargs) -> ProcessRecord:
        record = ProcessRecord(pid=self._next_pid, **kwargs)
        self._next_pid += 1
        self._records[record.pid] = record
        return record

    def register_daemon(
        self,
        comm: str,
        cmdline: Optional[list[str]] = None,
        *,
        cwd: str = "/",
        environ: Optional[dict[str, str]] = None,
        ppid: Optional[int] = None,
        uid: str = "root",
    ) -> int:
        """Record a long-lived process that the caller manages itself."""
        record = self._allocate(
            comm=comm,
            cmdline=list(cmdline or []),
            cwd=cwd,
            environ=dict(environ or {}),
            ppid=ppid,
            uid=uid,
            type="daemon",
            state="R",
            started_at=_now(),
        )
        logger.debug("registered daemon %s (pid %d)", comm, record.pid)
        return record.pid

    def spawn(
        self,
        handler: ProcessHandler,
        *,
        comm: str,
        cmdline: list[str],
        cwd: str = "/",
        environ: Optional[dict[str, str]] = None,
        ppid: Optional[int] = None,
        uid: str = "root",
        type: ProcessType = "command",
    ) -> int:
        """Start ``handler`` as a tracked background task and return its pid."""
        loop = asyncio.get_running_loop()
        record = self._allocate(
            comm=comm,
            cmdline=list(cmdline),
            cwd=cwd,
            environ=dict(environ or {}),
            ppid=ppid,
            uid=uid,
            type=type,
        )
        token = CancellationToken()
        self._tokens[record.pid] = token
        task = loop.create_task(self._run(record, handler, token))
        self._tasks[record.pid] = task
        task.add_done_callback(lambda _: self._tasks.pop(record.pid, None))
        logger.info("spawned %s (pid %d)", comm, record.pid)
        return record.pid

    async def _run(self, record: ProcessRecord, handler: ProcessHandler, token: CancellationToken) -> None:
        io = CommandIO(
            stdin=ByteStream.from_data(b""),
            stdout=ByteStream(),
            stderr=ByteStream(),
            token=token,
        )

        async def drain(stream: ByteStream, attr: str) -> None:
            async for chunk in stream:
                setattr(record, attr, getattr(record, attr) + chunk.decode("utf-8", errors="replace"))

        drains = [
            asyncio.ensure_future(drain(io.stdout, "stdout")),
            asyncio.ensure_future(drain(io.stderr, "stderr")),
        ]
        if record.state != "X":
            record.state = "R"
        record.started_at = _now()
        try:
            try:
                exit_code = await handler(io)
            finally:
                io.stdout.close()
                io.stderr.close()
                await asyncio.gather(*drains)
        except CommandCancelled:
            exit_code = CommandCancelled.exit_code
        except Exception as e:
            logger.debug("process %d failed", record.pid, exc_info=True)
            record.error = str(e)
            exit_code = 1
        finally:
            self._tokens.pop(record.pid, None)
        if record.state != "X":
            record.state = "Z"
        record.exit_code = exit_code
        record.ended_at = _now()
        logger.info("process %s (pid %d) exited with %d", record.comm, record.pid, exit_code)

    def get(self, pid: int) -> Optional[ProcessRecord]:
        return self._records.get(pid)

    def list(self) -> list[ProcessRecord]:
        return [self._records[pid] for pid in sorted(self._records)]

    def kill(self, pid: int) -> bool:
        """Request cancellation of a process. Returns False if it is unknown or finished."""
        record = self._records.get(pid)
        if record is None or record.state in ("Z", "X"):
            return False
        token = self._tokens.get(pid)
        if token is not None:
            token.cancel()
        else:
            self.terminate(pid, exit_code=CommandCancelled.exit_code)
        record.state = "X"
        return True

    def terminate(self, pid: int, exit_code: int = 0) -> None:
        """Mark a daemon as finished."""
        record = self._records.get(pid)
        if record is None:
            return
        if record.state not in ("Z", "X"):
            record.state = "Z"
        record.exit_code = exit_code
        record.ended_at = _now()

    def reap(self, pid: Optional[int] = None) -> list[int]:
        """Drop finished records (Z or X) from the table and return their pids.

        Records are kept after exit so their output and exit code stay
        readable; callers reap them once they no longer need them.
        """
        candidates = [pid] if pid is not None else list(self._records)
        reaped = []
        for candidate in candidates:
            record = self._records.get(candidate)
            if record is None or record.state not in ("Z", "X") or candidate in self._tasks:
                continue
            del self._records[candidate]
            self._tokens.pop(candidate, None)
            reaped.append(candidate)
        if reaped:
            logger.debug("reaped pids %s", reaped)
        return reaped

    async def wait(self, pid: int) -> Optional[int]:
        """Wait for a background process to finish and return its exit code."""
        task = self._tasks.get(pid)
        if task is not None:
            await asyncio.shield(task)
        record = self._records.get(pid)
        return record.exit_code if record else None
