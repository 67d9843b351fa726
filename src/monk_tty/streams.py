"""Byte streams, cancellation and per-stage I/O wiring."""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

POLL_INTERVAL = 0.05


class CommandCancelled(Exception):
    """Raised at a wait point once the active cancellation token has fired."""

    exit_code = 130


class CancellationToken:
    """Cooperative cancellation flag shared by every stage of a command."""

    def __init__(self) -> None:
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CommandCancelled()

    async def sleep(self, seconds: float) -> None:
        """Sleep, waking early and raising CommandCancelled on cancellation."""
        self.raise_if_cancelled()
        if self._event is None:
            self._event = asyncio.Event()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()


class ByteStream:
    """An in-process byte pipe.

    Writers push chunks synchronously; readers await them. ``close()`` marks
    end of data. Text written is encoded as UTF-8.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._closed = False
        self._eof = False

    @classmethod
    def from_data(cls, data: str | bytes = b"") -> "ByteStream":
        stream = cls()
        if data:
            stream.write(data)
        stream.close()
        return stream

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: str | bytes) -> None:
        if self._closed:
            raise ValueError("write to closed stream")
        if isinstance(data, str):
            data = data.encode("utf-8")
        if data:
            self._queue.put_nowait(data)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def read(self, token: Optional[CancellationToken] = None) -> Optional[bytes]:
        """Return the next chunk, or None at end of data."""
        if self._eof:
            return None
        while True:
            if token is not None:
                token.raise_if_cancelled()
            try:
                if token is None:
                    chunk = await self._queue.get()
                else:
                    chunk = await asyncio.wait_for(self._queue.get(), timeout=POLL_INTERVAL)
            except asyncio.TimeoutError:
                continue
            if chunk is None:
                self._eof = True
            return chunk

    async def read_all(self, token: Optional[CancellationToken] = None) -> bytes:
        chunks = []
        while True:
            chunk = await self.read(token)
            if chunk is None:
                return b"".join(chunks)
            chunks.append(chunk)

    async def read_text(self, token: Optional[CancellationToken] = None) -> str:
        return (await self.read_all(token)).decode("utf-8", errors="replace")

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self.read()
            if chunk is None:
                return
            yield chunk


@dataclass
class CommandIO:
    """The streams handed to one command invocation."""

    stdin: ByteStream = field(default_factory=lambda: ByteStream.from_data(b""))
    stdout: ByteStream = field(default_factory=ByteStream)
    stderr: ByteStream = field(default_factory=ByteStream)
    token: Optional[CancellationToken] = None

    def check_cancelled(self) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled()

    async def read_stdin(self) -> str:
        return await self.stdin.read_text(self.token)
