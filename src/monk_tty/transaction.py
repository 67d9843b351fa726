"""Transactional context suppliers.

A chain that touches the filesystem runs inside exactly one acquired
context. The supplier decides what that means: the default just builds a
FileSystem from the session's mount table, while a data-backed deployment
would open a transaction and expose its mounts through the same handle.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator

from .fs import FileSystem
from .session import Session

logger = logging.getLogger(__name__)


class ContextSupplier(ABC):
    @abstractmethod
    def acquire(self, session: Session) -> AsyncContextManager[FileSystem]:
        """Async context manager yielding the filesystem for one chain."""


class MountTableContext(ContextSupplier):
    """Builds a fresh FileSystem from ``session.mounts`` for every chain."""

    @asynccontextmanager
    async def acquire(self, session: Session) -> AsyncIterator[FileSystem]:
        logger.debug("acquiring context for %s", session.username)
        yield FileSystem(session.mounts)
