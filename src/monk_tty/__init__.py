"""monk-tty - an embeddable multi-tenant shell core.

A command-line parser, a pipeline executor, an AWK interpreter and a
mount-based virtual filesystem behind one ``Shell`` facade.
"""

from .commands import create_command_registry
from .executor import Executor
from .fs import FileSystem, FSEntry, FSError, Mount
from .fs.mounts import BinMount, FilterMount, InMemoryRecordSource, LocalMount, MemoryMount, ProcMount
from .parser import ParseException, parse_command
from .process import ProcessRecord, ProcessRegistry
from .session import Session
from .shell import Shell
from .streams import ByteStream, CancellationToken, CommandCancelled, CommandIO
from .transaction import ContextSupplier, MountTableContext
from .types import Command, ExecResult, ExecutionLimits

__version__ = "0.1.0"

__all__ = [
    "BinMount",
    "ByteStream",
    "CancellationToken",
    "Command",
    "CommandCancelled",
    "CommandIO",
    "ContextSupplier",
    "ExecResult",
    "ExecutionLimits",
    "Executor",
    "FSEntry",
    "FSError",
    "FileSystem",
    "FilterMount",
    "InMemoryRecordSource",
    "LocalMount",
    "MemoryMount",
    "Mount",
    "MountTableContext",
    "ParseException",
    "ProcMount",
    "ProcessRecord",
    "ProcessRegistry",
    "Session",
    "Shell",
    "create_command_registry",
    "parse_command",
]
