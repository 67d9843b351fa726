"""Mount backends."""

from .bin_mount import BinMount
from .filter_mount import DEFAULT_ROW_LIMIT, FilterMount, InMemoryRecordSource, RecordSource
from .local_mount import LocalMount
from .memory_mount import MemoryMount
from .proc_mount import ProcMount

__all__ = [
    "BinMount",
    "DEFAULT_ROW_LIMIT",
    "FilterMount",
    "InMemoryRecordSource",
    "LocalMount",
    "MemoryMount",
    "ProcMount",
    "RecordSource",
]
