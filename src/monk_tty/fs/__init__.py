"""Virtual filesystem: a mount table over independent backends."""

from .filesystem import FileSystem, basename, dirname, normalize, resolve_path
from .types import ERROR_MESSAGES, FSEntry, FSError, Mount

__all__ = [
    "ERROR_MESSAGES",
    "FSEntry",
    "FSError",
    "FileSystem",
    "Mount",
    "basename",
    "dirname",
    "normalize",
    "resolve_path",
]
