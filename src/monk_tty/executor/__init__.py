"""Pipeline and chain executor."""

from .executor import EXIT_NOT_FOUND, NO_CONTEXT_COMMANDS, SHELL_NAME, Executor, Invocation

__all__ = [
    "EXIT_NOT_FOUND",
    "Executor",
    "Invocation",
    "NO_CONTEXT_COMMANDS",
    "SHELL_NAME",
]
