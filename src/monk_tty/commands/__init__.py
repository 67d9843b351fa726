"""Built-in command registry."""

import inspect
from typing import Mapping, Optional

from ..process import ProcessRegistry
from ..types import Command, ExecutionLimits
from .awk import AwkCommand
from .cat import CatCommand
from .cd import CdCommand
from .du import DuCommand
from .echo import EchoCommand
from .env import EnvCommand, ExportCommand
from .ls import LsCommand
from .ps import KillCommand, PsCommand
from .pwd import PwdCommand
from .sleep import SleepCommand
from .true import FalseCommand, TrueCommand
from .whoami import WhoamiCommand


def create_command_registry(
    processes: Optional[ProcessRegistry] = None,
    limits: Optional[ExecutionLimits] = None,
) -> dict[str, Command]:
    """Create a registry with every built-in command, keyed by name."""
    commands: list[Command] = [
        EchoCommand(),
        TrueCommand(),
        FalseCommand(),
        PwdCommand(),
        WhoamiCommand(),
        CdCommand(),
        EnvCommand(),
        ExportCommand(),
        CatCommand(),
        LsCommand(),
        SleepCommand(),
        DuCommand(),
        PsCommand(),
        KillCommand(processes),
        AwkCommand(limits),
    ]
    return {command.name: command for command in commands}


def command_manuals(registry: Mapping[str, Command]) -> dict[str, str]:
    """Manual text for each command, taken from its module docstring."""
    manuals = {}
    for name, command in registry.items():
        module = inspect.getmodule(type(command))
        doc = module.__doc__ if module is not None else None
        if doc:
            manuals[name] = inspect.cleandoc(doc)
    return manuals


__all__ = [
    "AwkCommand",
    "CatCommand",
    "CdCommand",
    "DuCommand",
    "EchoCommand",
    "EnvCommand",
    "ExportCommand",
    "FalseCommand",
    "KillCommand",
    "LsCommand",
    "PsCommand",
    "PwdCommand",
    "SleepCommand",
    "TrueCommand",
    "WhoamiCommand",
    "command_manuals",
    "create_command_registry",
]
