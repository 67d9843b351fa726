"""Long-lived per-connection shell state."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from .streams import CancellationToken

if TYPE_CHECKING:
    from .fs.types import Mount

DEFAULT_ENV = {
    "TERM": "xterm",
    "SHELL": "/bin/monksh",
    "PATH": "/bin",
    "?": "0",
}


@dataclass
class Session:
    """State carried between command lines.

    ``mounts`` is the ordered mount table the default context supplier builds
    a filesystem from. ``context`` is opaque tenant data passed through to
    context suppliers.
    """

    cwd: str = "/"
    env: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENV))
    history: list[str] = field(default_factory=list)
    mounts: dict[str, Mount] = field(default_factory=dict)
    username: str = "root"
    pid: Optional[int] = None
    context: Any = None
    foreground: Optional[CancellationToken] = None

    def __post_init__(self) -> None:
        self.env.setdefault("?", "0")
        self.env.setdefault("USER", self.username)
        self.env.setdefault("HOME", f"/home/{self.username}")
        self.env["PWD"] = self.cwd

    def chdir(self, path: str) -> None:
        self.cwd = path
        self.env["PWD"] = path

    def add_history(self, line: str) -> None:
        if not self.history or self.history[-1] != line:
            self.history.append(line)

    def snapshot(self) -> Session:
        """Shallow copy for a background job: shares mounts, owns its env."""
        clone = copy.copy(self)
        clone.env = dict(self.env)
        clone.history = list(self.history)
        clone.foreground = None
        return clone
