from .ps import KillCommand, PsCommand

__all__ = ["KillCommand", "PsCommand"]
