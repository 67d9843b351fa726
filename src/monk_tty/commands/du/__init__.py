from .du import DuCommand

__all__ = ["DuCommand"]
