from .echo import EchoCommand

__all__ = ["EchoCommand"]
