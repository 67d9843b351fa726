from .awk import AwkCommand
from .interpreter import AwkInterpreter
from .parser import parse_program
from .types import AwkError, AwkRuntimeError, AwkStackDepthError, AwkSyntaxError

__all__ = [
    "AwkCommand",
    "AwkError",
    "AwkInterpreter",
    "AwkRuntimeError",
    "AwkStackDepthError",
    "AwkSyntaxError",
    "parse_program",
]
