"""Tokens, errors and control-flow outcomes for the awk interpreter."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Union

AwkValue = Union[str, float]


class TokenType(Enum):
    # Literals
    NUMBER = auto()
    STRING = auto()
    REGEX = auto()
    IDENTIFIER = auto()
    FIELD = auto()

    # Keywords
    BEGIN = auto()
    END = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    DO = auto()
    BREAK = auto()
    CONTINUE = auto()
    NEXT = auto()
    EXIT = auto()
    FUNCTION = auto()
    RETURN = auto()
    DELETE = auto()
    IN = auto()
    GETLINE = auto()
    PRINT = auto()
    PRINTF = auto()

    # Arithmetic
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    CARET = auto()
    INCREMENT = auto()
    DECREMENT = auto()

    # Assignment
    ASSIGN = auto()
    PLUS_ASSIGN = auto()
    MINUS_ASSIGN = auto()
    STAR_ASSIGN = auto()
    SLASH_ASSIGN = auto()
    PERCENT_ASSIGN = auto()
    CARET_ASSIGN = auto()

    # Comparison and matching
    EQ = auto()
    NE = auto()
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()
    MATCH = auto()
    NOT_MATCH = auto()

    # Logical
    AND = auto()
    OR = auto()
    NOT = auto()

    # Other operators
    QUESTION = auto()
    COLON = auto()
    PIPE = auto()
    APPEND = auto()

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    SEMICOLON = auto()
    NEWLINE = auto()

    EOF = auto()


KEYWORDS = {
    "BEGIN": TokenType.BEGIN,
    "END": TokenType.END,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "do": TokenType.DO,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "next": TokenType.NEXT,
    "exit": TokenType.EXIT,
    "function": TokenType.FUNCTION,
    "func": TokenType.FUNCTION,
    "return": TokenType.RETURN,
    "delete": TokenType.DELETE,
    "in": TokenType.IN,
    "getline": TokenType.GETLINE,
    "print": TokenType.PRINT,
    "printf": TokenType.PRINTF,
}

ASSIGN_OPS = {
    TokenType.ASSIGN: "=",
    TokenType.PLUS_ASSIGN: "+=",
    TokenType.MINUS_ASSIGN: "-=",
    TokenType.STAR_ASSIGN: "*=",
    TokenType.SLASH_ASSIGN: "/=",
    TokenType.PERCENT_ASSIGN: "%=",
    TokenType.CARET_ASSIGN: "^=",
}


@dataclass
class Token:
    type: TokenType
    value: str
    line: int
    column: int


class AwkError(Exception):
    """Base class for awk failures reported as ``awk: <message>``."""


class AwkSyntaxError(AwkError):
    """Raised by the lexer and parser; the program never starts."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        if line:
            message = f"syntax error at line {line}, column {column}: {message}"
        super().__init__(message)


class AwkRuntimeError(AwkError):
    pass


class AwkStackDepthError(AwkRuntimeError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__("stack depth exceeded")


class Flow(Enum):
    """How a statement finished."""

    NORMAL = auto()
    BREAK = auto()
    CONTINUE = auto()
    NEXT = auto()
    EXIT = auto()
    RETURN = auto()


@dataclass(frozen=True)
class Outcome:
    flow: Flow
    value: Any = None

    @property
    def normal(self) -> bool:
        return self.flow is Flow.NORMAL


NORMAL = Outcome(Flow.NORMAL)
BREAK = Outcome(Flow.BREAK)
CONTINUE = Outcome(Flow.CONTINUE)
NEXT = Outcome(Flow.NEXT)
