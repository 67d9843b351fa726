"""Tokenizer for command lines.

Splits a line into words and operators. Quoting is recorded per word part
instead of being stripped, so later stages can tell ``'*'`` from ``*``.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .ast import Word, WordPart


class ParseException(Exception):
    """Raised for malformed command lines."""


class TokenType(Enum):
    WORD = auto()
    PIPE = auto()
    AND = auto()
    OR = auto()
    AMP = auto()
    LESS = auto()
    GREAT = auto()
    DGREAT = auto()
    EOF = auto()


OPERATOR_TEXT = {
    TokenType.PIPE: "|",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.AMP: "&",
    TokenType.LESS: "<",
    TokenType.GREAT: ">",
    TokenType.DGREAT: ">>",
    TokenType.EOF: "newline",
}

_OPERATOR_CHARS = "|&<>"
# Characters a backslash may escape inside double quotes.
_DQUOTE_ESCAPES = '"\\$`'


@dataclass(frozen=True)
class Token:
    type: TokenType
    word: Optional[Word] = None
    pos: int = 0

    @property
    def text(self) -> str:
        if self.word is not None:
            return self.word.raw
        return OPERATOR_TEXT[self.type]


class Lexer:
    def __init__(self, line: str):
        self.line = line
        self.pos = 0

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            self._skip_blanks()
            if self.pos >= len(self.line):
                break
            c = self.line[self.pos]
            if c == "#":
                break
            if c in _OPERATOR_CHARS:
                tokens.append(self._operator())
            else:
                tokens.append(self._word())
        tokens.append(Token(TokenType.EOF, pos=self.pos))
        return tokens

    def _skip_blanks(self) -> None:
        while self.pos < len(self.line) and self.line[self.pos] in " \t\r\n":
            self.pos += 1

    def _operator(self) -> Token:
        start = self.pos
        c = self.line[self.pos]
        nxt = self.line[self.pos + 1] if self.pos + 1 < len(self.line) else ""
        if c == "|":
            if nxt == "|":
                self.pos += 2
                return Token(TokenType.OR, pos=start)
            self.pos += 1
            return Token(TokenType.PIPE, pos=start)
        if c == "&":
            if nxt == "&":
                self.pos += 2
                return Token(TokenType.AND, pos=start)
            self.pos += 1
            return Token(TokenType.AMP, pos=start)
        if c == ">":
            if nxt == ">":
                self.pos += 2
                return Token(TokenType.DGREAT, pos=start)
            self.pos += 1
            return Token(TokenType.GREAT, pos=start)
        self.pos += 1
        return Token(TokenType.LESS, pos=start)

    def _word(self) -> Token:
        start = self.pos
        parts: list[WordPart] = []
        buf: list[str] = []

        def flush() -> None:
            if buf:
                parts.append(WordPart("".join(buf)))
                buf.clear()

        line = self.line
        while self.pos < len(line):
            c = line[self.pos]
            if c in " \t\r\n" or c in _OPERATOR_CHARS:
                break
            if c == "'":
                flush()
                end = line.find("'", self.pos + 1)
                if end == -1:
                    raise ParseException("unterminated single quote")
                parts.append(WordPart(line[self.pos + 1:end], "single"))
                self.pos = end + 1
            elif c == '"':
                flush()
                self._double_quoted(parts)
            elif c == "\\":
                flush()
                if self.pos + 1 < len(line):
                    parts.append(WordPart(line[self.pos + 1], "escaped"))
                    self.pos += 2
                else:
                    parts.append(WordPart("\\", "escaped"))
                    self.pos += 1
            else:
                buf.append(c)
                self.pos += 1
        flush()
        if not parts:
            # An empty quoted string such as "" is still a word.
            parts.append(WordPart("", "single"))
        return Token(TokenType.WORD, word=Word(tuple(parts)), pos=start)

    def _double_quoted(self, parts: list[WordPart]) -> None:
        line = self.line
        self.pos += 1
        buf: list[str] = []
        saw_any = False
        while True:
            if self.pos >= len(line):
                raise ParseException("unterminated double quote")
            c = line[self.pos]
            if c == '"':
                self.pos += 1
                break
            if c == "\\" and self.pos + 1 < len(line) and line[self.pos + 1] in _DQUOTE_ESCAPES:
                if buf:
                    parts.append(WordPart("".join(buf), "double"))
                    buf.clear()
                parts.append(WordPart(line[self.pos + 1], "escaped"))
                saw_any = True
                self.pos += 2
                continue
            buf.append(c)
            self.pos += 1
        if buf or not saw_any:
            parts.append(WordPart("".join(buf), "double"))


def tokenize(line: str) -> list[Token]:
    return Lexer(line).tokenize()
