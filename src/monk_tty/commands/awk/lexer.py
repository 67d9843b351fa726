"""Lexer for awk programs.

Whether ``/`` starts a regex or is a division depends on the previous
token: after an operand (number, string, name, field, ``)``, ``]``, or a
postfix ``++``/``--``) it divides, anywhere else it opens a regex.
"""

from .types import KEYWORDS, AwkSyntaxError, Token, TokenType

# A "/" right after one of these is division.
_OPERAND_END = frozenset({
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.REGEX,
    TokenType.IDENTIFIER,
    TokenType.FIELD,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.INCREMENT,
    TokenType.DECREMENT,
})

# A newline after one of these continues the statement.
_CONTINUES_LINE = frozenset({
    TokenType.COMMA,
    TokenType.LBRACE,
    TokenType.LPAREN,
    TokenType.LBRACKET,
    TokenType.OR,
    TokenType.AND,
    TokenType.QUESTION,
    TokenType.COLON,
    TokenType.PLUS,
    TokenType.MINUS,
    TokenType.STAR,
    TokenType.SLASH,
    TokenType.PERCENT,
    TokenType.CARET,
    TokenType.EQ,
    TokenType.NE,
    TokenType.LT,
    TokenType.GT,
    TokenType.LE,
    TokenType.GE,
    TokenType.MATCH,
    TokenType.NOT_MATCH,
    TokenType.ASSIGN,
    TokenType.PLUS_ASSIGN,
    TokenType.MINUS_ASSIGN,
    TokenType.STAR_ASSIGN,
    TokenType.SLASH_ASSIGN,
    TokenType.PERCENT_ASSIGN,
    TokenType.CARET_ASSIGN,
    TokenType.NEWLINE,
    TokenType.SEMICOLON,
})

STRING_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "/": "/",
    "b": "\b",
    "f": "\f",
    "a": "\a",
    "v": "\v",
}

# Operators, longest first within each leading character.
_OPERATORS = {
    "+": (("++", TokenType.INCREMENT), ("+=", TokenType.PLUS_ASSIGN), ("+", TokenType.PLUS)),
    "-": (("--", TokenType.DECREMENT), ("-=", TokenType.MINUS_ASSIGN), ("-", TokenType.MINUS)),
    "*": (("**=", TokenType.CARET_ASSIGN), ("**", TokenType.CARET),
          ("*=", TokenType.STAR_ASSIGN), ("*", TokenType.STAR)),
    "/": (("/=", TokenType.SLASH_ASSIGN), ("/", TokenType.SLASH)),
    "%": (("%=", TokenType.PERCENT_ASSIGN), ("%", TokenType.PERCENT)),
    "^": (("^=", TokenType.CARET_ASSIGN), ("^", TokenType.CARET)),
    "=": (("==", TokenType.EQ), ("=", TokenType.ASSIGN)),
    "!": (("!=", TokenType.NE), ("!~", TokenType.NOT_MATCH), ("!", TokenType.NOT)),
    "<": (("<=", TokenType.LE), ("<", TokenType.LT)),
    ">": ((">=", TokenType.GE), (">>", TokenType.APPEND), (">", TokenType.GT)),
    "&": (("&&", TokenType.AND),),
    "|": (("||", TokenType.OR), ("|", TokenType.PIPE)),
    "~": (("~", TokenType.MATCH),),
    "?": (("?", TokenType.QUESTION),),
    ":": ((":", TokenType.COLON),),
    "(": (("(", TokenType.LPAREN),),
    ")": ((")", TokenType.RPAREN),),
    "{": (("{", TokenType.LBRACE),),
    "}": (("}", TokenType.RBRACE),),
    "[": (("[", TokenType.LBRACKET),),
    "]": (("]", TokenType.RBRACKET),),
    ",": ((",", TokenType.COMMA),),
    ";": ((";", TokenType.SEMICOLON),),
}


class Lexer:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        while True:
            self._skip_blanks()
            if self.pos >= len(self.source):
                break
            self._scan()
        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column))
        return self.tokens

    @property
    def _last(self) -> TokenType | None:
        return self.tokens[-1].type if self.tokens else None

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else ""

    def _advance(self) -> str:
        c = self.source[self.pos]
        self.pos += 1
        if c == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return c

    def _add(self, type_: TokenType, value: str, line: int, column: int) -> None:
        self.tokens.append(Token(type_, value, line, column))

    def _error(self, message: str, line: int, column: int) -> AwkSyntaxError:
        return AwkSyntaxError(message, line, column)

    def _skip_blanks(self) -> None:
        while self.pos < len(self.source):
            c = self._peek()
            if c in " \t\r":
                self._advance()
            elif c == "#":
                while self.pos < len(self.source) and self._peek() != "\n":
                    self._advance()
            elif c == "\\" and self._peek(1) == "\n":
                self._advance()
                self._advance()
            elif c == "\\" and self._peek(1) == "\r" and self._peek(2) == "\n":
                self._advance()
                self._advance()
                self._advance()
            else:
                break

    def _scan(self) -> None:
        line, column = self.line, self.column
        c = self._peek()

        if c == "\n":
            self._advance()
            if self._last is not None and self._last not in _CONTINUES_LINE:
                self._add(TokenType.NEWLINE, "\n", line, column)
            return
        if c == '"':
            self._advance()
            self._add(TokenType.STRING, self._string(line, column), line, column)
            return
        if c == "/" and self._last not in _OPERAND_END:
            self._advance()
            self._add(TokenType.REGEX, self._regex(line, column), line, column)
            return
        if c.isdigit() or (c == "." and self._peek(1).isdigit()):
            self._add(TokenType.NUMBER, self._number(), line, column)
            return
        if c.isalpha() or c == "_":
            start = self.pos
            while self._peek().isalnum() or self._peek() == "_":
                self._advance()
            text = self.source[start:self.pos]
            self._add(KEYWORDS.get(text, TokenType.IDENTIFIER), text, line, column)
            return
        if c == "$":
            self._advance()
            self._add(TokenType.FIELD, "$", line, column)
            return

        for text, type_ in _OPERATORS.get(c, ()):
            if self.source.startswith(text, self.pos):
                for _ in text:
                    self._advance()
                self._add(type_, text, line, column)
                return
        raise self._error(f"unexpected character '{c}'", line, column)

    def _string(self, line: int, column: int) -> str:
        value = []
        while True:
            if self.pos >= len(self.source) or self._peek() == "\n":
                raise self._error("unterminated string", line, column)
            c = self._advance()
            if c == '"':
                return "".join(value)
            if c != "\\":
                value.append(c)
                continue
            if self.pos >= len(self.source):
                raise self._error("unterminated string", line, column)
            escaped = self._advance()
            if escaped == "\n":
                continue
            if escaped in "01234567":
                digits = escaped
                while len(digits) < 3 and self._peek() and self._peek() in "01234567":
                    digits += self._advance()
                value.append(chr(int(digits, 8)))
            else:
                value.append(STRING_ESCAPES.get(escaped, "\\" + escaped))

    def _regex(self, line: int, column: int) -> str:
        pattern = []
        in_bracket = False
        while True:
            if self.pos >= len(self.source) or self._peek() == "\n":
                raise self._error("unterminated regex", line, column)
            c = self._advance()
            if c == "\\":
                if self.pos >= len(self.source):
                    raise self._error("unterminated regex", line, column)
                escaped = self._advance()
                # "\/" is just a slash; other escapes are the regex's business
                pattern.append("/" if escaped == "/" else "\\" + escaped)
                continue
            if c == "[":
                in_bracket = True
            elif c == "]":
                in_bracket = False
            elif c == "/" and not in_bracket:
                return "".join(pattern)
            pattern.append(c)

    def _number(self) -> str:
        start = self.pos
        while self._peek().isdigit():
            self._advance()
        if self._peek() == ".":
            self._advance()
            while self._peek().isdigit():
                self._advance()
        if self._peek() in ("e", "E"):
            sign = 1 if self._peek(1) in ("+", "-") else 0
            if self._peek(1 + sign).isdigit():
                for _ in range(1 + sign):
                    self._advance()
                while self._peek().isdigit():
                    self._advance()
        return self.source[start:self.pos]


def tokenize(source: str) -> list[Token]:
    return Lexer(source).tokenize()
