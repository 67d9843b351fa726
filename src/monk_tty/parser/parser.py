"""Recursive descent parser for command lines.

Grammar::

    chain     := pipeline (("&&" | "||") pipeline)* ["&"]
    pipeline  := stage ("|" stage)*
    stage     := (WORD | redirect)+
    redirect  := ("<" | ">" | ">>") WORD
"""

from typing import Optional

from .ast import Chain, ChainOperator, Pipeline, Stage, Word
from .lexer import ParseException, Token, TokenType, tokenize

_REDIRECTS = (TokenType.LESS, TokenType.GREAT, TokenType.DGREAT)


class Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TokenType.EOF:
            self.pos += 1
        return tok

    def check(self, *types: TokenType) -> bool:
        return self.peek().type in types

    def _unexpected(self) -> ParseException:
        return ParseException(f"syntax error near unexpected token `{self.peek().text}'")

    def parse_chain(self) -> Chain:
        first = self.parse_pipeline()
        rest: list[tuple[ChainOperator, Pipeline]] = []
        while self.check(TokenType.AND, TokenType.OR):
            op: ChainOperator = "&&" if self.advance().type == TokenType.AND else "||"
            rest.append((op, self.parse_pipeline()))
        background = False
        if self.check(TokenType.AMP):
            self.advance()
            background = True
        if not self.check(TokenType.EOF):
            raise self._unexpected()
        return Chain(first=first, rest=tuple(rest), background=background)

    def parse_pipeline(self) -> Pipeline:
        stages = [self.parse_stage()]
        while self.check(TokenType.PIPE):
            self.advance()
            stages.append(self.parse_stage())
        return Pipeline(tuple(stages))

    def parse_stage(self) -> Stage:
        words: list[Word] = []
        input_file: Optional[Word] = None
        output_file: Optional[Word] = None
        append_file: Optional[Word] = None
        while True:
            tok = self.peek()
            if tok.type == TokenType.WORD:
                words.append(self.advance().word)
            elif tok.type in _REDIRECTS:
                self.advance()
                if not self.check(TokenType.WORD):
                    raise ParseException(
                        f"syntax error: missing redirect target after `{tok.text}'"
                    )
                target = self.advance().word
                if tok.type == TokenType.LESS:
                    input_file = target
                elif tok.type == TokenType.GREAT:
                    output_file, append_file = target, None
                else:
                    append_file, output_file = target, None
            else:
                break
        if not words:
            raise self._unexpected()
        return Stage(
            command=words[0],
            args=tuple(words[1:]),
            input_file=input_file,
            output_file=output_file,
            append_file=append_file,
        )


def parse_command(line: str) -> Optional[Chain]:
    """Parse a command line. Returns None for blank or comment-only input."""
    tokens = tokenize(line)
    if tokens[0].type == TokenType.EOF:
        return None
    return Parser(tokens).parse_chain()
