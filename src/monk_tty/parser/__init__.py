"""Command-line parser and word expansion."""

from .ast import Chain, Pipeline, Stage, Word, WordPart
from .expansion import (
    expand_glob,
    expand_variables,
    expand_word,
    expand_words,
    glob_to_regex,
)
from .lexer import Lexer, ParseException, Token, TokenType, tokenize
from .parser import Parser, parse_command

__all__ = [
    # AST
    "Chain",
    "Pipeline",
    "Stage",
    "Word",
    "WordPart",
    # Lexer
    "Lexer",
    "ParseException",
    "Token",
    "TokenType",
    "tokenize",
    # Parser
    "Parser",
    "parse_command",
    # Expansion
    "expand_glob",
    "expand_variables",
    "expand_word",
    "expand_words",
    "glob_to_regex",
]
