"""Parse tree for command lines.

Every node is frozen: a line is parsed once and the tree is never mutated
while it executes. Variable expansion happens later, against the session
environment, so ``$?`` reflects earlier pipelines of the same chain.
"""

from dataclasses import dataclass
from typing import Literal, Optional

Quoting = Literal["none", "single", "double", "escaped"]
ChainOperator = Literal["&&", "||"]


@dataclass(frozen=True)
class WordPart:
    """A run of characters sharing one quoting context.

    "none" and "double" parts are subject to ``$VAR`` expansion; "single"
    and "escaped" parts are literal.
    """

    text: str
    quoting: Quoting = "none"

    @property
    def expandable(self) -> bool:
        return self.quoting in ("none", "double")


@dataclass(frozen=True)
class Word:
    parts: tuple[WordPart, ...]

    @property
    def quoted(self) -> bool:
        return any(part.quoting != "none" for part in self.parts)

    @property
    def raw(self) -> str:
        return "".join(part.text for part in self.parts)

    @classmethod
    def literal(cls, text: str) -> "Word":
        return cls((WordPart(text, "single"),))


@dataclass(frozen=True)
class Stage:
    """One command of a pipeline with its redirects."""

    command: Word
    args: tuple[Word, ...] = ()
    input_file: Optional[Word] = None
    output_file: Optional[Word] = None
    append_file: Optional[Word] = None

    @property
    def has_redirects(self) -> bool:
        return any(r is not None for r in (self.input_file, self.output_file, self.append_file))


@dataclass(frozen=True)
class Pipeline:
    stages: tuple[Stage, ...]


@dataclass(frozen=True)
class Chain:
    """Pipelines joined by ``&&``/``||``, evaluated left to right."""

    first: Pipeline
    rest: tuple[tuple[ChainOperator, Pipeline], ...] = ()
    background: bool = False

    @property
    def pipelines(self) -> tuple[Pipeline, ...]:
        return (self.first, *(pipeline for _, pipeline in self.rest))

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(stage for pipeline in self.pipelines for stage in pipeline.stages)
