"""Syntax tree for awk programs."""

from dataclasses import dataclass, field
from typing import Optional, Union


# Expressions


@dataclass
class NumberLiteral:
    value: float


@dataclass
class StringLiteral:
    value: str


@dataclass
class RegexLiteral:
    """A bare ``/re/``. Evaluates to a match against ``$0``."""

    pattern: str


@dataclass
class Variable:
    name: str


@dataclass
class FieldRef:
    index: "Expr"


@dataclass
class ArrayRef:
    name: str
    subscripts: list["Expr"]


@dataclass
class InExpr:
    subscripts: list["Expr"]
    array: str


@dataclass
class Grouping:
    """A parenthesized expression, or an expression list for ``(i, j) in a``."""

    expressions: list["Expr"]


@dataclass
class Unary:
    op: str
    operand: "Expr"


@dataclass
class Binary:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass
class Logical:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass
class Match:
    negated: bool
    left: "Expr"
    right: "Expr"


@dataclass
class Concat:
    left: "Expr"
    right: "Expr"


@dataclass
class Ternary:
    condition: "Expr"
    then: "Expr"
    otherwise: "Expr"


@dataclass
class Assign:
    op: str
    target: "LValue"
    value: "Expr"


@dataclass
class IncDec:
    op: str
    target: "LValue"
    prefix: bool


@dataclass
class Call:
    name: str
    args: list["Expr"]


@dataclass
class Getline:
    """``getline [var] [< file]`` or ``cmd | getline [var]``."""

    target: Optional["LValue"] = None
    file: Optional["Expr"] = None
    command: Optional["Expr"] = None


LValue = Union[Variable, FieldRef, ArrayRef]

Expr = Union[
    NumberLiteral,
    StringLiteral,
    RegexLiteral,
    Variable,
    FieldRef,
    ArrayRef,
    InExpr,
    Grouping,
    Unary,
    Binary,
    Logical,
    Match,
    Concat,
    Ternary,
    Assign,
    IncDec,
    Call,
    Getline,
]


# Statements


@dataclass
class Block:
    statements: list["Stmt"] = field(default_factory=list)


@dataclass
class ExprStmt:
    expr: Expr


@dataclass
class Print:
    args: list[Expr]
    redirect: Optional[str] = None  # ">", ">>" or "|"
    target: Optional[Expr] = None


@dataclass
class Printf:
    args: list[Expr]
    redirect: Optional[str] = None
    target: Optional[Expr] = None


@dataclass
class If:
    condition: Expr
    then: "Stmt"
    otherwise: Optional["Stmt"] = None


@dataclass
class While:
    condition: Expr
    body: "Stmt"


@dataclass
class DoWhile:
    body: "Stmt"
    condition: Expr


@dataclass
class For:
    init: Optional[Expr]
    condition: Optional[Expr]
    update: Optional[Expr]
    body: "Stmt"


@dataclass
class ForIn:
    var: str
    array: str
    body: "Stmt"


@dataclass
class Break:
    pass


@dataclass
class Continue:
    pass


@dataclass
class Next:
    pass


@dataclass
class Exit:
    code: Optional[Expr] = None


@dataclass
class Return:
    value: Optional[Expr] = None


@dataclass
class Delete:
    array: str
    subscripts: Optional[list[Expr]] = None


Stmt = Union[
    Block,
    ExprStmt,
    Print,
    Printf,
    If,
    While,
    DoWhile,
    For,
    ForIn,
    Break,
    Continue,
    Next,
    Exit,
    Return,
    Delete,
]


# Program structure


@dataclass
class RangePattern:
    start: Expr
    end: Expr


@dataclass
class Rule:
    pattern: Union[Expr, RangePattern, None]
    action: Optional[Block]


@dataclass
class Function:
    name: str
    params: list[str]
    body: Block


@dataclass
class Program:
    begin: list[Block] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)
    end: list[Block] = field(default_factory=list)
    functions: dict[str, Function] = field(default_factory=dict)
