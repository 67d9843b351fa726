"""Tree-walking interpreter for awk programs.

Statements report how they finished through ``Outcome`` values instead of
exceptions. A ``next`` or ``exit`` executed inside a user function cannot
travel back through the expression that called it, so it is parked in
``_pending`` and picked up by the statement that owns that expression.
"""

import asyncio
import logging
import math
import re
from typing import Callable, Optional, Union

from ...fs import FileSystem, FSError
from ...session import Session
from ...streams import CommandIO
from ...types import ExecutionLimits
from . import ast
from . import builtins as bi
from .builtins import UNSET
from .lexer import STRING_ESCAPES
from .types import (
    BREAK,
    CONTINUE,
    NEXT,
    NORMAL,
    AwkRuntimeError,
    AwkStackDepthError,
    AwkValue,
    Flow,
    Outcome,
)

logger = logging.getLogger(__name__)

_ASSIGNMENT_OPERAND = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)=(.*)$", re.DOTALL)

_COMPARISONS = {
    "<": lambda c: c < 0,
    "<=": lambda c: c <= 0,
    ">": lambda c: c > 0,
    ">=": lambda c: c >= 0,
    "==": lambda c: c == 0,
    "!=": lambda c: c != 0,
}

# Minimum and maximum argument counts of the built-in functions.
_ARITY = {
    "length": (0, 1),
    "substr": (2, 3),
    "index": (2, 2),
    "split": (2, 3),
    "sub": (2, 3),
    "gsub": (2, 3),
    "match": (2, 2),
    "tolower": (1, 1),
    "toupper": (1, 1),
    "sprintf": (1, None),
    "rand": (0, 0),
    "srand": (0, 1),
    "system": (1, 1),
    "close": (1, 1),
    "fflush": (0, 1),
}


class _Untyped:
    """A parameter or argument not yet used as either a scalar or an array.

    Arrays are passed to functions by reference. When a function first uses
    an untyped parameter as an array, the array is created in the scope that
    owns the original name so the caller sees it.
    """

    __slots__ = ("owner", "name", "array")

    def __init__(self, owner: Optional[dict], name: str):
        self.owner = owner
        self.name = name
        self.array: Optional[dict[str, AwkValue]] = None

    def materialize(self, interpreter: "AwkInterpreter") -> dict[str, AwkValue]:
        if self.array is not None:
            return self.array
        if self.owner is None:
            self.array = interpreter.arrays.setdefault(self.name, {})
            return self.array
        existing = self.owner.get(self.name)
        if isinstance(existing, dict):
            self.array = existing
        elif isinstance(existing, _Untyped) and existing is not self:
            self.array = existing.materialize(interpreter)
        else:
            self.array = {}
        self.owner[self.name] = self.array
        return self.array


Slot = Union[AwkValue, dict, _Untyped]


def unescape(text: str) -> str:
    """Process backslash escapes in command-line assignments and -F."""
    out = []
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt in STRING_ESCAPES:
                out.append(STRING_ESCAPES[nxt])
                i += 2
                continue
            if nxt in "01234567":
                j = i + 1
                while j < len(text) and j < i + 4 and text[j] in "01234567":
                    j += 1
                out.append(chr(int(text[i + 1:j], 8)))
                i = j
                continue
        out.append(c)
        i += 1
    return "".join(out)


class AwkInterpreter:
    """Runs one parsed program against one set of inputs."""

    def __init__(
        self,
        program: ast.Program,
        *,
        session: Session,
        fs: Optional[FileSystem],
        io: CommandIO,
        operands: Optional[list[str]] = None,
        assignments: Optional[list[tuple[str, str]]] = None,
        field_separator: Optional[str] = None,
        limits: Optional[ExecutionLimits] = None,
    ):
        self.program = program
        self.session = session
        self.fs = fs
        self.io = io
        self.limits = limits or ExecutionLimits()

        self.globals: dict[str, AwkValue] = {
            "FS": " ",
            "OFS": " ",
            "ORS": "\n",
            "RS": "\n",
            "NR": 0.0,
            "FNR": 0.0,
            "FILENAME": "",
            "SUBSEP": "\x1c",
            "RSTART": 0.0,
            "RLENGTH": -1.0,
            "CONVFMT": bi.DEFAULT_NUMBER_FORMAT,
            "OFMT": bi.DEFAULT_NUMBER_FORMAT,
        }
        self.arrays: dict[str, dict[str, AwkValue]] = {}
        self.frames: list[dict[str, Slot]] = []
        self.fields: list[str] = [""]
        self.random = bi.RandomState()
        self.exit_code = 0
        self.input_failed = False

        self._operands = list(operands or [])
        self._operand_index = 0
        self._has_file_operands = any(
            not _ASSIGNMENT_OPERAND.match(op) for op in self._operands
        )
        self._stdin_used = False
        self._records: list[str] = []
        self._record_index = 0
        self._ranges: dict[int, bool] = {}
        self._pending: Optional[Outcome] = None
        self._ticks = 0
        self._open_outputs: set[str] = set()
        self._getline_files: dict[str, tuple[list[str], int]] = {}

        self.arrays["ENVIRON"] = {
            name: value for name, value in session.env.items() if name != "?"
        }
        self.arrays["ARGV"] = {"0": "awk"}
        for i, operand in enumerate(self._operands, start=1):
            self.arrays["ARGV"][str(i)] = operand
        self.globals["ARGC"] = float(len(self._operands) + 1)

        if field_separator is not None:
            self.globals["FS"] = field_separator
        for name, value in assignments or []:
            self.globals[name] = unescape(value)

    # Entry point

    async def run(self) -> int:
        for block in self.program.begin:
            outcome = await self.exec_block(block.statements)
            if outcome.flow is Flow.EXIT:
                return self._final_code()
            self._pending = None

        if self.program.rules or self.program.end:
            while True:
                self.io.check_cancelled()
                record = await self.next_record()
                if record is None:
                    break
                self.set_record(record)
                outcome = await self.run_rules()
                if outcome.flow is Flow.EXIT:
                    break

            # exit in a main rule still runs END; exit in END stops it
            self._pending = None
            for block in self.program.end:
                outcome = await self.exec_block(block.statements)
                if outcome.flow is Flow.EXIT:
                    break
                self._pending = None
        logger.debug("awk program finished after %d statements", self._ticks)
        return self._final_code()

    def _final_code(self) -> int:
        if self.exit_code:
            return self.exit_code
        return 2 if self.input_failed else 0

    async def run_rules(self) -> Outcome:
        for i, rule in enumerate(self.program.rules):
            matched = await self._rule_matches(i, rule)
            if self._pending is not None:
                # a function in the pattern ran next or exit
                outcome = self._pending
            elif not matched:
                continue
            elif rule.action is None:
                await self._output(self._ors_terminated(self.fields[0]), None, None)
                continue
            else:
                outcome = await self.exec_block(rule.action.statements)
            if outcome.flow is Flow.NEXT:
                self._pending = None
                return NORMAL
            if outcome.flow is Flow.EXIT:
                return outcome
        return NORMAL

    async def _rule_matches(self, index: int, rule: ast.Rule) -> bool:
        pattern = rule.pattern
        if pattern is None:
            return True
        if not isinstance(pattern, ast.RangePattern):
            return bi.to_bool(await self.eval(pattern))
        if not self._ranges.get(index):
            if not bi.to_bool(await self.eval(pattern.start)):
                return False
            self._ranges[index] = True
        if bi.to_bool(await self.eval(pattern.end)):
            self._ranges[index] = False
        return True

    # Input

    async def next_record(self) -> Optional[str]:
        """Return the next main-input record, advancing NR and FNR."""
        while self._record_index >= len(self._records):
            if not await self._open_next_input():
                return None
        record = self._records[self._record_index]
        self._record_index += 1
        self.globals["NR"] = bi.to_number(self.globals["NR"]) + 1
        self.globals["FNR"] = bi.to_number(self.globals["FNR"]) + 1
        return record

    async def _open_next_input(self) -> bool:
        while self._operand_index < len(self._operands):
            operand = self._operands[self._operand_index]
            self._operand_index += 1
            m = _ASSIGNMENT_OPERAND.match(operand)
            if m:
                self.set_var(m.group(1), unescape(m.group(2)))
                continue
            if operand == "":
                continue
            if operand == "-":
                text = await self._read_stdin()
            else:
                text = await self._read_file(operand)
                if text is None:
                    continue
            self._start_input(operand, text)
            return True

        if not self._has_file_operands and not self._stdin_used:
            self._start_input("", await self._read_stdin())
            return True
        return False

    def _start_input(self, name: str, text: str) -> None:
        self.globals["FILENAME"] = name
        self.globals["FNR"] = 0.0
        self._records = bi.split_records(text, bi.to_str(self.globals["RS"]))
        self._record_index = 0

    async def _read_stdin(self) -> str:
        if self._stdin_used:
            return ""
        self._stdin_used = True
        return await self.io.read_stdin()

    async def _read_file(self, name: str) -> Optional[str]:
        if self.fs is None:
            self.io.stderr.write(f"awk: {name}: no filesystem available\n")
            self.input_failed = True
            return None
        try:
            data = await self.fs.read(self.fs.resolve_path(self.session.cwd, name))
        except FSError as e:
            logger.debug("awk input %s unreadable: %s", name, e.code)
            self.io.stderr.write(f"awk: {name}: {e.message}\n")
            self.input_failed = True
            return None
        return data.decode("utf-8", errors="replace")

    # Fields

    @property
    def paragraph_mode(self) -> bool:
        return self.globals["RS"] == ""

    def set_record(self, text: str) -> None:
        self.fields = [text] + bi.split_fields(
            text, bi.to_str(self.globals["FS"]), self.paragraph_mode
        )

    def get_field(self, index: float) -> AwkValue:
        i = self._field_index(index)
        if i < len(self.fields):
            return self.fields[i]
        return UNSET

    def set_field(self, index: float, value: AwkValue) -> None:
        i = self._field_index(index)
        text = self.to_str(value)
        if i == 0:
            self.set_record(text)
            return
        while len(self.fields) <= i:
            self.fields.append("")
        self.fields[i] = text
        self._rebuild_record()

    def set_nf(self, value: AwkValue) -> None:
        n = int(bi.truncate(bi.to_number(value)))
        if n < 0:
            raise AwkRuntimeError(f"NF set to negative value {n}")
        del self.fields[n + 1:]
        while len(self.fields) <= n:
            self.fields.append("")
        self._rebuild_record()

    def _rebuild_record(self) -> None:
        self.fields[0] = self.to_str(self.globals["OFS"]).join(self.fields[1:])

    @staticmethod
    def _field_index(index: float) -> int:
        if math.isnan(index) or math.isinf(index):
            raise AwkRuntimeError(f"invalid field index {index}")
        i = int(index)
        if i < 0:
            raise AwkRuntimeError(f"attempt to access field {i}")
        return i

    # Variables and arrays

    def to_str(self, value: AwkValue) -> str:
        return bi.to_str(value, bi.to_str(self.globals["CONVFMT"]))

    def output_str(self, value: AwkValue) -> str:
        return bi.to_str(value, bi.to_str(self.globals["OFMT"]))

    def get_var(self, name: str) -> AwkValue:
        if self.frames and name in self.frames[-1]:
            slot = self.frames[-1][name]
            if isinstance(slot, dict):
                raise AwkRuntimeError(f"attempt to use array '{name}' in a scalar context")
            if isinstance(slot, _Untyped):
                return UNSET
            return slot
        if name == "NF":
            return float(len(self.fields) - 1)
        if name in self.arrays:
            raise AwkRuntimeError(f"attempt to use array '{name}' in a scalar context")
        return self.globals.get(name, UNSET)

    def set_var(self, name: str, value: AwkValue) -> None:
        if self.frames and name in self.frames[-1]:
            if isinstance(self.frames[-1][name], dict):
                raise AwkRuntimeError(f"attempt to use array '{name}' in a scalar context")
            self.frames[-1][name] = value
            return
        if name == "NF":
            self.set_nf(value)
            return
        if name in self.arrays:
            raise AwkRuntimeError(f"attempt to use array '{name}' in a scalar context")
        self.globals[name] = value

    def get_array(self, name: str) -> dict[str, AwkValue]:
        if self.frames and name in self.frames[-1]:
            frame = self.frames[-1]
            slot = frame[name]
            if isinstance(slot, dict):
                return slot
            if isinstance(slot, _Untyped):
                array = slot.materialize(self)
                frame[name] = array
                return array
            raise AwkRuntimeError(f"attempt to use scalar '{name}' as an array")
        if name in self.globals:
            raise AwkRuntimeError(f"attempt to use scalar '{name}' as an array")
        return self.arrays.setdefault(name, {})

    async def subscript(self, subscripts: list[ast.Expr]) -> str:
        if len(subscripts) == 1:
            return self.to_str(await self.eval(subscripts[0]))
        parts = [self.to_str(await self.eval(expr)) for expr in subscripts]
        return self.to_str(self.globals["SUBSEP"]).join(parts)

    async def lvalue(self, target: ast.Expr) -> tuple[Callable[[], AwkValue], Callable[[AwkValue], None]]:
        """Resolve an assignable expression once into a getter and a setter."""
        if isinstance(target, ast.Variable):
            name = target.name
            return (lambda: self.get_var(name)), (lambda value: self.set_var(name, value))
        if isinstance(target, ast.FieldRef):
            index = bi.to_number(await self.eval(target.index))
            return (lambda: self.get_field(index)), (lambda value: self.set_field(index, value))
        if isinstance(target, ast.ArrayRef):
            key = await self.subscript(target.subscripts)
            array = self.get_array(target.name)
            return (lambda: array.setdefault(key, UNSET)), (lambda value: array.__setitem__(key, value))
        raise AwkRuntimeError("assignment to non-variable")

    async def assign(self, target: ast.Expr, value: AwkValue) -> None:
        _, setter = await self.lvalue(target)
        setter(value)

    # Statements

    async def _tick(self) -> None:
        self.io.check_cancelled()
        self._ticks += 1
        if self._ticks % self.limits.awk_yield_interval == 0:
            await asyncio.sleep(0)

    async def exec_block(self, statements: list[ast.Stmt]) -> Outcome:
        for stmt in statements:
            outcome = await self.exec_stmt(stmt)
            if not outcome.normal:
                return outcome
        return NORMAL

    async def exec_stmt(self, stmt: ast.Stmt) -> Outcome:
        await self._tick()
        outcome = await self._execute(stmt)
        if outcome.normal and self._pending is not None:
            return self._pending
        return outcome

    async def _execute(self, stmt: ast.Stmt) -> Outcome:
        if isinstance(stmt, ast.ExprStmt):
            await self.eval(stmt.expr)
            return NORMAL
        if isinstance(stmt, ast.Print):
            if stmt.args:
                values = [self.output_str(await self.eval(arg)) for arg in stmt.args]
                text = self.to_str(self.globals["OFS"]).join(values)
            else:
                text = self.fields[0]
            await self._output(self._ors_terminated(text), stmt.redirect, stmt.target)
            return NORMAL
        if isinstance(stmt, ast.Printf):
            values = [await self.eval(arg) for arg in stmt.args]
            text = bi.format_printf(self.to_str(values[0]), values[1:], bi.to_str(self.globals["CONVFMT"]))
            await self._output(text, stmt.redirect, stmt.target)
            return NORMAL
        if isinstance(stmt, ast.Block):
            return await self.exec_block(stmt.statements)
        if isinstance(stmt, ast.If):
            if bi.to_bool(await self.eval(stmt.condition)):
                return await self.exec_stmt(stmt.then)
            if stmt.otherwise is not None:
                return await self.exec_stmt(stmt.otherwise)
            return NORMAL
        if isinstance(stmt, ast.While):
            while bi.to_bool(await self.eval(stmt.condition)):
                outcome = await self._loop_body(stmt.body)
                if outcome is BREAK:
                    break
                if outcome is not None:
                    return outcome
            return NORMAL
        if isinstance(stmt, ast.DoWhile):
            while True:
                outcome = await self._loop_body(stmt.body)
                if outcome is BREAK:
                    break
                if outcome is not None:
                    return outcome
                if not bi.to_bool(await self.eval(stmt.condition)):
                    break
            return NORMAL
        if isinstance(stmt, ast.For):
            if stmt.init is not None:
                await self.eval(stmt.init)
            while stmt.condition is None or bi.to_bool(await self.eval(stmt.condition)):
                outcome = await self._loop_body(stmt.body)
                if outcome is BREAK:
                    break
                if outcome is not None:
                    return outcome
                if stmt.update is not None:
                    await self.eval(stmt.update)
            return NORMAL
        if isinstance(stmt, ast.ForIn):
            array = self.get_array(stmt.array)
            for key in list(array):
                if key not in array:
                    continue
                self.set_var(stmt.var, key)
                outcome = await self._loop_body(stmt.body)
                if outcome is BREAK:
                    break
                if outcome is not None:
                    return outcome
            return NORMAL
        if isinstance(stmt, ast.Break):
            return BREAK
        if isinstance(stmt, ast.Continue):
            return CONTINUE
        if isinstance(stmt, ast.Next):
            if self.frames:
                self._pending = NEXT
            return NEXT
        if isinstance(stmt, ast.Exit):
            if stmt.code is not None:
                self.exit_code = int(bi.truncate(bi.to_number(await self.eval(stmt.code)))) & 0xFF
            self._pending = Outcome(Flow.EXIT)
            return self._pending
        if isinstance(stmt, ast.Return):
            value = UNSET if stmt.value is None else await self.eval(stmt.value)
            return Outcome(Flow.RETURN, value)
        if isinstance(stmt, ast.Delete):
            array = self.get_array(stmt.array)
            if stmt.subscripts is None:
                array.clear()
            else:
                array.pop(await self.subscript(stmt.subscripts), None)
            return NORMAL
        raise AwkRuntimeError(f"unknown statement {type(stmt).__name__}")

    async def _loop_body(self, body: ast.Stmt) -> Optional[Outcome]:
        """Run one iteration. Returns None to keep looping, BREAK, or an outcome to propagate."""
        if self._pending is not None:
            return self._pending
        outcome = await self.exec_stmt(body)
        if outcome.flow is Flow.BREAK:
            return BREAK
        if outcome.flow in (Flow.NORMAL, Flow.CONTINUE):
            return self._pending
        return outcome

    # Output

    def _ors_terminated(self, text: str) -> str:
        return text + self.to_str(self.globals["ORS"])

    async def _output(self, text: str, redirect: Optional[str], target: Optional[ast.Expr]) -> None:
        if redirect is None or redirect == "|":
            # commands are never spawned from awk; piped output goes to stdout
            self.io.stdout.write(text)
            return
        name = self.to_str(await self.eval(target))
        if name in ("/dev/stdout", "-"):
            self.io.stdout.write(text)
            return
        if name == "/dev/stderr":
            self.io.stderr.write(text)
            return
        if self.fs is None:
            raise AwkRuntimeError(f"can't redirect to '{name}': no filesystem available")
        path = self.fs.resolve_path(self.session.cwd, name)
        try:
            if name not in self._open_outputs and redirect == ">":
                await self.fs.write(path, text)
            else:
                await self.fs.append(path, text)
        except FSError as e:
            raise AwkRuntimeError(f"can't redirect to '{name}': {e.message}") from e
        self._open_outputs.add(name)

    # Expressions

    async def eval(self, expr: ast.Expr) -> AwkValue:
        if isinstance(expr, ast.NumberLiteral):
            return expr.value
        if isinstance(expr, ast.StringLiteral):
            return expr.value
        if isinstance(expr, ast.Variable):
            return self.get_var(expr.name)
        if isinstance(expr, ast.FieldRef):
            return self.get_field(bi.to_number(await self.eval(expr.index)))
        if isinstance(expr, ast.ArrayRef):
            key = await self.subscript(expr.subscripts)
            array = self.get_array(expr.name)
            if key not in array:
                array[key] = UNSET
            return array[key]
        if isinstance(expr, ast.Binary):
            return await self._eval_binary(expr)
        if isinstance(expr, ast.Concat):
            left = self.to_str(await self.eval(expr.left))
            return left + self.to_str(await self.eval(expr.right))
        if isinstance(expr, ast.Assign):
            return await self._eval_assign(expr)
        if isinstance(expr, ast.Logical):
            left = bi.to_bool(await self.eval(expr.left))
            if expr.op == "&&":
                result = left and bi.to_bool(await self.eval(expr.right))
            else:
                result = left or bi.to_bool(await self.eval(expr.right))
            return 1.0 if result else 0.0
        if isinstance(expr, ast.Unary):
            value = await self.eval(expr.operand)
            if expr.op == "!":
                return 0.0 if bi.to_bool(value) else 1.0
            number = bi.to_number(value)
            return -number if expr.op == "-" else number
        if isinstance(expr, ast.Match):
            text = self.to_str(await self.eval(expr.left))
            regex = await self._regex_operand(expr.right)
            found = regex.search(text) is not None
            return 1.0 if found != expr.negated else 0.0
        if isinstance(expr, ast.RegexLiteral):
            return 1.0 if self._static_regex(expr.pattern).search(self.fields[0]) else 0.0
        if isinstance(expr, ast.Ternary):
            if bi.to_bool(await self.eval(expr.condition)):
                return await self.eval(expr.then)
            return await self.eval(expr.otherwise)
        if isinstance(expr, ast.IncDec):
            getter, setter = await self.lvalue(expr.target)
            old = bi.to_number(getter())
            new = old + 1 if expr.op == "++" else old - 1
            setter(new)
            return new if expr.prefix else old
        if isinstance(expr, ast.Grouping):
            if len(expr.expressions) != 1:
                raise AwkRuntimeError("expression list used outside of 'in'")
            return await self.eval(expr.expressions[0])
        if isinstance(expr, ast.InExpr):
            key = await self.subscript(expr.subscripts)
            return 1.0 if key in self.get_array(expr.array) else 0.0
        if isinstance(expr, ast.Call):
            return await self._eval_call(expr)
        if isinstance(expr, ast.Getline):
            return await self._eval_getline(expr)
        raise AwkRuntimeError(f"unknown expression {type(expr).__name__}")

    async def _eval_binary(self, expr: ast.Binary) -> AwkValue:
        left = await self.eval(expr.left)
        right = await self.eval(expr.right)
        op = expr.op
        if op in ("<", "<=", ">", ">=", "==", "!="):
            c = bi.compare(left, right, bi.to_str(self.globals["CONVFMT"]))
            return 1.0 if _COMPARISONS[op](c) else 0.0
        return self._arithmetic(op, bi.to_number(left), bi.to_number(right))

    @staticmethod
    def _arithmetic(op: str, a: float, b: float) -> float:
        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if op == "/":
            return a / b if b != 0 else 0.0
        if op == "%":
            return math.fmod(a, b) if b != 0 else 0.0
        if op == "^":
            return bi.power(a, b)
        raise AwkRuntimeError(f"unknown operator '{op}'")

    async def _eval_assign(self, expr: ast.Assign) -> AwkValue:
        value = await self.eval(expr.value)
        getter, setter = await self.lvalue(expr.target)
        if expr.op != "=":
            value = self._arithmetic(expr.op[0], bi.to_number(getter()), bi.to_number(value))
        setter(value)
        return value

    def _static_regex(self, pattern: str) -> "re.Pattern[str]":
        try:
            return bi.compile_regex(pattern)
        except re.error as e:
            raise AwkRuntimeError(f"invalid regex /{pattern}/: {e}") from e

    async def _regex_operand(self, expr: ast.Expr) -> "re.Pattern[str]":
        if isinstance(expr, ast.RegexLiteral):
            return self._static_regex(expr.pattern)
        return self._static_regex(self.to_str(await self.eval(expr)))

    async def _builtin_regex(self, expr: ast.Expr) -> Optional["re.Pattern[str]"]:
        if isinstance(expr, ast.RegexLiteral):
            return bi.try_compile(expr.pattern)
        return bi.try_compile(self.to_str(await self.eval(expr)))

    # Function calls

    async def _eval_call(self, expr: ast.Call) -> AwkValue:
        if self._pending is not None:
            return UNSET
        function = self.program.functions.get(expr.name)
        if function is not None:
            return await self._call_user(function, expr.args)
        return await self._call_builtin(expr.name, expr.args)

    async def _argument(self, arg: ast.Expr) -> Slot:
        """Evaluate a call argument. Arrays and untyped names pass by reference."""
        if not isinstance(arg, ast.Variable):
            return await self.eval(arg)
        name = arg.name
        if self.frames and name in self.frames[-1]:
            slot = self.frames[-1][name]
            if isinstance(slot, _Untyped) and slot.array is not None:
                return slot.array
            return slot
        if name in self.arrays:
            return self.arrays[name]
        if name in self.globals or name == "NF":
            return self.get_var(name)
        return _Untyped(None, name)

    async def _call_user(self, function: ast.Function, args: list[ast.Expr]) -> AwkValue:
        if len(args) > len(function.params):
            raise AwkRuntimeError(
                f"function '{function.name}' called with {len(args)} args, accepts only {len(function.params)}"
            )
        if len(self.frames) >= self.limits.max_awk_call_depth:
            raise AwkStackDepthError(self.limits.max_awk_call_depth)

        frame: dict[str, Slot] = {}
        for i, param in enumerate(function.params):
            if i < len(args):
                frame[param] = await self._argument(args[i])
            else:
                frame[param] = _Untyped(frame, param)

        self.frames.append(frame)
        try:
            outcome = await self.exec_block(function.body.statements)
        finally:
            self.frames.pop()

        if outcome.flow is Flow.RETURN:
            return outcome.value
        if outcome.flow in (Flow.EXIT, Flow.NEXT):
            self._pending = outcome
        return UNSET

    async def _call_builtin(self, name: str, args: list[ast.Expr]) -> AwkValue:
        if name in bi.MATH_FUNCTIONS:
            arity, fn = bi.MATH_FUNCTIONS[name]
            if len(args) != arity:
                raise AwkRuntimeError(f"{name}: expected {arity} argument(s)")
            values = [bi.to_number(await self.eval(arg)) for arg in args]
            return fn(*values)
        if name not in _ARITY:
            raise AwkRuntimeError(f"function '{name}' not defined")
        low, high = _ARITY[name]
        if len(args) < low or (high is not None and len(args) > high):
            raise AwkRuntimeError(f"{name}: wrong number of arguments")

        if name == "length":
            if not args:
                return float(len(self.fields[0]))
            arg = args[0]
            if isinstance(arg, ast.Variable) and self._names_array(arg.name):
                return float(len(self.get_array(arg.name)))
            return float(len(self.to_str(await self.eval(arg))))
        if name == "substr":
            text = self.to_str(await self.eval(args[0]))
            start = bi.to_number(await self.eval(args[1]))
            length = bi.to_number(await self.eval(args[2])) if len(args) > 2 else None
            return bi.substr(text, start, length)
        if name == "index":
            text = self.to_str(await self.eval(args[0]))
            return bi.index(text, self.to_str(await self.eval(args[1])))
        if name == "split":
            return await self._split(args)
        if name in ("sub", "gsub"):
            return await self._substitute(args, global_=name == "gsub")
        if name == "match":
            text = self.to_str(await self.eval(args[0]))
            regex = await self._builtin_regex(args[1])
            start, length = bi.match(text, regex) if regex is not None else (0.0, -1.0)
            self.globals["RSTART"] = start
            self.globals["RLENGTH"] = length
            return start
        if name == "tolower":
            return self.to_str(await self.eval(args[0])).lower()
        if name == "toupper":
            return self.to_str(await self.eval(args[0])).upper()
        if name == "sprintf":
            values = [await self.eval(arg) for arg in args]
            return bi.format_printf(self.to_str(values[0]), values[1:], bi.to_str(self.globals["CONVFMT"]))
        if name == "rand":
            return self.random.rand()
        if name == "srand":
            seed = bi.to_number(await self.eval(args[0])) if args else None
            return self.random.srand(seed)
        if name == "system":
            await self.eval(args[0])
            return -1.0
        if name == "close":
            target = self.to_str(await self.eval(args[0]))
            self._open_outputs.discard(target)
            self._getline_files.pop(target, None)
            return 0.0
        # fflush
        for arg in args:
            await self.eval(arg)
        return 0.0

    def _names_array(self, name: str) -> bool:
        if self.frames and name in self.frames[-1]:
            slot = self.frames[-1][name]
            return isinstance(slot, dict) or (isinstance(slot, _Untyped) and slot.array is not None)
        return name in self.arrays

    async def _split(self, args: list[ast.Expr]) -> AwkValue:
        text = self.to_str(await self.eval(args[0]))
        target = args[1]
        if not isinstance(target, ast.Variable):
            raise AwkRuntimeError("split: second argument is not an array")
        if len(args) > 2 and isinstance(args[2], ast.RegexLiteral):
            regex = bi.try_compile(args[2].pattern)
            if regex is None:
                return 0.0
            parts = bi.regex_split(regex, text) if text else []
        else:
            separator = self.to_str(await self.eval(args[2])) if len(args) > 2 else self.to_str(self.globals["FS"])
            parts = bi.split_fields(text, separator)
        array = self.get_array(target.name)
        array.clear()
        for i, part in enumerate(parts, start=1):
            array[str(i)] = part
        return float(len(parts))

    async def _substitute(self, args: list[ast.Expr], global_: bool) -> AwkValue:
        regex = await self._builtin_regex(args[0])
        replacement = self.to_str(await self.eval(args[1]))
        target = args[2] if len(args) > 2 else ast.FieldRef(ast.NumberLiteral(0.0))
        if isinstance(target, ast.Grouping) and len(target.expressions) == 1:
            target = target.expressions[0]
        text = self.to_str(await self.eval(target))
        if regex is None:
            return 0.0
        count, result = bi.substitute(regex, replacement, text, global_)
        if count and isinstance(target, (ast.Variable, ast.FieldRef, ast.ArrayRef)):
            await self.assign(target, result)
        return float(count)

    # getline

    async def _eval_getline(self, expr: ast.Getline) -> AwkValue:
        if expr.command is not None:
            # commands are never spawned from awk, so they produce no lines
            await self.eval(expr.command)
            return 0.0

        if expr.file is None:
            record = await self.next_record()
            if record is None:
                return 0.0
            if expr.target is None:
                self.set_record(record)
            else:
                await self.assign(expr.target, record)
            return 1.0

        name = self.to_str(await self.eval(expr.file))
        if name not in self._getline_files:
            if name in ("-", "/dev/stdin"):
                text = await self._read_stdin()
            else:
                if self.fs is None:
                    return -1.0
                try:
                    data = await self.fs.read(self.fs.resolve_path(self.session.cwd, name))
                except FSError:
                    return -1.0
                text = data.decode("utf-8", errors="replace")
            self._getline_files[name] = (bi.split_records(text, self.to_str(self.globals["RS"])), 0)
        records, position = self._getline_files[name]
        if position >= len(records):
            return 0.0
        self._getline_files[name] = (records, position + 1)
        if expr.target is None:
            self.set_record(records[position])
        else:
            await self.assign(expr.target, records[position])
        return 1.0
