"""Value coercion, formatting, regex handling and string built-ins for awk."""

import math
import re
import time
from functools import lru_cache
from typing import Optional

from ...parser.expansion import POSIX_CLASSES
from .types import AwkValue

DEFAULT_NUMBER_FORMAT = "%.6g"

_NUMERIC_RE = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\s*$")
_NUMBER_PREFIX_RE = re.compile(r"^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")
_PRINTF_SPEC_RE = re.compile(r"([-+ #0]*)(\*|\d+)?(?:\.(\*|\d*))?([diouxXeEfFgGsc])")


class Uninitialized(str):
    """The value of a variable, element or field that was never set.

    It is the empty string, but compares as a number against numbers.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"


UNSET = Uninitialized()


def looks_numeric(value: AwkValue) -> bool:
    if isinstance(value, float):
        return True
    if value is UNSET:
        return True
    return bool(_NUMERIC_RE.match(value))


def to_number(value: AwkValue) -> float:
    if isinstance(value, float):
        return value
    m = _NUMBER_PREFIX_RE.match(value)
    if not m:
        return 0.0
    return float(m.group(0))


def format_number(value: float, fmt: str = DEFAULT_NUMBER_FORMAT) -> str:
    """Integral values print as integers, everything else through ``fmt``."""
    if math.isnan(value):
        return "nan" if math.copysign(1, value) > 0 else "-nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == int(value):
        return str(int(value))
    try:
        return fmt % value
    except (TypeError, ValueError):
        return DEFAULT_NUMBER_FORMAT % value


def to_str(value: AwkValue, fmt: str = DEFAULT_NUMBER_FORMAT) -> str:
    if isinstance(value, float):
        return format_number(value, fmt)
    return value


def to_bool(value: AwkValue) -> bool:
    if isinstance(value, float):
        return value != 0
    return value != ""


def compare(left: AwkValue, right: AwkValue, convfmt: str = DEFAULT_NUMBER_FORMAT) -> int:
    """Three-way comparison: numeric when both sides look numeric."""
    if looks_numeric(left) and looks_numeric(right):
        a, b = to_number(left), to_number(right)
    else:
        a, b = to_str(left, convfmt), to_str(right, convfmt)
    return (a > b) - (a < b)


def truncate(value: float) -> float:
    if math.isnan(value) or math.isinf(value):
        return value
    return float(math.trunc(value))


# Regular expressions


def translate_regex(pattern: str) -> str:
    """Rewrite POSIX bracket classes into a form ``re`` understands."""
    if "[:" not in pattern:
        return pattern
    for posix, chars in POSIX_CLASSES.items():
        pattern = pattern.replace(posix, chars)
    return pattern


@lru_cache(maxsize=256)
def compile_regex(pattern: str) -> "re.Pattern[str]":
    """Compile an awk extended regex. Raises ``re.error`` when invalid."""
    return re.compile(translate_regex(pattern))


def try_compile(pattern: str) -> Optional["re.Pattern[str]"]:
    try:
        return compile_regex(pattern)
    except re.error:
        return None


# Splitting


def regex_split(regex: "re.Pattern[str]", text: str) -> list[str]:
    """Split on every non-empty match, ignoring any groups in the pattern."""
    parts = []
    last = 0
    for m in regex.finditer(text):
        if m.end() == m.start():
            continue
        parts.append(text[last:m.start()])
        last = m.end()
    parts.append(text[last:])
    return parts


def split_fields(text: str, separator: str, paragraph: bool = False) -> list[str]:
    """Split a record or string the way FS does.

    A single space splits on runs of whitespace and ignores leading and
    trailing blanks. An empty separator splits into characters. Any other
    single character is literal, and longer separators are regexes. In
    paragraph mode newline always separates fields too.
    """
    if text == "":
        return []
    if separator == " ":
        return text.split()
    if separator == "":
        return list(text)
    if len(separator) == 1 and separator != "\\":
        pattern = re.escape(separator)
    else:
        pattern = separator
    if paragraph:
        pattern = f"(?:{pattern})|\n"
    regex = try_compile(pattern)
    if regex is None:
        return text.split(separator)
    return regex_split(regex, text)


def split_records(text: str, separator: str) -> list[str]:
    """Split input into records by RS. One trailing empty record is dropped."""
    if text == "":
        return []
    if separator == "":
        text = text.strip("\n")
        if not text:
            return []
        return re.split(r"\n\n+", text)
    if len(separator) == 1:
        records = text.split(separator)
    else:
        regex = try_compile(separator)
        records = regex_split(regex, text) if regex is not None else text.split(separator)
    if records and records[-1] == "":
        records.pop()
    return records


# String functions


def _round_position(value: float) -> float:
    if math.isnan(value):
        return 0.0
    if math.isinf(value):
        return value
    return float(round(value))


def substr(text: str, start: float, length: Optional[float] = None) -> str:
    """Characters from 1-based position ``start``, clipped to the string."""
    begin = _round_position(start)
    if length is None:
        end = float(len(text) + 1)
    else:
        end = begin + _round_position(length)
    begin = max(begin, 1.0)
    end = min(end, float(len(text) + 1))
    if end <= begin:
        return ""
    return text[int(begin) - 1:int(end) - 1]


def index(text: str, needle: str) -> float:
    if not needle:
        return 0.0
    return float(text.find(needle) + 1)


def expand_replacement(replacement: str, matched: str) -> str:
    """Expand ``&`` to the matched text; ``\\&`` is a literal ampersand."""
    if "&" not in replacement and "\\" not in replacement:
        return replacement
    out = []
    i = 0
    while i < len(replacement):
        c = replacement[i]
        if c == "\\" and i + 1 < len(replacement) and replacement[i + 1] in "&\\":
            out.append(replacement[i + 1])
            i += 2
            continue
        out.append(matched if c == "&" else c)
        i += 1
    return "".join(out)


def substitute(
    regex: "re.Pattern[str]", replacement: str, text: str, global_: bool
) -> tuple[int, str]:
    """Shared body of sub and gsub. Returns (replacements made, new text)."""
    count = 0

    def replace(m: "re.Match[str]") -> str:
        nonlocal count
        count += 1
        return expand_replacement(replacement, m.group(0))

    result = regex.sub(replace, text, count=0 if global_ else 1)
    return count, result


def match(text: str, regex: "re.Pattern[str]") -> tuple[float, float]:
    """Return (RSTART, RLENGTH) for the leftmost match, or (0, -1)."""
    m = regex.search(text)
    if m is None:
        return 0.0, -1.0
    return float(m.start() + 1), float(m.end() - m.start())


# printf


def _build_format_string(spec_type: str, flags: str, width: Optional[int], precision: Optional[int]) -> str:
    """Build a Python %-format string from printf components."""
    fmt = "%"
    if width is not None and width < 0:
        if "-" not in flags:
            flags = "-" + flags
        width = -width
    fmt += flags
    if width is not None:
        fmt += str(width)
    if precision is not None:
        fmt += f".{precision}"
    fmt += "d" if spec_type in "iu" else spec_type
    return fmt


def _pad(text: str, flags: str, width: Optional[int]) -> str:
    if width is None:
        return text
    if width < 0 or "-" in flags:
        return text.ljust(abs(width))
    return text.rjust(width)


def format_printf(fmt: str, args: list[AwkValue], convfmt: str = DEFAULT_NUMBER_FORMAT) -> str:
    """Format like C printf with awk's coercions.

    Missing arguments read as empty strings (zero for numeric conversions).
    An unknown conversion is copied through literally.
    """
    out = []
    arg_index = 0

    def next_arg() -> AwkValue:
        nonlocal arg_index
        if arg_index < len(args):
            value = args[arg_index]
            arg_index += 1
            return value
        return UNSET

    i = 0
    while i < len(fmt):
        c = fmt[i]
        if c != "%":
            out.append(c)
            i += 1
            continue
        if fmt.startswith("%%", i):
            out.append("%")
            i += 2
            continue
        m = _PRINTF_SPEC_RE.match(fmt, i + 1)
        if m is None:
            out.append("%")
            i += 1
            continue
        i = m.end()

        flags, width_spec, precision_spec, spec_type = m.groups()
        width = None
        if width_spec == "*":
            width = int(truncate(to_number(next_arg())))
        elif width_spec:
            width = int(width_spec)
        precision = None
        if precision_spec == "*":
            precision = max(0, int(truncate(to_number(next_arg()))))
        elif precision_spec is not None:
            precision = int(precision_spec) if precision_spec else 0

        value = next_arg()
        out.append(_format_one(spec_type, flags, width, precision, value, convfmt))
    return "".join(out)


def _format_one(
    spec_type: str,
    flags: str,
    width: Optional[int],
    precision: Optional[int],
    value: AwkValue,
    convfmt: str,
) -> str:
    if spec_type == "c":
        if value is not UNSET and not isinstance(value, float) and looks_numeric(value):
            value = to_number(value)
        if isinstance(value, float):
            code = int(truncate(value)) if math.isfinite(value) else 0
            try:
                text = chr(code)
            except (ValueError, OverflowError):
                text = ""
        else:
            text = value[:1]
        return _pad(text, flags, width)

    if spec_type == "s":
        text = to_str(value, convfmt)
        return _build_format_string("s", flags, width, precision) % text

    number = to_number(value)
    if spec_type in "eEfFgG":
        return _build_format_string(spec_type, flags, width, precision) % number

    if not math.isfinite(number):
        text = format_number(number)
        return _pad(text, flags, width)
    integer = int(number)
    if spec_type in "ouxX" and integer < 0:
        integer &= 0xFFFFFFFFFFFFFFFF
    result = _build_format_string(spec_type, flags, width, precision) % integer
    # Python's alternate forms differ from C's
    if "#" in flags:
        if spec_type == "o":
            result = result.replace("0o", "0")
            if integer == 0:
                result = re.sub(r"^( *)(0+)$", lambda m: m.group(1) + "0", result)
        elif spec_type in "xX" and integer == 0:
            result = result.replace("0x", "").replace("0X", "")
    return result


# Random numbers


class RandomState:
    """Deterministic linear congruential generator behind rand and srand."""

    MODULUS = 0x80000000

    def __init__(self, seed: float = 0.0):
        self.seed = seed
        self._state = int(seed) & 0x7FFFFFFF

    def rand(self) -> float:
        self._state = (self._state * 1103515245 + 12345) & 0x7FFFFFFF
        return self._state / self.MODULUS

    def srand(self, seed: Optional[float] = None) -> float:
        """Reseed, from the clock when no seed is given. Returns the previous seed."""
        previous = self.seed
        self.seed = float(int(time.time())) if seed is None else truncate(seed)
        self._state = int(self.seed) & 0x7FFFFFFF if math.isfinite(self.seed) else 0
        return previous


# Math functions


def _safe(fn, *args: float) -> float:
    try:
        return float(fn(*args))
    except (ValueError, OverflowError):
        return math.nan


MATH_FUNCTIONS = {
    "sin": (1, lambda x: _safe(math.sin, x)),
    "cos": (1, lambda x: _safe(math.cos, x)),
    "atan2": (2, lambda y, x: _safe(math.atan2, y, x)),
    "exp": (1, lambda x: math.inf if x > 709 else _safe(math.exp, x)),
    "log": (1, lambda x: -math.inf if x == 0 else _safe(math.log, x)),
    "sqrt": (1, lambda x: _safe(math.sqrt, x)),
    "int": (1, truncate),
}


def power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        return math.inf
    except (ValueError, ZeroDivisionError):
        return math.nan
