"""Awk command implementation.

Usage: awk [-F fs] [-v var=value]... 'program' [file | var=value]...
       awk [-F fs] [-v var=value]... -f progfile [file | var=value]...

Pattern scanning and text processing. With no file operands, or when a
file is -, read standard input.

Options:
  -F fs          Field separator (escape sequences such as \\t are honored)
  -v var=value   Assign a variable before the program starts (repeatable)
  -f progfile    Read the program from a file (repeatable)
  --             End of options

Program structure:
  BEGIN { actions }     Run before any input is read
  pattern { actions }   Run for each matching record
  /start/, /end/        Range pattern
  END { actions }       Run after the last record

Built-in variables: FS OFS RS ORS NR NF FNR FILENAME SUBSEP RSTART RLENGTH
CONVFMT OFMT ENVIRON ARGC ARGV

Built-in functions: length substr index split sub gsub match tolower
toupper sprintf sin cos atan2 exp log sqrt int rand srand close fflush
system getline

Examples:
  awk '{print $1}'                  Print the first field
  awk -F: '{print $1}' /etc/passwd  Print user names
  awk '{sum += $1} END {print sum}' Sum the first column
  awk 'NR > 1 {print $2}' data      Skip the header, print column 2
"""

import logging
import re
from typing import Optional

from ...fs import FileSystem, FSError
from ...session import Session
from ...streams import CommandIO
from ...types import ExecutionLimits
from .interpreter import AwkInterpreter, unescape
from .parser import parse_program
from .types import AwkError, AwkSyntaxError

logger = logging.getLogger(__name__)

_VARIABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

USAGE = "usage: awk [-F fs] [-v var=value] [-f progfile | 'program'] [file ...]\n"


class AwkCommand:
    """The awk command."""

    name = "awk"

    def __init__(self, limits: Optional[ExecutionLimits] = None):
        self.limits = limits or ExecutionLimits()

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        field_separator: Optional[str] = None
        assignments: list[tuple[str, str]] = []
        program_files: list[str] = []

        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "--":
                i += 1
                break
            if not arg.startswith("-") or arg == "-":
                break
            option, value = arg[1], arg[2:]
            if option not in "Fvf":
                io.stderr.write(f"awk: invalid option -- '{option}'\n")
                io.stderr.write(USAGE)
                return 2
            if not value:
                i += 1
                if i >= len(args):
                    io.stderr.write(f"awk: option requires an argument -- '{option}'\n")
                    io.stderr.write(USAGE)
                    return 2
                value = args[i]
            if option == "F":
                field_separator = "\t" if value == "t" else unescape(value)
            elif option == "v":
                name, sep, assigned = value.partition("=")
                if not sep or not _VARIABLE_NAME.match(name):
                    io.stderr.write(f"awk: invalid -v argument: {value}\n")
                    return 2
                assignments.append((name, assigned))
            else:
                program_files.append(value)
            i += 1

        operands = args[i:]
        if program_files:
            sources = []
            for path in program_files:
                source = await self._read_program(session, fs, path, io)
                if source is None:
                    return 2
                sources.append(source)
            source = "\n".join(sources)
        elif operands:
            source, operands = operands[0], operands[1:]
        else:
            io.stderr.write("awk: no program given\n")
            io.stderr.write(USAGE)
            return 2

        try:
            program = parse_program(source)
        except AwkSyntaxError as e:
            io.stderr.write(f"awk: {e}\n")
            return 1

        interpreter = AwkInterpreter(
            program,
            session=session,
            fs=fs,
            io=io,
            operands=operands,
            assignments=assignments,
            field_separator=field_separator,
            limits=self.limits,
        )
        try:
            return await interpreter.run()
        except AwkError as e:
            io.stderr.write(f"awk: {e}\n")
            return 1
        except RecursionError:
            logger.debug("awk program exhausted the interpreter stack")
            io.stderr.write("awk: stack depth exceeded\n")
            return 1

    async def _read_program(
        self, session: Session, fs: Optional[FileSystem], path: str, io: CommandIO
    ) -> Optional[str]:
        if path == "-":
            return await io.read_stdin()
        if fs is None:
            io.stderr.write(f"awk: {path}: no filesystem available\n")
            return None
        try:
            data = await fs.read(fs.resolve_path(session.cwd, path))
        except FSError as e:
            io.stderr.write(f"awk: {path}: {e.message}\n")
            return None
        return data.decode("utf-8", errors="replace")
