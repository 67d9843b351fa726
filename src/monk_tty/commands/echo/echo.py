"""Echo command implementation.

Usage: echo [-neE] [STRING]...

Write arguments to standard output, separated by spaces.

Options:
  -n    Do not output the trailing newline
  -e    Interpret backslash escapes
  -E    Do not interpret backslash escapes (default)
"""

from typing import Optional

from ...fs import FileSystem
from ...session import Session
from ...streams import CommandIO

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    "e": "\x1b",
}


def interpret_escapes(text: str) -> tuple[str, bool]:
    """Expand backslash escapes. Returns (text, stop) where stop means \\c was seen."""
    out = []
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            if nxt == "c":
                return "".join(out), True
            if nxt in _ESCAPES:
                out.append(_ESCAPES[nxt])
                i += 2
                continue
            if nxt == "0":
                j = i + 2
                digits = ""
                while j < len(text) and len(digits) < 3 and text[j] in "01234567":
                    digits += text[j]
                    j += 1
                out.append(chr(int(digits, 8) if digits else 0))
                i = j
                continue
        out.append(c)
        i += 1
    return "".join(out), False


class EchoCommand:
    """The echo command."""

    name = "echo"

    async def execute(
        self, session: Session, fs: Optional[FileSystem], args: list[str], io: CommandIO
    ) -> int:
        newline = True
        escapes = False

        # Leading option words made only of n/e/E
        while args and len(args[0]) > 1 and args[0][0] == "-" and all(c in "neE" for c in args[0][1:]):
            for c in args[0][1:]:
                if c == "n":
                    newline = False
                elif c == "e":
                    escapes = True
                else:
                    escapes = False
            args = args[1:]

        text = " ".join(args)
        if escapes:
            text, stop = interpret_escapes(text)
            if stop:
                newline = False
        io.stdout.write(text + ("\n" if newline else ""))
        return 0
