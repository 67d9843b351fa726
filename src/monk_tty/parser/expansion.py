"""Variable and wildcard expansion for parsed words."""

import re
from typing import TYPE_CHECKING, Mapping, Optional

from ..fs import FSError
from .ast import Word

if TYPE_CHECKING:
    from ..fs import FileSystem

_VAR_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*|\?)\}|([A-Za-z_][A-Za-z0-9_]*)|(\?))")
GLOB_CHARS = frozenset("*?[]")

POSIX_CLASSES = {
    "[:alpha:]": "a-zA-Z",
    "[:digit:]": "0-9",
    "[:alnum:]": "a-zA-Z0-9",
    "[:upper:]": "A-Z",
    "[:lower:]": "a-z",
    "[:space:]": " \\t\\n\\r\\f\\v",
    "[:blank:]": " \\t",
    "[:punct:]": r"!\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~",
    "[:xdigit:]": "0-9a-fA-F",
}


def expand_variables(text: str, env: Mapping[str, str]) -> str:
    """Replace ``$VAR``, ``${VAR}`` and ``$?``; undefined names become empty."""

    def replace(m: re.Match) -> str:
        name = m.group(1) or m.group(2) or m.group(3)
        return env.get(name, "")

    return _VAR_RE.sub(replace, text)


def expand_word(word: Word, env: Mapping[str, str]) -> str:
    return "".join(
        expand_variables(part.text, env) if part.expandable else part.text
        for part in word.parts
    )


def has_glob(text: str) -> bool:
    return any(c in GLOB_CHARS for c in text)


def _bracket_end(pattern: str, start: int) -> int:
    """Index of the "]" closing the class opened at ``start``, or -1."""
    i = start + 1
    if i < len(pattern) and pattern[i] in "!^":
        i += 1
    # A leading "]" is a member: []] or [!]]
    if i < len(pattern) and pattern[i] == "]":
        i += 1
    while i < len(pattern):
        if pattern.startswith("[:", i):
            end = pattern.find(":]", i + 2)
            if end != -1:
                i = end + 2
                continue
        if pattern[i] == "]":
            return i
        i += 1
    return -1


def glob_to_regex(pattern: str) -> str:
    """Convert a wildcard pattern to an anchored regex.

    ``*`` matches any run, ``?`` one character and ``[...]`` a character
    class (``[!...]`` negates). Everything else matches literally.
    """
    result = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "*":
            result.append(".*")
        elif c == "?":
            result.append(".")
        elif c == "[":
            close_pos = _bracket_end(pattern, i)
            if close_pos == -1:
                result.append("\\[")
            else:
                body = pattern[i + 1:close_pos]
                negate = body[:1] in ("!", "^")
                if negate:
                    body = body[1:]
                body = body.replace("\\", "\\\\")
                for posix, chars in POSIX_CLASSES.items():
                    body = body.replace(posix, chars)
                if body.startswith("]"):
                    body = "\\" + body
                result.append("[" + ("^" if negate else "") + body + "]")
                i = close_pos
        else:
            result.append(re.escape(c))
        i += 1
    return "^" + "".join(result) + "$"


async def expand_glob(arg: str, fs: "FileSystem", cwd: str) -> list[str]:
    """Expand one wildcard argument against a directory listing.

    Only the last path component is matched. Results keep the prefix the
    user typed, are sorted, and directories get a trailing "/". When nothing
    matches, or the directory cannot be listed, the argument is returned
    unchanged.
    """
    slash = arg.rfind("/")
    if slash == -1:
        prefix, pattern = "", arg
        directory = cwd
    else:
        prefix, pattern = arg[:slash + 1], arg[slash + 1:]
        if has_glob(prefix):
            return [arg]
        directory = fs.resolve_path(cwd, prefix or "/")
    if not pattern or not has_glob(pattern):
        return [arg]

    try:
        regex = re.compile(glob_to_regex(pattern), re.DOTALL)
    except re.error:
        return [arg]
    try:
        entries = await fs.readdir(directory)
    except FSError:
        return [arg]

    matched = []
    for entry in entries:
        if entry.name.startswith(".") and not pattern.startswith("."):
            continue
        if regex.match(entry.name):
            suffix = "/" if entry.is_directory else ""
            matched.append(prefix + entry.name + suffix)
    if not matched:
        return [arg]
    return sorted(matched)


async def expand_words(
    words: tuple[Word, ...],
    env: Mapping[str, str],
    fs: Optional["FileSystem"],
    cwd: str,
) -> list[str]:
    """Expand variables in every word, then wildcards in unquoted ones."""
    result: list[str] = []
    for word in words:
        text = expand_word(word, env)
        if fs is not None and not word.quoted and has_glob(text):
            result.extend(await expand_glob(text, fs, cwd))
        else:
            result.append(text)
    return result
