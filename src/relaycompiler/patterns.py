"""
glob pattern matching for source discovery.

patterns follow the conventions of watchman's "wholename" match and of
node-style globbing: `**` spans directories, `*` and `?` stay within one
path segment, and `{a,b}` / `+(a|b)` select between alternatives. like
watchman without its "includedotfiles" flag, wildcards never match a
leading `.` in a segment; a dot-file only matches a pattern that spells
the dot out.
"""

from __future__ import annotations

import re
from functools import lru_cache

_EXTGLOB_QUANTIFIERS = {"+": "+", "*": "*", "?": "?", "@": ""}
_NO_LEADING_DOT = r"(?!\.)"
_ANY_DIRS = rf"(?:{_NO_LEADING_DOT}[^/]+/)*"
_ANY_PATH = rf"(?:{_NO_LEADING_DOT}[^/]*(?:/{_NO_LEADING_DOT}[^/]*)*)"


def _find_closing(text: str, start: int, opening: str, closing: str) -> int:
    """return the index of the bracket closing the one at `start`, or -1."""
    depth = 0
    for i in range(start, len(text)):
        if text[i] == opening:
            depth += 1
        elif text[i] == closing:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _split_top_level(text: str, separator: str) -> list[str]:
    """split on `separator` outside of any nested brackets."""
    parts: list[str] = []
    depth = 0
    current = ""
    for char in text:
        if char in "({[":
            depth += 1
        elif char in ")}]":
            depth -= 1
        if char == separator and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
    parts.append(current)
    return parts


def _translate_segment(segment: str, at_start: bool = True) -> str:
    """translate a glob fragment that contains no directory separators."""
    out: list[str] = []
    i = 0
    while i < len(segment):
        char = segment[i]
        following = segment[i + 1] if i + 1 < len(segment) else ""
        leading = at_start and i == 0
        guard = _NO_LEADING_DOT if leading else ""

        if char in _EXTGLOB_QUANTIFIERS and following == "(":
            end = _find_closing(segment, i + 1, "(", ")")
            if end != -1:
                alternatives = _split_top_level(segment[i + 2 : end], "|")
                body = "|".join(_translate_segment(alt, leading) for alt in alternatives)
                out.append(f"(?:{body}){_EXTGLOB_QUANTIFIERS[char]}")
                i = end + 1
                continue

        if char == "{":
            end = _find_closing(segment, i, "{", "}")
            if end != -1:
                alternatives = _split_top_level(segment[i + 1 : end], ",")
                body = "|".join(_translate_segment(alt, leading) for alt in alternatives)
                out.append(f"(?:{body})")
                i = end + 1
                continue

        if char == "[":
            end = segment.find("]", i + 2)
            if end != -1:
                body = segment[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(guard + "[" + body.replace("\\", "\\\\") + "]")
                i = end + 1
                continue

        if char == "*":
            out.append(guard + "[^/]*")
        elif char == "?":
            out.append(guard + "[^/]")
        else:
            out.append(re.escape(char))
        i += 1

    return "".join(out)


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """
    compile a glob pattern into a regular expression.

    the expression must match a whole posix-style relative path.

    arguments:
        `pattern: str`
            the glob pattern

    returns: `re.Pattern[str]`
        compiled expression, use with `fullmatch`
    """
    segments = pattern.removeprefix("./").split("/")
    parts: list[str] = []

    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            parts.append(_ANY_PATH if last else _ANY_DIRS)
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))

    return re.compile("".join(parts))


def glob_match(rel_path: str, pattern: str) -> bool:
    """check whether a posix relative path matches a glob pattern."""
    return compile_glob(pattern).fullmatch(rel_path) is not None


class PatternMatcher:
    """
    matcher for include/exclude glob patterns.

    a path matches when it matches at least one include pattern and no
    exclude pattern. an exclude pattern also excludes everything below a
    directory it matches.

    attributes:
        `include: list[str]`
            glob patterns for paths to include
        `exclude: list[str]`
            glob patterns for paths to exclude

    usage:
        ```python
        matcher = PatternMatcher(
            include=["**/*.+(js|jsx)"],
            exclude=["**/node_modules/**"],
        )
        if matcher.matches("src/App.js"):
            print("file matches patterns")
        ```
    """

    include: list[str]
    exclude: list[str]

    def __init__(self, include: list[str], exclude: list[str]) -> None:
        self.include = include
        self.exclude = exclude

    def is_excluded(self, rel_path: str) -> bool:
        """
        check a path, or any of its parent directories, against the excludes.

        arguments:
            `rel_path: str`
                posix path relative to the search root

        returns: `bool`
            True if an exclude pattern matches
        """
        parts = rel_path.split("/")
        candidates = ["/".join(parts[: i + 1]) for i in range(len(parts))]
        return any(
            glob_match(candidate, pattern)
            for pattern in self.exclude
            for candidate in candidates
        )

    def is_excluded_dir(self, rel_dir: str) -> bool:
        """check whether everything below a directory is excluded."""
        return any(
            glob_match(rel_dir, pattern) or glob_match(rel_dir + "/", pattern)
            for pattern in self.exclude
        )

    def matches(self, rel_path: str) -> bool:
        """
        check a path against the include and exclude patterns.

        arguments:
            `rel_path: str`
                posix path relative to the search root

        returns: `bool`
            True if the path is included and not excluded
        """
        if self.is_excluded(rel_path):
            return False
        return any(glob_match(rel_path, pattern) for pattern in self.include)
