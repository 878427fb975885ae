"""
source file discovery.

builds either a watchman query expression or a static list of matching
files for each logical set of compiler inputs.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from gitignore_parser import parse_gitignore

from .patterns import PatternMatcher

logger = logging.getLogger(__name__)

# generated artifacts carry this marker before their extension
ARTIFACT_PATTERN: Final[str] = "**/*.graphql.*"
GRAPHQL_EXTENSIONS: Final[tuple[str, ...]] = ("graphql",)


@dataclass(frozen=True)
class SearchOptions:
    """
    what to look for in one logical file set.

    attributes:
        `extensions: tuple[str, ...]`
            file extensions, without the leading dot
        `include: tuple[str, ...]`
            directory glob patterns to search
        `exclude: tuple[str, ...]`
            glob patterns of paths to skip
    """

    extensions: tuple[str, ...]
    include: tuple[str, ...]
    exclude: tuple[str, ...]


def source_search_options(
    extensions: list[str] | tuple[str, ...],
    include: list[str],
    exclude: list[str],
) -> SearchOptions:
    """search options for application sources, never matching artifacts."""
    return SearchOptions(
        extensions=tuple(extensions),
        include=tuple(include),
        exclude=(ARTIFACT_PATTERN, *exclude),
    )


def graphql_search_options(
    src_dir: Path,
    schema_path: Path,
    include: list[str],
    exclude: list[str],
) -> SearchOptions:
    """search options for standalone .graphql documents, never matching the schema."""
    schema_rel = Path(os.path.relpath(schema_path, src_dir)).as_posix()
    return SearchOptions(
        extensions=GRAPHQL_EXTENSIONS,
        include=tuple(include),
        exclude=(schema_rel, *exclude),
    )


def build_watch_expression(options: SearchOptions) -> list[Any]:
    """
    build a watchman query expression for a file set.

    the expression matches regular files with one of the extensions whose
    relative path matches an include pattern and no exclude pattern.

    arguments:
        `options: SearchOptions`
            the file set to describe

    returns: `list[Any]`
        watchman expression term
    """
    return [
        "allof",
        ["type", "f"],
        ["anyof", *(["suffix", ext] for ext in options.extensions)],
        ["anyof", *(["match", include, "wholename"] for include in options.include)],
        *(["not", ["match", exclude, "wholename"]] for exclude in options.exclude),
    ]


class _GitignoreFilter:
    """combined matcher for every .gitignore below a root directory."""

    def __init__(self, root: Path) -> None:
        self.matchers: list[tuple[Path, Callable[[str], bool]]] = []
        for gitignore_file in sorted(root.rglob(".gitignore")):
            if not gitignore_file.is_file():
                continue
            try:
                self.matchers.append((gitignore_file.parent, parse_gitignore(gitignore_file)))
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("skipping unreadable %s: %s", gitignore_file, e)

    def is_ignored(self, path: Path) -> bool:
        # each .gitignore only governs paths below its own directory
        return any(
            matcher(str(path)) for directory, matcher in self.matchers if path.is_relative_to(directory)
        )


def _walks_dot_dirs(patterns: list[str]) -> bool:
    """check whether any pattern names a dot-directory explicitly."""
    return any(
        segment.startswith(".") and segment not in (".", "..")
        for pattern in patterns
        for segment in pattern.split("/")[:-1]
    )


def _iter_files(base_dir: Path, matcher: PatternMatcher) -> Generator[str, None, None]:
    """
    walk the base directory, pruning excluded directories.

    dot-directories are only entered when an include pattern spells one out.

    yields: `str`
        posix file paths relative to the base directory
    """
    walk_dot_dirs = _walks_dot_dirs(matcher.include)
    for dirpath, dirnames, filenames in os.walk(base_dir):
        rel_dir = Path(dirpath).relative_to(base_dir).as_posix()
        prefix = "" if rel_dir == "." else rel_dir + "/"

        dirnames[:] = [
            d
            for d in dirnames
            if (walk_dot_dirs or not d.startswith("."))
            and not matcher.is_excluded_dir(prefix + d)
        ]

        for filename in filenames:
            yield prefix + filename


def get_filepaths_from_glob(
    base_dir: Path,
    options: SearchOptions,
    *,
    respect_gitignore: bool = False,
) -> list[str]:
    """
    scan the base directory for the files of one file set.

    every include pattern becomes `<include>/*.+(<ext>|...)`; matching
    files are then filtered against the exclude patterns.

    arguments:
        `base_dir: Path`
            the directory to scan
        `options: SearchOptions`
            the file set to look for
        `respect_gitignore: bool`
            also skip files ignored by a .gitignore

    returns: `list[str]`
        sorted posix paths relative to base_dir
    """
    alternatives = "|".join(options.extensions)
    patterns = [f"{include}/*.+({alternatives})" for include in options.include]
    matcher = PatternMatcher(patterns, list(options.exclude))
    gitignore = _GitignoreFilter(base_dir) if respect_gitignore else None

    files: list[str] = []
    for rel_path in _iter_files(base_dir, matcher):
        if not matcher.matches(rel_path):
            continue
        if gitignore is not None and gitignore.is_ignored(base_dir.joinpath(rel_path)):
            continue
        files.append(rel_path)

    logger.debug("found %d files in %s for %s", len(files), base_dir, patterns)
    return sorted(files)
