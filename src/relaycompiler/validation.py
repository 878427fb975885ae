"""
run option validation.

checks the options of a run before any schema, plugin or compilation work
is attempted.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final

from .config import RunOptions
from .errors import ConfigurationError

# a watchman "root" must exist in the watched directory or a parent
WATCHMAN_ROOT_FILES: Final[tuple[str, ...]] = (".git", ".hg", ".watchmanconfig")


def has_watchman_root_file(test_path: Path) -> bool:
    """
    check whether a watchman root file exists in a directory or its parents.

    arguments:
        `test_path: Path`
            the directory to start from

    returns: `bool`
        True if one of WATCHMAN_ROOT_FILES was found
    """
    current = test_path.resolve()

    while current.parent != current:
        if any(current.joinpath(marker).exists() for marker in WATCHMAN_ROOT_FILES):
            return True
        current = current.parent

    return False


def validate_options(options: RunOptions, cwd: Path) -> tuple[Path, Path]:
    """
    validate run options and resolve their paths.

    arguments:
        `options: RunOptions`
            options to validate
        `cwd: Path`
            directory relative paths are resolved against

    returns: `tuple[Path, Path]`
        the absolute schema path and source directory

    raises:
        `ConfigurationError`
            when a path is missing or the flags cannot be combined
    """
    if not options.schema:
        raise ConfigurationError("--schema is required.")
    if not options.src:
        raise ConfigurationError("--src is required.")

    schema_path = cwd.joinpath(options.schema).resolve()
    if not schema_path.exists():
        raise ConfigurationError(f"--schema path does not exist: {schema_path}.")

    src_dir = cwd.joinpath(options.src).resolve()
    if not src_dir.exists():
        raise ConfigurationError(f"--src path does not exist: {src_dir}.")

    if options.watch and not options.watchman:
        raise ConfigurationError("Watchman is required to watch for changes.")

    if options.watch and not has_watchman_root_file(src_dir):
        raise ConfigurationError(
            f"""
--watch requires that the src directory have a valid watchman "root" file.

Root files can include:
- A .git/ Git folder
- A .hg/ Mercurial folder
- A .watchmanconfig file

Ensure that one such file exists in {src_dir} or its parents.
            """.strip()
        )

    if options.verbose and options.quiet:
        raise ConfigurationError("I can't be quiet and verbose at the same time")

    return schema_path, src_dir
