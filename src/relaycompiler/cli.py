"""
command-line interface for relaycompiler.

compiles the graphql documents of a project into generated artifacts,
once or continuously.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from .config import RunOptions
from .errors import RelayCompilerError
from .run import run


def _custom_scalar(value: str) -> tuple[str, str]:
    """parse a NAME=TYPE custom scalar mapping."""
    name, sep, type_name = value.partition("=")
    if not sep or not name or not type_name:
        raise argparse.ArgumentTypeError(f"expected NAME=TYPE, got '{value}'")
    return name, type_name


def create_parser() -> argparse.ArgumentParser:
    """
    create the argument parser for the cli.

    returns: `argparse.ArgumentParser`
        configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="relaycompiler",
        description="compile graphql documents into generated artifacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  relaycompiler --schema schema.graphql --src ./src              # compile once
  relaycompiler --schema schema.json --src ./src --watch         # keep compiling
  relaycompiler --schema schema.graphql --src ./src --validate   # check artifacts are current
        """,
    )
    _ = parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    _ = parser.add_argument(
        "--schema",
        type=str,
        help="path to schema.graphql or schema.json",
    )
    _ = parser.add_argument(
        "--src",
        type=str,
        help="root directory of application code",
    )
    _ = parser.add_argument(
        "--extensions",
        nargs="+",
        help="file extensions to compile (default: the language plugin's)",
    )
    _ = parser.add_argument(
        "--include",
        nargs="+",
        help="directories to include under src (default: **)",
    )
    _ = parser.add_argument(
        "--exclude",
        nargs="+",
        help="directories to ignore under src",
    )
    _ = parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="more verbose logging",
    )
    _ = parser.add_argument(
        "--quiet",
        action="store_true",
        default=None,
        help="no output to stdout",
    )
    _ = parser.add_argument(
        "--watch",
        action="store_true",
        default=None,
        help="if specified, watches files and regenerates on changes",
    )
    _ = parser.add_argument(
        "--no-watchman",
        action="store_false",
        dest="watchman",
        default=None,
        help="do not use watchman, even if it is available",
    )
    _ = parser.add_argument(
        "--validate",
        action="store_true",
        default=None,
        help="look for pending changes and exit with 101 if there are any",
    )
    _ = parser.add_argument(
        "--no-future-proof-enums",
        action="store_true",
        default=None,
        help="leave '%%future added value' out of generated enum types",
    )
    _ = parser.add_argument(
        "--language",
        type=str,
        help="language plugin name, path, or relaycompiler_language_<name> suffix",
    )
    _ = parser.add_argument(
        "--artifact-directory",
        type=str,
        help="a single directory for all generated artifacts",
    )
    _ = parser.add_argument(
        "--custom-scalar",
        type=_custom_scalar,
        action="append",
        dest="custom_scalars",
        metavar="NAME=TYPE",
        help="map a custom scalar to a target type (repeatable)",
    )
    _ = parser.add_argument(
        "--respect-gitignore",
        action="store_true",
        default=None,
        help="skip gitignored files when not using watchman",
    )
    _ = parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging for troubleshooting",
    )
    return parser


def options_from_args(args: argparse.Namespace, base: RunOptions) -> RunOptions:
    """
    overlay explicitly given command-line arguments on loaded options.

    arguments:
        `args: argparse.Namespace`
            parsed arguments
        `base: RunOptions`
            options loaded from configuration files and the environment

    returns: `RunOptions`
        the options for this run
    """
    options = replace(base)

    for name in (
        "schema",
        "src",
        "extensions",
        "include",
        "exclude",
        "verbose",
        "quiet",
        "watch",
        "watchman",
        "validate",
        "no_future_proof_enums",
        "language",
        "artifact_directory",
        "respect_gitignore",
    ):
        value = getattr(args, name, None)
        if value is not None:
            setattr(options, name, value)

    scalars_raw = getattr(args, "custom_scalars", None)
    if scalars_raw:
        options.custom_scalars = {**options.custom_scalars, **dict(scalars_raw)}

    return options


def main(argv: Sequence[str] | None = None) -> int:
    """
    run the cli main entry point.

    arguments:
        `argv: Sequence[str] | None`
            command-line arguments (default: sys.argv[1:])

    returns: `int`
        exit code (0 = ok, 1 = invalid setup, 100 = compile error,
        101 = validation found pending changes)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if bool(getattr(args, "debug", False)):
        logging.basicConfig(
            level=logging.DEBUG,
            format="[%(name)s] %(message)s",
        )

    options = options_from_args(args, RunOptions.load(Path.cwd()))

    try:
        return int(asyncio.run(run(options)))
    except KeyboardInterrupt:
        return 0
    except RelayCompilerError as e:
        print(f"relaycompiler: error: {e}", file=sys.stderr)
        return 1


def main_entry() -> None:
    """console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
