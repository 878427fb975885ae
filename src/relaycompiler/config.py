"""
configuration loading for relaycompiler.

this module holds the run options record and handles loading it from
pyproject.toml, .relaycompiler.toml, and environment variables.
"""

from __future__ import annotations

import logging
import os
import tomllib
from contextlib import suppress
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Final

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE: Final[tuple[str, ...]] = ("**",)
DEFAULT_EXCLUDE: Final[tuple[str, ...]] = (
    "**/node_modules/**",
    "**/__mocks__/**",
    "**/__generated__/**",
)
DEFAULT_LANGUAGE: Final[str] = "javascript"

# toml spellings accepted in addition to the field names themselves
_KEY_ALIASES: Final[dict[str, str]] = {
    "artifactDirectory": "artifact_directory",
    "customScalars": "custom_scalars",
    "noFutureProofEnums": "no_future_proof_enums",
    "respectGitignore": "respect_gitignore",
    "pollIntervalMs": "poll_interval_ms",
}


@dataclass
class RunOptions:
    """
    options for a single compiler run.

    attributes:
        `schema: str`
            path to the schema file (.graphql sdl or .json introspection)
        `src: str`
            root directory of application sources
        `extensions: list[str] | None`
            source file extensions (default: the language plugin's own)
        `include: list[str]`
            glob patterns, relative to src, of directories to search
        `exclude: list[str]`
            glob patterns, relative to src, of paths to skip
        `verbose: bool`
            more verbose reporting
        `quiet: bool`
            no output except errors
        `watch: bool`
            keep compiling as files change
        `watchman: bool`
            use watchman when available
        `validate: bool`
            report pending artifact changes without writing them
        `no_future_proof_enums: bool`
            leave '%future added value' out of generated enum types
        `language: str`
            built-in language name, plugin path or plugin package suffix
        `artifact_directory: str | None`
            single directory for all artifacts instead of __generated__
        `custom_scalars: dict[str, str]`
            scalar name to target type name
        `respect_gitignore: bool`
            skip gitignored files when scanning without watchman
        `poll_interval_ms: int`
            delay between change checks in watch mode
    """

    schema: str = ""
    src: str = ""
    extensions: list[str] | None = None
    include: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    verbose: bool = False
    quiet: bool = False
    watch: bool = False
    watchman: bool = True
    validate: bool = False
    no_future_proof_enums: bool = False
    language: str = DEFAULT_LANGUAGE
    artifact_directory: str | None = None
    custom_scalars: dict[str, str] = field(default_factory=dict)
    respect_gitignore: bool = False
    poll_interval_ms: int = 500

    @classmethod
    def from_pyproject_toml(cls, project_root: str | Path) -> RunOptions | None:
        """
        load options from the [tool.relaycompiler] table of pyproject.toml.

        arguments:
            `project_root: str | Path`
                directory containing pyproject.toml

        returns: `RunOptions | None`
            options if the table exists, none otherwise
        """
        pyproject = Path(project_root).joinpath("pyproject.toml")

        if not pyproject.exists():
            return None

        try:
            with open(pyproject, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.debug("ignoring unreadable %s: %s", pyproject, e)
            return None

        tool_config = data.get("tool", {}).get("relaycompiler")
        if not tool_config:
            return None
        return cls._from_dict(tool_config)

    @classmethod
    def from_relaycompiler_toml(cls, project_root: str | Path) -> RunOptions | None:
        """
        load options from .relaycompiler.toml.

        arguments:
            `project_root: str | Path`
                directory containing .relaycompiler.toml

        returns: `RunOptions | None`
            options if the file exists, none otherwise
        """
        config_file = Path(project_root).joinpath(".relaycompiler.toml")

        if not config_file.exists():
            return None

        try:
            with open(config_file, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.debug("ignoring unreadable %s: %s", config_file, e)
            return None

        return cls._from_dict(data)

    @classmethod
    def from_environment(cls) -> RunOptions:
        """
        load options from RELAYCOMPILER_* environment variables.

        returns: `RunOptions`
            options with values from the environment
        """
        options = cls()

        if schema := os.environ.get("RELAYCOMPILER_SCHEMA"):
            options.schema = schema

        if src := os.environ.get("RELAYCOMPILER_SRC"):
            options.src = src

        if language := os.environ.get("RELAYCOMPILER_LANGUAGE"):
            options.language = language

        if artifact_directory := os.environ.get("RELAYCOMPILER_ARTIFACT_DIRECTORY"):
            options.artifact_directory = artifact_directory

        if watchman := os.environ.get("RELAYCOMPILER_WATCHMAN"):
            options.watchman = watchman.lower() in ("true", "1", "yes")

        if poll_interval := os.environ.get("RELAYCOMPILER_POLL_INTERVAL_MS"):
            with suppress(ValueError):
                options.poll_interval_ms = int(poll_interval)

        return options

    @classmethod
    def load(cls, project_root: str | Path = ".") -> RunOptions:
        """
        load options from all available sources.

        sources are loaded in order of priority (later overrides earlier):
        1. default values
        2. pyproject.toml
        3. .relaycompiler.toml
        4. environment variables

        arguments:
            `project_root: str | Path`
                project root directory

        returns: `RunOptions`
            merged options from all sources
        """
        project_path = Path(project_root).resolve()
        options = cls()

        if pyproject_options := cls.from_pyproject_toml(project_path):
            options = options.merge(pyproject_options)

        if file_options := cls.from_relaycompiler_toml(project_path):
            options = options.merge(file_options)

        return options.merge(cls.from_environment())

    def merge(self, other: RunOptions) -> RunOptions:
        """
        merge another set of options into this one.

        values of 'other' that differ from the defaults take precedence.

        arguments:
            `other: RunOptions`
                options to merge

        returns: `RunOptions`
            new merged options
        """
        defaults = RunOptions()
        changes: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(other, f.name)
            if value != getattr(defaults, f.name):
                changes[f.name] = value
        return replace(self, **changes)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> RunOptions:
        """
        create options from a toml table.

        arguments:
            `data: dict[str, Any]`
                configuration table, snake_case or camelCase keys

        returns: `RunOptions`
            options object
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}

        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                logger.debug("ignoring unknown configuration key: %s", key)
                continue
            values[name] = value

        for list_key in ("extensions", "include", "exclude"):
            if isinstance(values.get(list_key), str):
                values[list_key] = [values[list_key]]

        if "custom_scalars" in values:
            values["custom_scalars"] = {
                str(k): str(v) for k, v in dict(values["custom_scalars"]).items()
            }

        return cls(**values)
