"""shared fixtures for relaycompiler tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from relaycompiler.config import RunOptions
from relaycompiler.reporter import ConsoleReporter
from tests.fixtures import create_project, write_schema


@pytest.fixture
def schema_file(tmp_path: Path) -> Path:
    """a .graphql schema file outside of the source directory."""
    return write_schema(tmp_path)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """a project with two compilable sources and one excluded source."""
    return create_project(tmp_path)


@pytest.fixture
def options(project: Path) -> RunOptions:
    """options for compiling the project fixture without watchman."""
    return RunOptions(
        schema="schema.graphql",
        src="src",
        exclude=["**/excluded/**"],
        watchman=False,
    )


@pytest.fixture
def reporter() -> ConsoleReporter:
    """a reporter writing into a string buffer."""
    return ConsoleReporter(stream=io.StringIO())
