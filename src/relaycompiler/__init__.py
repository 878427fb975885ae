"""
relaycompiler: graphql artifact compiler wrapper.

this package resolves a schema, discovers the graphql documents of a
project, and compiles them into generated artifacts through a pluggable
language plugin, either once or in a watch loop.
"""

from __future__ import annotations

from .config import RunOptions
from .errors import (
    CodegenError,
    ConfigurationError,
    PluginLoadError,
    RelayCompilerError,
    SchemaLoadError,
    WatchmanError,
)
from .plugins import LanguagePlugin, register_language_plugin, resolve_language_plugin
from .run import ExitCode, run
from .runner import CodegenRunner, RunResult
from .schema import load_schema

__version__ = "0.1.0"
__all__ = [
    "CodegenError",
    "CodegenRunner",
    "ConfigurationError",
    "ExitCode",
    "LanguagePlugin",
    "PluginLoadError",
    "RelayCompilerError",
    "RunOptions",
    "RunResult",
    "SchemaLoadError",
    "WatchmanError",
    "load_schema",
    "register_language_plugin",
    "resolve_language_plugin",
    "run",
]
