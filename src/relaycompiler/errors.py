"""exception hierarchy shared across relaycompiler."""

from __future__ import annotations


class RelayCompilerError(Exception):
    """base class for all relaycompiler failures."""


class ConfigurationError(RelayCompilerError):
    """invalid run options, detected before any compilation work."""


class SchemaLoadError(RelayCompilerError):
    """the schema file could not be read or parsed."""


class PluginLoadError(RelayCompilerError):
    """a language plugin could not be located or has the wrong shape."""


class CodegenError(RelayCompilerError):
    """a document failed to parse, validate or generate."""


class WatchmanError(RelayCompilerError):
    """the watchman service rejected a command or could not be reached."""
