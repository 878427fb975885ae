"""
language plugin registry and resolution.

plugins are resolved by name from a static registry (the built-in
`javascript` plugin, explicit registrations, and installed distributions
advertising the `relaycompiler.languages` entry point group). anything else
is loaded from a path or from a conventionally named module, which must
export a `language_plugin` factory.
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
import re
import sys
from collections.abc import Callable
from functools import partial
from importlib import metadata
from pathlib import Path
from types import ModuleType
from typing import Final

from ..errors import PluginLoadError
from . import javascript
from .base import (
    GraphQLTag,
    LanguagePlugin,
    ModuleSpec,
    TypeGenerator,
    TypeGeneratorOptions,
)

logger = logging.getLogger(__name__)

BUILTIN_LANGUAGE: Final[str] = "javascript"
ENTRY_POINT_GROUP: Final[str] = "relaycompiler.languages"
PLUGIN_MODULE_PREFIX: Final[str] = "relaycompiler_language_"
PLUGIN_FACTORY_NAME: Final[str] = "language_plugin"

PluginFactory = Callable[[], LanguagePlugin]

_REGISTRY: dict[str, PluginFactory] = {BUILTIN_LANGUAGE: javascript.create_language_plugin}
_DISCOVERY_STATE: dict[str, bool] = {"discovered": False}

__all__ = [
    "BUILTIN_LANGUAGE",
    "GraphQLTag",
    "LanguagePlugin",
    "ModuleSpec",
    "TypeGenerator",
    "TypeGeneratorOptions",
    "register_language_plugin",
    "registered_language_plugins",
    "resolve_language_plugin",
]


def register_language_plugin(name: str, factory: PluginFactory) -> None:
    """
    register a plugin factory under a language name.

    arguments:
        `name: str`
            the name passed as --language
        `factory: PluginFactory`
            zero-argument callable returning the plugin
    """
    _REGISTRY[name] = factory


def _load_entry_point(entry: metadata.EntryPoint) -> LanguagePlugin:
    factory = entry.load()
    return factory()


def _discover_entry_points() -> None:
    """register factories advertised by installed distributions, once."""
    if _DISCOVERY_STATE["discovered"]:
        return
    _DISCOVERY_STATE["discovered"] = True

    for entry in metadata.entry_points(group=ENTRY_POINT_GROUP):
        if entry.name in _REGISTRY:
            continue
        logger.debug("found language plugin entry point: %s", entry.name)
        _REGISTRY[entry.name] = partial(_load_entry_point, entry)


def registered_language_plugins() -> tuple[str, ...]:
    """return the names of all registered language plugins."""
    _discover_entry_points()
    return tuple(sorted(_REGISTRY))


def _load_module_from_path(plugin_path: Path) -> ModuleType:
    """import a plugin from a .py file or a package directory."""
    module_name = PLUGIN_MODULE_PREFIX + re.sub(r"\W", "_", plugin_path.stem)

    if plugin_path.is_dir():
        spec = importlib.util.spec_from_file_location(
            module_name,
            plugin_path.joinpath("__init__.py"),
            submodule_search_locations=[str(plugin_path)],
        )
    else:
        spec = importlib.util.spec_from_file_location(module_name, plugin_path)

    if spec is None or spec.loader is None:
        raise ImportError(f"no importable module at {plugin_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module


def _plugin_from_module(module: ModuleType) -> LanguagePlugin:
    factory = getattr(module, PLUGIN_FACTORY_NAME, None)
    if not callable(factory):
        raise TypeError(
            f"Expected plugin to export a `{PLUGIN_FACTORY_NAME}` factory returning a LanguagePlugin."
        )
    plugin = factory()
    if not isinstance(plugin, LanguagePlugin):
        raise TypeError(
            f"Expected `{PLUGIN_FACTORY_NAME}()` to return a LanguagePlugin, "
            + f"got {type(plugin).__name__}."
        )
    return plugin


def _create_registered(language: str) -> LanguagePlugin:
    """call a registered factory, wrapping any failure."""
    try:
        return _REGISTRY[language]()
    except Exception as err:
        raise PluginLoadError(f"Unable to load language plugin {language}: {err}") from err


def resolve_language_plugin(language: str, cwd: Path | None = None) -> LanguagePlugin:
    """
    resolve a language plugin for this run.

    arguments:
        `language: str`
            a registered name, a path relative to cwd, or the suffix of a
            `relaycompiler_language_<suffix>` module
        `cwd: Path | None`
            directory paths are resolved against (default: current directory)

    returns: `LanguagePlugin`
        the plugin

    raises:
        `PluginLoadError`
            when the plugin cannot be loaded or has the wrong shape
    """
    if language in _REGISTRY:
        return _create_registered(language)

    _discover_entry_points()
    if language in _REGISTRY:
        return _create_registered(language)

    plugin_path = (cwd or Path.cwd()).joinpath(language).resolve()
    location = str(plugin_path) if plugin_path.exists() else PLUGIN_MODULE_PREFIX + language
    logger.debug("loading language plugin from %s", location)

    try:
        if plugin_path.exists():
            module = _load_module_from_path(plugin_path)
        else:
            module = importlib.import_module(location)
        return _plugin_from_module(module)
    except Exception as err:
        raise PluginLoadError(f"Unable to load language plugin {location}: {err}") from err
