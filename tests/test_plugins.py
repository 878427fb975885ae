"""tests for language plugin resolution."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from relaycompiler import plugins
from relaycompiler.errors import PluginLoadError
from relaycompiler.plugins import (
    LanguagePlugin,
    register_language_plugin,
    registered_language_plugins,
    resolve_language_plugin,
)
from relaycompiler.plugins.javascript import create_language_plugin

PATH_PLUGIN = """
from dataclasses import replace

from relaycompiler.plugins.javascript import create_language_plugin


def language_plugin():
    return replace(create_language_plugin(), name="from-path", output_extension="mjs")
"""


@pytest.fixture(autouse=True)
def isolated_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    """keep registrations and entry point discovery local to each test."""
    monkeypatch.setattr(plugins, "_REGISTRY", dict(plugins._REGISTRY))
    monkeypatch.setattr(plugins, "_DISCOVERY_STATE", {"discovered": False})


class TestResolveLanguagePlugin:
    """tests for resolve_language_plugin."""

    def test_builtin_does_not_import(self, tmp_path: Path) -> None:
        """Test that the built-in plugin resolves without any module import."""
        with patch("relaycompiler.plugins.importlib.import_module") as import_module:
            plugin = resolve_language_plugin("javascript", tmp_path)

        import_module.assert_not_called()
        assert plugin.name == "javascript"
        assert plugin.input_extensions == ("js", "jsx")
        assert plugin.output_extension == "js"

    def test_unknown_language_names_module(self, tmp_path: Path) -> None:
        """Test that a missing plugin reports the conventional module name."""
        with pytest.raises(PluginLoadError) as exc_info:
            _ = resolve_language_plugin("custom", tmp_path)

        message = str(exc_info.value)
        assert message.startswith("Unable to load language plugin relaycompiler_language_custom:")

    def test_registered_plugin(self, tmp_path: Path) -> None:
        """Test that explicit registrations take priority."""
        custom = replace(create_language_plugin(), name="custom")
        register_language_plugin("custom", lambda: custom)

        assert resolve_language_plugin("custom", tmp_path) is custom
        assert "custom" in registered_language_plugins()

    def test_registered_factory_failure(self, tmp_path: Path) -> None:
        """Test that a failing registered factory is wrapped."""

        def broken() -> LanguagePlugin:
            raise RuntimeError("factory exploded")

        register_language_plugin("broken", broken)

        with pytest.raises(PluginLoadError, match="Unable to load language plugin broken: factory exploded"):
            _ = resolve_language_plugin("broken", tmp_path)

    def test_module_by_name(self, tmp_path: Path) -> None:
        """Test loading a conventionally named module."""
        module = MagicMock()
        module.language_plugin.return_value = create_language_plugin()

        with patch(
            "relaycompiler.plugins.importlib.import_module", return_value=module
        ) as import_module:
            plugin = resolve_language_plugin("flowish", tmp_path)

        import_module.assert_called_once_with("relaycompiler_language_flowish")
        assert isinstance(plugin, LanguagePlugin)

    def test_plugin_from_file(self, tmp_path: Path) -> None:
        """Test loading a plugin from a path relative to the working directory."""
        _ = (tmp_path / "my_plugin.py").write_text(PATH_PLUGIN)

        plugin = resolve_language_plugin("my_plugin.py", tmp_path)

        assert plugin.name == "from-path"
        assert plugin.output_extension == "mjs"

    def test_plugin_from_package_directory(self, tmp_path: Path) -> None:
        """Test loading a plugin package directory."""
        package = tmp_path / "pkg_plugin"
        package.mkdir()
        _ = (package / "__init__.py").write_text(PATH_PLUGIN)

        plugin = resolve_language_plugin("pkg_plugin", tmp_path)

        assert plugin.name == "from-path"

    def test_missing_factory(self, tmp_path: Path) -> None:
        """Test that a module without the factory is rejected."""
        _ = (tmp_path / "empty_plugin.py").write_text("VALUE = 1\n")

        with pytest.raises(PluginLoadError, match="`language_plugin` factory"):
            _ = resolve_language_plugin("empty_plugin.py", tmp_path)

    def test_factory_wrong_return(self, tmp_path: Path) -> None:
        """Test that a factory returning something else is rejected."""
        _ = (tmp_path / "bad_plugin.py").write_text("def language_plugin():\n    return {}\n")

        with pytest.raises(PluginLoadError, match="got dict"):
            _ = resolve_language_plugin("bad_plugin.py", tmp_path)

    def test_plugin_import_error(self, tmp_path: Path) -> None:
        """Test that errors raised while importing are wrapped."""
        _ = (tmp_path / "broken_plugin.py").write_text("raise RuntimeError('boom')\n")

        with pytest.raises(PluginLoadError, match="boom"):
            _ = resolve_language_plugin("broken_plugin.py", tmp_path)


class TestEntryPoints:
    """tests for entry point discovery."""

    def test_entry_point_plugin(self, tmp_path: Path) -> None:
        """Test that advertised entry points are resolved by name."""
        entry = MagicMock()
        entry.name = "typescript"
        entry.load.return_value = lambda: replace(create_language_plugin(), name="typescript")

        with patch("relaycompiler.plugins.metadata.entry_points", return_value=[entry]) as eps:
            plugin = resolve_language_plugin("typescript", tmp_path)

        eps.assert_called_once_with(group="relaycompiler.languages")
        assert plugin.name == "typescript"

    def test_entry_point_failure(self, tmp_path: Path) -> None:
        """Test that a failing entry point is reported."""
        entry = MagicMock()
        entry.name = "typescript"
        entry.load.side_effect = ImportError("no module named ts")

        with patch("relaycompiler.plugins.metadata.entry_points", return_value=[entry]):
            with pytest.raises(PluginLoadError, match="Unable to load language plugin typescript: no module named ts"):
                _ = resolve_language_plugin("typescript", tmp_path)

    def test_entry_point_cannot_shadow_builtin(self) -> None:
        """Test that an entry point named like the built-in is ignored."""
        entry = MagicMock()
        entry.name = "javascript"

        with patch("relaycompiler.plugins.metadata.entry_points", return_value=[entry]):
            names = registered_language_plugins()

        entry.load.assert_not_called()
        assert names.count("javascript") == 1
