"""tests for glob pattern matching."""

from __future__ import annotations

import pytest

from relaycompiler.patterns import PatternMatcher, glob_match


class TestGlobMatch:
    """tests for glob_match."""

    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            ("App.js", "**/*.+(js|jsx)", True),
            ("a/b/App.jsx", "**/*.+(js|jsx)", True),
            ("a/b/App.ts", "**/*.+(js|jsx)", False),
            ("App.js", "*.js", True),
            ("a/App.js", "*.js", False),
            ("a/App.js", "a/?pp.js", True),
            ("node_modules/x/index.js", "**/node_modules/**", True),
            ("src/node_modules/x.js", "**/node_modules/**", True),
            ("a/__generated__/Q.graphql.js", "**/*.graphql.*", True),
            ("a/schema.graphql", "**/*.graphql.*", False),
            ("a/x.ts", "**/*.{ts,tsx}", True),
            ("a/b.js", "[ab]/*.js", True),
            ("c/b.js", "[!ab]/*.js", True),
            ("a/b.js", "[!ab]/*.js", False),
            ("components/Button.js", "./components/**", True),
            ("a/.hidden.js", "**/*.js", False),
            (".cache/a.js", "**/*.js", False),
            (".eslintrc", "?eslintrc", False),
            (".hidden.js", "{*,x}.js", False),
            (".hidden.js", "**/.hidden.js", True),
            (".storybook/Story.js", ".storybook/*.js", True),
            ("a/.cache/b.js", "a/**", False),
        ],
    )
    def test_patterns(self, path: str, pattern: str, expected: bool) -> None:
        """Test glob translation against sample paths."""
        assert glob_match(path, pattern) is expected


class TestPatternMatcher:
    """tests for PatternMatcher."""

    def test_include_and_exclude(self) -> None:
        """Test that excludes win over includes."""
        matcher = PatternMatcher(include=["**/*.js"], exclude=["**/excluded/**"])

        assert matcher.matches("App.js") is True
        assert matcher.matches("excluded/Legacy.js") is False
        assert matcher.matches("README.md") is False

    def test_excluded_parent_directory(self) -> None:
        """Test that excluding a directory excludes what is below it."""
        matcher = PatternMatcher(include=["**"], exclude=["vendor"])

        assert matcher.is_excluded("vendor/lib/a.js") is True
        assert matcher.is_excluded("src/vendor.js") is False

    def test_excluded_dir(self) -> None:
        """Test directory pruning decisions."""
        matcher = PatternMatcher(include=["**"], exclude=["**/node_modules/**"])

        assert matcher.is_excluded_dir("node_modules") is True
        assert matcher.is_excluded_dir("src/node_modules") is True
        assert matcher.is_excluded_dir("src") is False
