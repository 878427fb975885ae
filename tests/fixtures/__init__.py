"""test fixtures and utilities for relaycompiler.

this package contains a sample schema and synthetic projects for the
compiler tests.
"""

from __future__ import annotations

from .projects import (
    APP_JS,
    LEGACY_JS,
    SCHEMA_SDL,
    USER_CARD_JS,
    create_project,
    write_schema,
)

__all__ = [
    "APP_JS",
    "LEGACY_JS",
    "SCHEMA_SDL",
    "USER_CARD_JS",
    "create_project",
    "write_schema",
]
