"""
schema loading for relaycompiler.

reads a .graphql sdl or .json introspection file and builds the schema
that documents are compiled against.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Final

from graphql import (
    DirectiveDefinitionNode,
    GraphQLSchema,
    build_ast_schema,
    build_client_schema,
    parse,
    print_schema,
)

from .errors import SchemaLoadError

logger = logging.getLogger(__name__)

SCHEMA_DIRECTIVES: Final[str] = """
directive @include(if: Boolean) on FRAGMENT_SPREAD | FIELD
directive @skip(if: Boolean) on FRAGMENT_SPREAD | FIELD
"""

_INJECTED_DIRECTIVE_NAMES: Final[frozenset[str]] = frozenset({"include", "skip"})


def _introspection_to_sdl(text: str) -> str:
    """convert introspection json, with or without the "data" envelope, to sdl."""
    data: dict[str, Any] = json.loads(text)
    introspection = data.get("data", data)
    return print_schema(build_client_schema(introspection))


def _check_no_injected_directives(source: str) -> None:
    """reject schemas that declare @include or @skip themselves."""
    for definition in parse(source).definitions:
        if (
            isinstance(definition, DirectiveDefinitionNode)
            and definition.name.value in _INJECTED_DIRECTIVE_NAMES
        ):
            raise SchemaLoadError(
                f"the schema declares directive @{definition.name.value}, "
                + "which is provided by the compiler; remove the declaration"
            )


def load_schema(schema_path: Path) -> GraphQLSchema:
    """
    load and build a schema from disk.

    the @include and @skip directive declarations are always prepended to
    the schema source, and the schema is built without validation.

    arguments:
        `schema_path: Path`
            absolute path to a .graphql or .json schema file

    returns: `GraphQLSchema`
        the built schema

    raises:
        `SchemaLoadError`
            when the file cannot be read, converted or parsed
    """
    try:
        source = schema_path.read_text(encoding="utf-8")
        if schema_path.suffix == ".json":
            logger.debug("converting introspection result %s to sdl", schema_path)
            source = _introspection_to_sdl(source)
        _check_no_injected_directives(source)
        document = parse(SCHEMA_DIRECTIVES + "\n" + source)
        return build_ast_schema(document, assume_valid=True, assume_valid_sdl=True)
    except Exception as e:
        raise SchemaLoadError(
            f"""
Error loading schema. Expected the schema to be a .graphql or a .json
file, describing your GraphQL server's API. Error detail:

{type(e).__name__}: {e}
            """.strip()
        ) from e
