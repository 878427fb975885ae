"""
the capability contract every language plugin implements.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from graphql import ExecutableDefinitionNode, GraphQLSchema


@dataclass(frozen=True)
class GraphQLTag:
    """
    a graphql document embedded in a source file.

    attributes:
        `template: str`
            the document text
        `line: int`
            1-based line of the tag in its source file
    """

    template: str
    line: int = 1


@dataclass(frozen=True)
class TypeGeneratorOptions:
    """
    settings passed to a plugin's type generator.

    attributes:
        `custom_scalars: Mapping[str, str]`
            scalar name to target type name
        `no_future_proof_enums: bool`
            leave the catch-all member out of enum types
    """

    custom_scalars: Mapping[str, str] = field(default_factory=dict)
    no_future_proof_enums: bool = False


@dataclass(frozen=True)
class ModuleSpec:
    """
    everything a module formatter needs to emit one artifact.

    attributes:
        `module_name: str`
            artifact module name, e.g. "AppQuery.graphql"
        `document_type: str`
            runtime type of the node, "ConcreteRequest" or "ReaderFragment"
        `type_text: str`
            output of the plugin's type generator
        `source_hash: str`
            md5 of the document text
        `node: Mapping[str, Any]`
            json-serialisable description of the compiled document
    """

    module_name: str
    document_type: str
    type_text: str
    source_hash: str
    node: Mapping[str, Any]


class TypeGenerator(Protocol):
    """generates target-language types for one document definition."""

    def generate(
        self,
        definition: ExecutableDefinitionNode,
        schema: GraphQLSchema,
        options: TypeGeneratorOptions,
    ) -> str: ...


TagFinder = Callable[[str, Path], list[GraphQLTag]]
ModuleFormatter = Callable[[ModuleSpec], str]


@dataclass(frozen=True)
class LanguagePlugin:
    """
    language-specific parsing and emitting, resolved once per run.

    attributes:
        `name: str`
            identifier the plugin is registered under
        `input_extensions: tuple[str, ...]`
            default source file extensions
        `output_extension: str`
            extension of generated artifacts
        `find_graphql_tags: TagFinder`
            locates embedded documents in a source file's text
        `format_module: ModuleFormatter`
            renders an artifact
        `type_generator: TypeGenerator`
            renders types for a document definition
    """

    name: str
    input_extensions: tuple[str, ...]
    output_extension: str
    find_graphql_tags: TagFinder
    format_module: ModuleFormatter
    type_generator: TypeGenerator
