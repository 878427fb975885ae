"""
built-in javascript language plugin.

finds graphql`...` tagged templates in .js/.jsx files and emits commonjs
artifacts annotated with flow types.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from graphql import (
    ExecutableDefinitionNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLEnumType,
    GraphQLInputObjectType,
    GraphQLInputType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLOutputType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLType,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionSetNode,
    is_non_null_type,
    type_from_ast,
)

from .base import GraphQLTag, LanguagePlugin, ModuleSpec, TypeGeneratorOptions

GRAPHQL_TAG_RE: Final[re.Pattern[str]] = re.compile(r"\bgraphql\s*`([^`]*)`")

FLOW_SCALARS: Final[dict[str, str]] = {
    "ID": "string",
    "String": "string",
    "Int": "number",
    "Float": "number",
    "Boolean": "boolean",
}
FUTURE_ENUM_VALUE: Final[str] = "'%future added value'"


def find_graphql_tags(text: str, file_path: Path) -> list[GraphQLTag]:
    """
    find graphql`...` tagged templates in javascript source.

    arguments:
        `text: str`
            file contents
        `file_path: Path`
            the file the text came from (unused, part of the plugin contract)

    returns: `list[GraphQLTag]`
        the embedded documents in source order
    """
    _ = file_path
    return [
        GraphQLTag(template=match.group(1), line=text.count("\n", 0, match.start()) + 1)
        for match in GRAPHQL_TAG_RE.finditer(text)
    ]


def format_module(spec: ModuleSpec) -> str:
    """render a commonjs artifact module."""
    node = json.dumps(dict(spec.node), indent=2)
    return f"""/**
 * @flow
 * @relayHash {spec.source_hash}
 */

/* eslint-disable */

'use strict';

/*::
import type {{ {spec.document_type} }} from 'relay-runtime';
{spec.type_text}
*/

const node/*: {spec.document_type}*/ = {node};
// prettier-ignore
(node/*: any*/).hash = '{spec.source_hash}';
module.exports = node;
"""


@dataclass(frozen=True)
class _Context:
    schema: GraphQLSchema
    options: TypeGeneratorOptions


class FlowTypeGenerator:
    """generates flow types for operations and fragments."""

    def generate(
        self,
        definition: ExecutableDefinitionNode,
        schema: GraphQLSchema,
        options: TypeGeneratorOptions,
    ) -> str:
        ctx = _Context(schema, options)

        if isinstance(definition, FragmentDefinitionNode):
            name = definition.name.value
            parent = schema.get_type(definition.type_condition.name.value)
            body = self._selections(
                ctx, definition.selection_set, parent, 0, extra=[f"+$refType: {name}$ref"]
            )
            return "\n".join(
                [
                    "import type { FragmentReference } from 'relay-runtime';",
                    f"declare export opaque type {name}$ref: FragmentReference;",
                    f"export type {name} = {body};",
                ]
            )

        if not isinstance(definition, OperationDefinitionNode) or definition.name is None:
            raise ValueError("only named operations and fragments have types")

        name = definition.name.value
        root = schema.get_root_type(definition.operation)
        variables = self._variables(ctx, definition)
        response = self._selections(ctx, definition.selection_set, root, 0)
        return "\n".join(
            [
                f"export type {name}Variables = {variables};",
                f"export type {name}Response = {response};",
                f"export type {name} = {{|",
                f"  variables: {name}Variables,",
                f"  response: {name}Response,",
                "|};",
            ]
        )

    def _object(self, lines: list[str], depth: int) -> str:
        if not lines:
            return "{||}"
        pad = "  " * (depth + 1)
        body = "".join(f"{pad}{line},\n" for line in lines)
        return "{|\n" + body + "  " * depth + "|}"

    def _variables(self, ctx: _Context, definition: OperationDefinitionNode) -> str:
        lines: list[str] = []
        for variable in definition.variable_definitions or ():
            type_ = type_from_ast(ctx.schema, variable.type)
            if type_ is None:
                raise ValueError(f"unknown type for variable ${variable.variable.name.value}")
            optional = "" if is_non_null_type(type_) else "?"
            lines.append(
                f"{variable.variable.name.value}{optional}: "
                + self._input_type(ctx, type_, 1, frozenset())
            )
        return self._object(lines, 0)

    def _input_type(
        self,
        ctx: _Context,
        type_: GraphQLInputType,
        depth: int,
        seen: frozenset[str],
    ) -> str:
        if isinstance(type_, GraphQLNonNull):
            return self._input_named(ctx, type_.of_type, depth, seen)
        return "?" + self._input_named(ctx, type_, depth, seen)

    def _input_named(
        self,
        ctx: _Context,
        type_: GraphQLInputType,
        depth: int,
        seen: frozenset[str],
    ) -> str:
        if isinstance(type_, GraphQLList):
            return f"$ReadOnlyArray<{self._input_type(ctx, type_.of_type, depth, seen)}>"
        if isinstance(type_, GraphQLInputObjectType):
            if type_.name in seen:
                return "any"
            lines = [
                f"{field_name}{'' if is_non_null_type(field.type) else '?'}: "
                + self._input_type(ctx, field.type, depth + 1, seen | {type_.name})
                for field_name, field in type_.fields.items()
            ]
            return self._object(lines, depth)
        return self._leaf(ctx, type_)

    def _leaf(self, ctx: _Context, type_: GraphQLType) -> str:
        if isinstance(type_, GraphQLEnumType):
            members = [f"'{value}'" for value in sorted(type_.values)]
            if not ctx.options.no_future_proof_enums:
                members.append(FUTURE_ENUM_VALUE)
            return " | ".join(members)
        if isinstance(type_, GraphQLScalarType):
            if type_.name in ctx.options.custom_scalars:
                return ctx.options.custom_scalars[type_.name]
            return FLOW_SCALARS.get(type_.name, "any")
        return "any"

    def _output_type(
        self,
        ctx: _Context,
        type_: GraphQLOutputType,
        selection_set: SelectionSetNode | None,
        depth: int,
    ) -> str:
        if isinstance(type_, GraphQLNonNull):
            return self._output_named(ctx, type_.of_type, selection_set, depth)
        return "?" + self._output_named(ctx, type_, selection_set, depth)

    def _output_named(
        self,
        ctx: _Context,
        type_: GraphQLOutputType,
        selection_set: SelectionSetNode | None,
        depth: int,
    ) -> str:
        if isinstance(type_, GraphQLList):
            inner = self._output_type(ctx, type_.of_type, selection_set, depth)
            return f"$ReadOnlyArray<{inner}>"
        if selection_set is not None and isinstance(type_, GraphQLNamedType):
            return self._selections(ctx, selection_set, type_, depth)
        return self._leaf(ctx, type_)

    def _selections(
        self,
        ctx: _Context,
        selection_set: SelectionSetNode,
        parent: GraphQLNamedType | None,
        depth: int,
        extra: list[str] | None = None,
    ) -> str:
        fields: dict[str, str] = {}
        spreads: list[str] = []
        self._collect(ctx, selection_set, parent, depth, fields, spreads, optional=False)

        lines = list(fields.values())
        if spreads:
            lines.append("+$fragmentRefs: " + " & ".join(f"{name}$ref" for name in spreads))
        lines.extend(extra or [])
        return self._object(lines, depth)

    def _collect(
        self,
        ctx: _Context,
        selection_set: SelectionSetNode,
        parent: GraphQLNamedType | None,
        depth: int,
        fields: dict[str, str],
        spreads: list[str],
        optional: bool,
    ) -> None:
        parent_fields = (
            parent.fields
            if isinstance(parent, (GraphQLObjectType, GraphQLInterfaceType))
            else {}
        )

        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                key = (selection.alias or selection.name).value
                if selection.name.value == "__typename":
                    type_text = "string"
                elif (field := parent_fields.get(selection.name.value)) is not None:
                    type_text = self._output_type(
                        ctx, field.type, selection.selection_set, depth + 1
                    )
                else:
                    type_text = "any"
                fields.setdefault(key, f"+{key}{'?' if optional else ''}: {type_text}")

            elif isinstance(selection, InlineFragmentNode):
                condition = parent
                if selection.type_condition is not None:
                    condition = ctx.schema.get_type(selection.type_condition.name.value)
                self._collect(
                    ctx,
                    selection.selection_set,
                    condition,
                    depth,
                    fields,
                    spreads,
                    optional=optional or condition is not parent,
                )

            elif isinstance(selection, FragmentSpreadNode):
                spreads.append(selection.name.value)


def create_language_plugin() -> LanguagePlugin:
    """create the built-in javascript plugin."""
    return LanguagePlugin(
        name="javascript",
        input_extensions=("js", "jsx"),
        output_extension="js",
        find_graphql_tags=find_graphql_tags,
        format_module=format_module,
        type_generator=FlowTypeGenerator(),
    )
