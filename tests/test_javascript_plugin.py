"""tests for the built-in javascript language plugin."""

from __future__ import annotations

from pathlib import Path

import pytest
from graphql import FragmentDefinitionNode, GraphQLSchema, OperationDefinitionNode, parse

from relaycompiler.plugins.base import ModuleSpec, TypeGeneratorOptions
from relaycompiler.plugins.javascript import (
    FUTURE_ENUM_VALUE,
    FlowTypeGenerator,
    find_graphql_tags,
    format_module,
)
from relaycompiler.schema import load_schema


@pytest.fixture
def schema(schema_file: Path) -> GraphQLSchema:
    """the sample schema."""
    return load_schema(schema_file)


def _generate(
    schema: GraphQLSchema,
    source: str,
    options: TypeGeneratorOptions | None = None,
) -> str:
    definition = parse(source).definitions[0]
    assert isinstance(definition, (OperationDefinitionNode, FragmentDefinitionNode))
    return FlowTypeGenerator().generate(definition, schema, options or TypeGeneratorOptions())


class TestFindGraphQLTags:
    """tests for find_graphql_tags."""

    def test_finds_tags_with_lines(self) -> None:
        """Test that each tagged template is found with its starting line."""
        text = "const a = 1;\nconst q = graphql`query A { viewer { id } }`;\n\ngraphql`fragment F on User { id }`\n"

        tags = find_graphql_tags(text, Path("a.js"))

        assert [tag.line for tag in tags] == [2, 4]
        assert tags[0].template == "query A { viewer { id } }"

    def test_ignores_other_tags(self) -> None:
        """Test that similarly named tags are not matched."""
        text = "const q = mygraphql`query A { id }`; const c = css`color: red`;"

        assert find_graphql_tags(text, Path("a.js")) == []


class TestFormatModule:
    """tests for format_module."""

    def test_commonjs_module(self) -> None:
        """Test the layout of a generated module."""
        contents = format_module(
            ModuleSpec(
                module_name="AppQuery.graphql",
                document_type="ConcreteRequest",
                type_text="export type AppQuery = {||};",
                source_hash="abc123",
                node={"kind": "Request", "name": "AppQuery"},
            )
        )

        assert "@flow" in contents
        assert "@relayHash abc123" in contents
        assert "import type { ConcreteRequest } from 'relay-runtime';" in contents
        assert "export type AppQuery = {||};" in contents
        assert '"kind": "Request"' in contents
        assert "(node/*: any*/).hash = 'abc123';" in contents
        assert contents.endswith("module.exports = node;\n")


class TestFlowTypeGenerator:
    """tests for FlowTypeGenerator."""

    def test_operation_types(self, schema: GraphQLSchema) -> None:
        """Test variables and response types of a query."""
        text = _generate(schema, "query Q($id: ID!, $first: Int) { viewer { name } }")

        assert "export type QVariables = {|\n  id: string,\n  first?: ?number,\n|};" in text
        assert "export type QResponse = {|\n  +viewer: ?{|\n    +name: ?string,\n  |},\n|};" in text
        assert "  variables: QVariables," in text
        assert "  response: QResponse," in text

    def test_operation_without_variables(self, schema: GraphQLSchema) -> None:
        """Test that an operation without variables gets an empty object type."""
        text = _generate(schema, "query Q { viewer { id } }")

        assert "export type QVariables = {||};" in text

    def test_operation_with_unset_variable_definitions(self, schema: GraphQLSchema) -> None:
        """Test an operation node whose variable definitions are None."""
        parsed = parse("query Q { viewer { id } }").definitions[0]
        assert isinstance(parsed, OperationDefinitionNode)
        definition = OperationDefinitionNode(
            operation=parsed.operation,
            name=parsed.name,
            variable_definitions=None,  # pyright: ignore[reportArgumentType]
            directives=parsed.directives,
            selection_set=parsed.selection_set,
        )

        text = FlowTypeGenerator().generate(definition, schema, TypeGeneratorOptions())

        assert "export type QVariables = {||};" in text

    def test_fragment_types(self, schema: GraphQLSchema) -> None:
        """Test the reference and data types of a fragment."""
        text = _generate(schema, "fragment F on User { id role }")

        assert "declare export opaque type F$ref: FragmentReference;" in text
        assert "+id: string," in text
        assert "+$refType: F$ref," in text

    def test_enum_future_value(self, schema: GraphQLSchema) -> None:
        """Test that enums carry the catch-all member by default."""
        text = _generate(schema, "fragment F on User { role }")

        assert f"+role: 'ADMIN' | 'MEMBER' | {FUTURE_ENUM_VALUE}," in text

    def test_no_future_proof_enums(self, schema: GraphQLSchema) -> None:
        """Test that the catch-all member can be left out."""
        text = _generate(
            schema, "fragment F on User { role }", TypeGeneratorOptions(no_future_proof_enums=True)
        )

        assert "+role: 'ADMIN' | 'MEMBER'," in text
        assert FUTURE_ENUM_VALUE not in text

    def test_custom_scalars(self, schema: GraphQLSchema) -> None:
        """Test custom scalar mapping and the fallback for unmapped scalars."""
        mapped = _generate(
            schema,
            "fragment F on User { joined }",
            TypeGeneratorOptions(custom_scalars={"DateTime": "string"}),
        )
        unmapped = _generate(schema, "fragment F on User { joined }")

        assert "+joined: ?string," in mapped
        assert "+joined: ?any," in unmapped

    def test_lists_and_aliases(self, schema: GraphQLSchema) -> None:
        """Test read-only arrays and aliased fields."""
        text = _generate(schema, "fragment F on User { pals: friends(first: 2) { id } }")

        assert "+pals: ?$ReadOnlyArray<{|" in text

    def test_fragment_spreads(self, schema: GraphQLSchema) -> None:
        """Test that spreads become fragment references."""
        text = _generate(schema, "fragment F on User { ...A ...B }")

        assert "+$fragmentRefs: A$ref & B$ref," in text

    def test_inline_fragment_fields_are_optional(self, schema: GraphQLSchema) -> None:
        """Test that fields under a narrower type condition are optional."""
        text = _generate(schema, "query Q { node(id: 1) { id ... on User { name } } }")

        assert "+id: string," in text
        assert "+name?: ?string," in text

    def test_typename(self, schema: GraphQLSchema) -> None:
        """Test that __typename is a string."""
        text = _generate(schema, "fragment F on User { __typename }")

        assert "+__typename: string," in text
