"""tests for artifact writing."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from graphql import ExecutableDefinitionNode, GraphQLSchema, NameNode, SelectionSetNode

from relaycompiler.errors import CodegenError
from relaycompiler.parsers import DotGraphQLDocumentParser, ParsedDocument, SourceModuleDocumentParser
from relaycompiler.plugins.javascript import create_language_plugin, find_graphql_tags
from relaycompiler.reporter import ConsoleReporter
from relaycompiler.schema import load_schema
from relaycompiler.writer import ArtifactFileWriter, WriterOptions, get_artifact_file_writer


@pytest.fixture
def schema(schema_file: Path) -> GraphQLSchema:
    """the sample schema."""
    return load_schema(schema_file)


@pytest.fixture
def documents(project: Path) -> list[ParsedDocument]:
    """the parsed documents of the project's compilable sources."""
    parser = SourceModuleDocumentParser(project / "src", find_graphql_tags)
    return parser.parse_files(["App.js", "UserCard.js"])


def _writer(
    project: Path,
    schema: GraphQLSchema,
    documents: list[ParsedDocument],
    *,
    only_validate: bool = False,
    output_dir: Path | None = None,
    base_documents: list[ParsedDocument] | None = None,
) -> tuple[ArtifactFileWriter, io.StringIO]:
    stream = io.StringIO()
    get_writer = get_artifact_file_writer(
        project / "src",
        create_language_plugin(),
        {"DateTime": "string"},
        False,
        output_dir,
    )
    writer = get_writer(
        WriterOptions(
            only_validate=only_validate,
            schema=schema,
            documents=documents,
            base_documents=base_documents or [],
            reporter=ConsoleReporter(stream=stream),
        )
    )
    return writer, stream


class TestArtifactFileWriter:
    """tests for ArtifactFileWriter.write_all."""

    def test_writes_generated_modules(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that every operation and fragment gets an artifact."""
        writer, stream = _writer(project, schema, documents)

        changes = writer.write_all()

        generated = project / "src" / "__generated__"
        assert sorted(path.name for path in changes.created) == [
            "AppQuery.graphql.js",
            "UserCard_user.graphql.js",
        ]
        assert changes.has_changes is True
        query = (generated / "AppQuery.graphql.js").read_text()
        assert '"kind": "Request"' in query
        assert '"operationKind": "query"' in query
        # the operation text carries the fragments it spreads
        assert "fragment UserCard_user on User" in query
        fragment = (generated / "UserCard_user.graphql.js").read_text()
        assert '"kind": "Fragment"' in fragment
        assert '"type": "User"' in fragment
        assert "Created:\n - AppQuery.graphql.js\n - UserCard_user.graphql.js" in stream.getvalue()

    def test_second_run_is_unchanged(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that rewriting identical artifacts reports no changes."""
        first, _ = _writer(project, schema, documents)
        _ = first.write_all()
        second, stream = _writer(project, schema, documents)

        changes = second.write_all()

        assert changes.has_changes is False
        assert len(changes.unchanged) == 2
        assert "Unchanged: 2 files" in stream.getvalue()

    def test_validate_only_writes_nothing(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that validating reports pending changes without writing."""
        writer, stream = _writer(project, schema, documents, only_validate=True)

        changes = writer.write_all()

        assert changes.has_changes is True
        assert not (project / "src" / "__generated__").exists()
        assert "Would create:" in stream.getvalue()

    def test_updates_changed_artifact(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that modified artifacts are rewritten."""
        first, _ = _writer(project, schema, documents)
        _ = first.write_all()
        target = project / "src" / "__generated__" / "AppQuery.graphql.js"
        _ = target.write_text("stale")
        second, _ = _writer(project, schema, documents)

        changes = second.write_all()

        assert changes.updated == [target]
        assert target.read_text() != "stale"

    def test_deletes_stale_artifacts(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that artifacts without a definition are removed."""
        generated = project / "src" / "__generated__"
        generated.mkdir()
        stale = generated / "RemovedQuery.graphql.js"
        _ = stale.write_text("module.exports = {};")
        unrelated = generated / "notes.txt"
        _ = unrelated.write_text("keep me")
        writer, stream = _writer(project, schema, documents)

        changes = writer.write_all()

        assert changes.deleted == [stale]
        assert not stale.exists()
        assert unrelated.exists()
        assert "Deleted:\n - RemovedQuery.graphql.js" in stream.getvalue()

    def test_artifact_directory(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that a single artifact directory collects every artifact."""
        output_dir = project / "generated"
        writer, _ = _writer(project, schema, documents, output_dir=output_dir)

        _ = writer.write_all()

        assert (output_dir / "AppQuery.graphql.js").exists()
        assert (output_dir / "UserCard_user.graphql.js").exists()
        assert not (project / "src" / "__generated__").exists()

    def test_invalid_document(self, project: Path, schema: GraphQLSchema) -> None:
        """Test that documents invalid against the schema raise."""
        _ = (project / "src" / "Bad.js").write_text("graphql`query BadQuery { viewer { nope } }`")
        documents = SourceModuleDocumentParser(project / "src", find_graphql_tags).parse_files(
            ["Bad.js"]
        )
        writer, _ = _writer(project, schema, documents)

        with pytest.raises(CodegenError, match="nope"):
            _ = writer.write_all()

    def test_unsupported_definition_kind(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that definitions other than operations and fragments raise."""
        writer, _ = _writer(project, schema, documents)
        definition = ExecutableDefinitionNode(
            name=NameNode(value="Odd"),
            directives=(),
            variable_definitions=(),
            selection_set=SelectionSetNode(selections=()),
        )

        with pytest.raises(CodegenError, match="unsupported definition kind"):
            _ = writer._render(definition, schema, {})  # pyright: ignore[reportPrivateUsage]

    def test_base_documents_are_not_written(
        self, project: Path, schema: GraphQLSchema, documents: list[ParsedDocument]
    ) -> None:
        """Test that base documents are referenced but get no artifacts."""
        _ = (project / "src" / "extra.graphql").write_text(
            "extend type User { isSelected: Boolean }\nfragment Extra_user on User { isSelected }\n"
        )
        base = DotGraphQLDocumentParser(project / "src").parse_files(["extra.graphql"])
        _ = (project / "src" / "Selected.js").write_text(
            "graphql`query SelectedQuery { viewer { isSelected ...Extra_user } }`"
        )
        own = SourceModuleDocumentParser(project / "src", find_graphql_tags).parse_files(
            ["Selected.js"]
        )
        writer, _ = _writer(project, schema, [*documents, *own], base_documents=base)

        changes = writer.write_all()

        names = sorted(path.name for path in changes.created)
        assert names == [
            "AppQuery.graphql.js",
            "SelectedQuery.graphql.js",
            "UserCard_user.graphql.js",
        ]
        selected = (project / "src" / "__generated__" / "SelectedQuery.graphql.js").read_text()
        assert "fragment Extra_user on User" in selected
        assert "+isSelected: ?boolean," in selected
