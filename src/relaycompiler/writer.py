"""
artifact writing.

turns the documents of a writer's parser into one generated module per
operation or fragment, and keeps the generated directories in sync with
them. in validate-only mode nothing is written; the pending changes are
only reported.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from graphql import (
    DocumentNode,
    ExecutableDefinitionNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSchema,
    NoUnusedFragmentsRule,
    OperationDefinitionNode,
    TypeSystemDefinitionNode,
    TypeSystemExtensionNode,
    extend_schema,
    print_ast,
    specified_rules,
    validate,
    visit,
)
from graphql.language import Visitor

from .errors import CodegenError
from .parsers import ParsedDocument
from .plugins.base import LanguagePlugin, ModuleSpec, TypeGeneratorOptions
from .reporter import Reporter

logger = logging.getLogger(__name__)

GENERATED_DIRECTORY_NAME: Final[str] = "__generated__"

# fragments are defined in one module and spread in another
VALIDATION_RULES: Final = tuple(rule for rule in specified_rules if rule is not NoUnusedFragmentsRule)


@dataclass(frozen=True)
class ArtifactWriterConfig:
    """
    writer settings fixed for the whole run.

    attributes:
        `base_dir: Path`
            source root, used for relative paths in reports
        `language_plugin: LanguagePlugin`
            formats modules and generates types
        `custom_scalars: Mapping[str, str]`
            scalar name to target type name
        `no_future_proof_enums: bool`
            leave the catch-all member out of enum types
        `output_dir: Path | None`
            single artifact directory, or none for __generated__ next to sources
    """

    base_dir: Path
    language_plugin: LanguagePlugin
    custom_scalars: Mapping[str, str] = field(default_factory=dict)
    no_future_proof_enums: bool = False
    output_dir: Path | None = None


@dataclass(frozen=True)
class WriterOptions:
    """
    inputs the engine hands to a writer factory.

    attributes:
        `only_validate: bool`
            report changes without writing
        `schema: GraphQLSchema`
            schema of the writer's parser
        `documents: list[ParsedDocument]`
            documents to generate artifacts for
        `base_documents: list[ParsedDocument]`
            documents of the base parsers, available for reference only
        `source_control: Any`
            hook notified of added/removed files, unused when none
        `reporter: Reporter`
            progress sink
    """

    only_validate: bool
    schema: GraphQLSchema
    documents: list[ParsedDocument]
    base_documents: list[ParsedDocument]
    reporter: Reporter
    source_control: Any = None


@dataclass
class ArtifactChanges:
    """artifact paths grouped by what a write did, or would do, to them."""

    created: list[Path] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)
    unchanged: list[Path] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.updated or self.deleted)


@dataclass
class WriterConfig:
    """
    how the engine produces one kind of output.

    attributes:
        `get_writer: Callable[[WriterOptions], ArtifactFileWriter]`
            writer factory
        `is_generated_file: Callable[[str], bool]`
            recognises this writer's own artifacts
        `parser: str`
            name of the parser whose documents get artifacts
        `base_parsers: tuple[str, ...]`
            parsers whose documents must be available first
    """

    get_writer: Callable[[WriterOptions], ArtifactFileWriter]
    is_generated_file: Callable[[str], bool]
    parser: str
    base_parsers: tuple[str, ...] = ()


class _FragmentSpreadCollector(Visitor):
    def __init__(self) -> None:
        super().__init__()
        self.names: set[str] = set()

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args: Any) -> None:
        self.names.add(node.name.value)


def _fragment_spreads(node: ExecutableDefinitionNode) -> set[str]:
    collector = _FragmentSpreadCollector()
    _ = visit(node, collector)
    return collector.names


class ArtifactFileWriter:
    """
    writes generated modules for one compilation.

    attributes:
        `config: ArtifactWriterConfig`
            run-wide settings
        `only_validate: bool`
            report changes without writing
        `schema: GraphQLSchema`
            schema documents are validated against
        `documents: list[ParsedDocument]`
            documents to generate artifacts for
        `base_documents: list[ParsedDocument]`
            referenced documents, and client schema extensions
        `reporter: Reporter`
            progress sink
    """

    config: ArtifactWriterConfig
    only_validate: bool
    schema: GraphQLSchema
    documents: list[ParsedDocument]
    base_documents: list[ParsedDocument]
    reporter: Reporter

    def __init__(
        self,
        config: ArtifactWriterConfig,
        *,
        only_validate: bool,
        schema: GraphQLSchema,
        documents: list[ParsedDocument],
        base_documents: list[ParsedDocument],
        reporter: Reporter,
    ) -> None:
        self.config = config
        self.only_validate = only_validate
        self.schema = schema
        self.documents = documents
        self.base_documents = base_documents
        self.reporter = reporter

    @property
    def extension(self) -> str:
        return self.config.language_plugin.output_extension

    def artifact_path(self, source: Path, name: str) -> Path:
        """where the artifact for a definition found in `source` goes."""
        directory = self.config.output_dir or source.parent.joinpath(GENERATED_DIRECTORY_NAME)
        return directory.joinpath(f"{name}.graphql.{self.extension}")

    def _schema_with_extensions(self) -> GraphQLSchema:
        extensions = [
            definition
            for parsed in (*self.base_documents, *self.documents)
            for definition in parsed.document.definitions
            if isinstance(definition, (TypeSystemDefinitionNode, TypeSystemExtensionNode))
        ]
        if not extensions:
            return self.schema
        logger.debug("extending schema with %d client definitions", len(extensions))
        return extend_schema(
            self.schema,
            DocumentNode(definitions=tuple(extensions)),
            assume_valid=True,
            assume_valid_sdl=True,
        )

    def _validate(self, schema: GraphQLSchema) -> dict[str, FragmentDefinitionNode]:
        definitions = [
            definition
            for parsed in (*self.base_documents, *self.documents)
            for definition in parsed.document.definitions
            if isinstance(definition, ExecutableDefinitionNode)
        ]
        errors = validate(schema, DocumentNode(definitions=tuple(definitions)), list(VALIDATION_RULES))
        if errors:
            raise CodegenError("\n".join(error.message for error in errors))

        return {
            definition.name.value: definition
            for definition in definitions
            if isinstance(definition, FragmentDefinitionNode)
        }

    def _document_text(
        self,
        definition: ExecutableDefinitionNode,
        fragments: Mapping[str, FragmentDefinitionNode],
    ) -> str:
        """print an operation together with every fragment it reaches."""
        if isinstance(definition, FragmentDefinitionNode):
            return print_ast(definition)

        reached: set[str] = set()
        pending = list(_fragment_spreads(definition))
        while pending:
            name = pending.pop()
            if name in reached or name not in fragments:
                continue
            reached.add(name)
            pending.extend(_fragment_spreads(fragments[name]))

        return "\n\n".join(
            [print_ast(definition), *(print_ast(fragments[name]) for name in sorted(reached))]
        )

    def _render(
        self,
        definition: ExecutableDefinitionNode,
        schema: GraphQLSchema,
        fragments: Mapping[str, FragmentDefinitionNode],
    ) -> tuple[str, str]:
        """return the artifact name and contents for a definition."""
        if not isinstance(definition, (OperationDefinitionNode, FragmentDefinitionNode)):
            raise CodegenError(f"unsupported definition kind: {definition.kind}")
        if definition.name is None:
            raise CodegenError("operations must be named to generate artifacts")
        name = definition.name.value
        text = self._document_text(definition, fragments)
        source_hash = hashlib.md5(text.encode("utf-8")).hexdigest()

        node: dict[str, Any]
        if isinstance(definition, OperationDefinitionNode):
            document_type = "ConcreteRequest"
            node = {
                "kind": "Request",
                "name": name,
                "operationKind": definition.operation.value,
                "text": text,
            }
        else:
            document_type = "ReaderFragment"
            node = {
                "kind": "Fragment",
                "name": name,
                "type": definition.type_condition.name.value,
                "text": text,
            }

        plugin = self.config.language_plugin
        type_text = plugin.type_generator.generate(
            definition,
            schema,
            TypeGeneratorOptions(
                custom_scalars=self.config.custom_scalars,
                no_future_proof_enums=self.config.no_future_proof_enums,
            ),
        )
        contents = plugin.format_module(
            ModuleSpec(
                module_name=f"{name}.graphql",
                document_type=document_type,
                type_text=type_text,
                source_hash=source_hash,
                node=node,
            )
        )
        return name, contents

    def _write(self, path: Path, contents: str, changes: ArtifactChanges) -> None:
        existing: str | None = None
        if path.exists():
            existing = path.read_text(encoding="utf-8")

        if existing == contents:
            changes.unchanged.append(path)
            return

        (changes.created if existing is None else changes.updated).append(path)
        if not self.only_validate:
            path.parent.mkdir(parents=True, exist_ok=True)
            _ = path.write_text(contents, encoding="utf-8")

    def _delete_stale(self, directories: set[Path], written: set[Path], changes: ArtifactChanges) -> None:
        suffix = f".graphql.{self.extension}"
        for directory in sorted(directories):
            if not directory.is_dir():
                continue
            for path in sorted(directory.iterdir()):
                if path in written or not path.is_file() or not path.name.endswith(suffix):
                    continue
                changes.deleted.append(path)
                if not self.only_validate:
                    path.unlink()

    def _report(self, changes: ArtifactChanges) -> None:
        verbs = (
            ("Would create", "Would update", "Would delete")
            if self.only_validate
            else ("Created", "Updated", "Deleted")
        )
        for verb, paths in zip(verbs, (changes.created, changes.updated, changes.deleted)):
            if paths:
                listing = "\n".join(f" - {path.name}" for path in paths)
                self.reporter.report_message(f"{verb}:\n{listing}")
        if changes.unchanged:
            count = len(changes.unchanged)
            self.reporter.report_message(f"Unchanged: {count} file{'' if count == 1 else 's'}")

    def write_all(self) -> ArtifactChanges:
        """
        generate, compare and write every artifact.

        returns: `ArtifactChanges`
            what was written (or, when validating, what would be)

        raises:
            `CodegenError`
                when a document is invalid against the schema
        """
        schema = self._schema_with_extensions()
        fragments = self._validate(schema)

        changes = ArtifactChanges()
        written: set[Path] = set()
        directories: set[Path] = set()
        if self.config.output_dir is not None:
            directories.add(self.config.output_dir)

        for parsed in self.documents:
            directories.add(self.artifact_path(parsed.path, "_").parent)
            for definition in parsed.document.definitions:
                if not isinstance(definition, ExecutableDefinitionNode):
                    continue
                name, contents = self._render(definition, schema, fragments)
                path = self.artifact_path(parsed.path, name)
                self._write(path, contents, changes)
                written.add(path)

        self._delete_stale(directories, written, changes)
        self._report(changes)
        return changes


def get_artifact_file_writer(
    base_dir: Path,
    language_plugin: LanguagePlugin,
    custom_scalars: Mapping[str, str],
    no_future_proof_enums: bool,
    output_dir: Path | None = None,
) -> Callable[[WriterOptions], ArtifactFileWriter]:
    """
    create the writer factory for a run.

    arguments:
        `base_dir: Path`
            source root
        `language_plugin: LanguagePlugin`
            the run's language plugin
        `custom_scalars: Mapping[str, str]`
            scalar name to target type name
        `no_future_proof_enums: bool`
            leave the catch-all member out of enum types
        `output_dir: Path | None`
            single artifact directory, if any

    returns: `Callable[[WriterOptions], ArtifactFileWriter]`
        factory the engine calls once per compilation
    """
    config = ArtifactWriterConfig(
        base_dir=base_dir,
        language_plugin=language_plugin,
        custom_scalars=dict(custom_scalars),
        no_future_proof_enums=no_future_proof_enums,
        output_dir=output_dir,
    )

    def get_writer(options: WriterOptions) -> ArtifactFileWriter:
        return ArtifactFileWriter(
            config,
            only_validate=options.only_validate,
            schema=options.schema,
            documents=options.documents,
            base_documents=options.base_documents,
            reporter=options.reporter,
        )

    return get_writer
