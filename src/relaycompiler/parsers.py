"""
document parsers.

a parser turns the files of one logical file set into graphql documents:
either by extracting tagged documents from application sources, or by
parsing standalone .graphql files as a whole.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, final

from graphql import DocumentNode, GraphQLError, GraphQLSchema, parse
from typing_extensions import override

from .errors import CodegenError
from .plugins.base import TagFinder

logger = logging.getLogger(__name__)

FileFilter = Callable[[str], bool]


@dataclass(frozen=True)
class ParsedDocument:
    """
    the graphql definitions found in one file.

    attributes:
        `path: Path`
            absolute path of the file
        `document: DocumentNode`
            every definition the file contains
    """

    path: Path
    document: DocumentNode


class DocumentParser(ABC):
    """parses files below a base directory into documents."""

    base_dir: Path

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir

    @abstractmethod
    def parse_file(self, rel_path: str) -> ParsedDocument | None:
        """
        parse one file.

        arguments:
            `rel_path: str`
                path relative to the base directory

        returns: `ParsedDocument | None`
            the file's definitions, none if it holds no documents

        raises:
            `CodegenError`
                when the file cannot be read or a document is malformed
        """

    def parse_files(self, rel_paths: Iterable[str]) -> list[ParsedDocument]:
        """parse several files, skipping those without documents."""
        documents: list[ParsedDocument] = []
        for rel_path in rel_paths:
            if (parsed := self.parse_file(rel_path)) is not None:
                documents.append(parsed)
        logger.debug("parsed %d documents below %s", len(documents), self.base_dir)
        return documents

    def _read(self, rel_path: str) -> str:
        try:
            return self.base_dir.joinpath(rel_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CodegenError(f"unable to read {rel_path}: {e}") from e


@final
class SourceModuleDocumentParser(DocumentParser):
    """extracts documents embedded in application source files."""

    find_graphql_tags: TagFinder

    def __init__(self, base_dir: Path, find_graphql_tags: TagFinder) -> None:
        super().__init__(base_dir)
        self.find_graphql_tags = find_graphql_tags

    @override
    def parse_file(self, rel_path: str) -> ParsedDocument | None:
        path = self.base_dir.joinpath(rel_path)
        tags = self.find_graphql_tags(self._read(rel_path), path)
        if not tags:
            return None

        definitions = []
        for tag in tags:
            try:
                definitions.extend(parse(tag.template).definitions)
            except GraphQLError as e:
                raise CodegenError(f"{rel_path}:{tag.line}: {e.message}") from e

        return ParsedDocument(path=path, document=DocumentNode(definitions=tuple(definitions)))


@final
class DotGraphQLDocumentParser(DocumentParser):
    """parses standalone .graphql files."""

    @override
    def parse_file(self, rel_path: str) -> ParsedDocument | None:
        text = self._read(rel_path)
        if not text.strip():
            return None
        try:
            document = parse(text)
        except GraphQLError as e:
            raise CodegenError(f"{rel_path}: {e.message}") from e
        return ParsedDocument(path=self.base_dir.joinpath(rel_path), document=document)


class SourceModuleParser:
    """
    parser factory for application sources, bound to a plugin's tag finder.

    attributes:
        `find_graphql_tags: TagFinder`
            the language plugin's tag finder
    """

    find_graphql_tags: TagFinder

    def __init__(self, find_graphql_tags: TagFinder) -> None:
        self.find_graphql_tags = find_graphql_tags

    def get_parser(self, base_dir: Path) -> DocumentParser:
        return SourceModuleDocumentParser(base_dir, self.find_graphql_tags)

    def get_file_filter(self, base_dir: Path) -> FileFilter:
        """keep only files whose text mentions graphql at all."""

        def file_filter(rel_path: str) -> bool:
            try:
                return "graphql" in base_dir.joinpath(rel_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.debug("skipping unreadable source %s", rel_path)
                return False

        return file_filter


class DotGraphQLParser:
    """parser factory for standalone .graphql documents."""

    @staticmethod
    def get_parser(base_dir: Path) -> DocumentParser:
        return DotGraphQLDocumentParser(base_dir)


@dataclass
class ParserConfig:
    """
    how the engine finds and parses one logical file set.

    exactly one of `watchman_expression` and `filepaths` is set.

    attributes:
        `base_dir: Path`
            directory file paths are relative to
        `get_parser: Callable[[Path], DocumentParser]`
            creates the parser for base_dir
        `get_schema: Callable[[], GraphQLSchema]`
            returns the schema documents are compiled against
        `watchman_expression: list[Any] | None`
            watchman query selecting the files
        `filepaths: list[str] | None`
            statically discovered files
        `get_file_filter: Callable[[Path], FileFilter] | None`
            optional cheap pre-filter applied before parsing
    """

    base_dir: Path
    get_parser: Callable[[Path], DocumentParser]
    get_schema: Callable[[], GraphQLSchema]
    watchman_expression: list[Any] | None = None
    filepaths: list[str] | None = None
    get_file_filter: Callable[[Path], FileFilter] | None = None
