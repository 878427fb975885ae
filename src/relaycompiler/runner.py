"""
the compile/watch engine.

parses every configured file set, then hands each writer the documents of
its parser plus those of its base parsers. `compile_all` does this once;
`watch_all` keeps recompiling as watchman reports changes.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from enum import Enum
from typing import Any, final

from .errors import ConfigurationError
from .parsers import ParsedDocument, ParserConfig
from .reporter import Reporter
from .watchman import WatchmanClient
from .writer import WriterConfig, WriterOptions

logger = logging.getLogger(__name__)


class RunResult(Enum):
    """outcome of compiling one or more writers."""

    HAS_CHANGES = "HAS_CHANGES"
    NO_CHANGES = "NO_CHANGES"
    ERROR = "ERROR"


def combine_results(results: list[RunResult]) -> RunResult:
    """an error anywhere wins over changes, which win over no changes."""
    if RunResult.ERROR in results:
        return RunResult.ERROR
    if RunResult.HAS_CHANGES in results:
        return RunResult.HAS_CHANGES
    return RunResult.NO_CHANGES


@final
class CodegenRunner:
    """
    drives parsers and writers for a run.

    attributes:
        `reporter: Reporter`
            progress sink
        `parser_configs: Mapping[str, ParserConfig]`
            named file sets
        `writer_configs: Mapping[str, WriterConfig]`
            named outputs
        `only_validate: bool`
            report pending changes without writing
        `source_control: Any`
            hook for added/removed files, none to disable
        `watchman_client: WatchmanClient | None`
            used by parsers configured with a watchman expression
        `poll_interval: float`
            seconds between change checks in watch mode
    """

    reporter: Reporter
    parser_configs: Mapping[str, ParserConfig]
    writer_configs: Mapping[str, WriterConfig]
    only_validate: bool
    source_control: Any
    watchman_client: WatchmanClient | None
    poll_interval: float
    _documents: dict[str, list[ParsedDocument]]
    _clocks: dict[str, str]

    def __init__(
        self,
        *,
        reporter: Reporter,
        parser_configs: Mapping[str, ParserConfig],
        writer_configs: Mapping[str, WriterConfig],
        only_validate: bool,
        source_control: Any = None,
        watchman_client: WatchmanClient | None = None,
        poll_interval: float = 0.5,
    ) -> None:
        self.reporter = reporter
        self.parser_configs = parser_configs
        self.writer_configs = writer_configs
        self.only_validate = only_validate
        self.source_control = source_control
        self.watchman_client = watchman_client
        self.poll_interval = poll_interval
        self._documents = {}
        self._clocks = {}
        self._validate_dependencies()

    def _validate_dependencies(self) -> None:
        """check that every parser a writer names exists."""
        for writer_name, config in self.writer_configs.items():
            for parser_name in (config.parser, *config.base_parsers):
                if parser_name not in self.parser_configs:
                    raise ConfigurationError(
                        f"writer '{writer_name}' depends on unknown parser '{parser_name}'"
                    )
            if config.parser in config.base_parsers:
                raise ConfigurationError(
                    f"writer '{writer_name}' lists its own parser '{config.parser}' as a base parser"
                )

    async def _get_filepaths(self, parser_name: str) -> list[str]:
        config = self.parser_configs[parser_name]

        if config.filepaths is not None:
            paths = list(config.filepaths)
        elif config.watchman_expression is not None:
            if self.watchman_client is None:
                raise ConfigurationError(f"parser '{parser_name}' needs a watchman client")
            result = await self.watchman_client.query(config.base_dir, config.watchman_expression)
            self._clocks[parser_name] = result.clock
            paths = list(result.files)
        else:
            paths = []

        if config.get_file_filter is not None:
            file_filter = config.get_file_filter(config.base_dir)
            paths = [path for path in paths if file_filter(path)]
        return paths

    async def parse(self, parser_name: str) -> list[ParsedDocument]:
        """
        (re)parse every file of one parser.

        arguments:
            `parser_name: str`
                name of the parser config

        returns: `list[ParsedDocument]`
            the parsed documents, also kept for later writer runs
        """
        start = time.perf_counter()
        config = self.parser_configs[parser_name]
        paths = await self._get_filepaths(parser_name)
        documents = config.get_parser(config.base_dir).parse_files(paths)
        self._documents[parser_name] = documents
        self.reporter.report_time(f"Parsing {parser_name}", (time.perf_counter() - start) * 1000)
        return documents

    def compile(self, writer_name: str) -> RunResult:
        """
        run one writer over already parsed documents.

        arguments:
            `writer_name: str`
                name of the writer config

        returns: `RunResult`
            whether artifacts changed, or an error occurred
        """
        config = self.writer_configs[writer_name]
        parser_config = self.parser_configs[config.parser]
        base_documents = [
            document
            for base_parser in config.base_parsers
            for document in self._documents.get(base_parser, [])
        ]

        start = time.perf_counter()
        try:
            writer = config.get_writer(
                WriterOptions(
                    only_validate=self.only_validate,
                    schema=parser_config.get_schema(),
                    documents=self._documents.get(config.parser, []),
                    base_documents=base_documents,
                    reporter=self.reporter,
                    source_control=self.source_control,
                )
            )
            changes = writer.write_all()
        except Exception as e:
            self.reporter.report_error(f"Error writing {writer_name}", e)
            return RunResult.ERROR
        finally:
            self.reporter.report_time(f"Writing {writer_name}", (time.perf_counter() - start) * 1000)

        return RunResult.HAS_CHANGES if changes.has_changes else RunResult.NO_CHANGES

    async def compile_all(self) -> RunResult:
        """
        parse every file set and run every writer once.

        returns: `RunResult`
            combined result of all writers
        """
        try:
            for parser_name in self.parser_configs:
                _ = await self.parse(parser_name)
        except ConfigurationError:
            raise
        except Exception as e:
            self.reporter.report_error("Error parsing documents", e)
            return RunResult.ERROR

        return combine_results([self.compile(name) for name in self.writer_configs])

    def _is_generated(self, path: str) -> bool:
        return any(config.is_generated_file(path) for config in self.writer_configs.values())

    async def _changed_parsers(self, watchman_client: WatchmanClient) -> set[str]:
        """ask watchman which parsers saw file changes since the last check."""
        changed: set[str] = set()

        for parser_name, config in self.parser_configs.items():
            if config.watchman_expression is None:
                continue
            since = self._clocks.get(parser_name)
            if since is None:
                since = await watchman_client.clock(config.base_dir)
            result = await watchman_client.query(
                config.base_dir, config.watchman_expression, since=since
            )
            self._clocks[parser_name] = result.clock
            if [path for path in result.files if not self._is_generated(path)]:
                logger.debug("%s changed: %s", parser_name, result.files)
                changed.add(parser_name)

        return changed

    async def watch_all(self) -> RunResult:
        """
        compile everything, then recompile affected writers on every change.

        runs until cancelled.

        returns: `RunResult`
            never returns normally
        """
        watchman_client = self.watchman_client
        if watchman_client is None:
            raise ConfigurationError("watch mode needs watchman to be installed and running")

        _ = await self.compile_all()
        self.reporter.report_message("Watching for changes...")

        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                changed = await self._changed_parsers(watchman_client)
                if not changed:
                    continue
                for parser_name in changed:
                    _ = await self.parse(parser_name)
            except ConfigurationError:
                raise
            except Exception as e:
                self.reporter.report_error("Error while watching", e)
                continue

            for writer_name, config in self.writer_configs.items():
                if changed.intersection((config.parser, *config.base_parsers)):
                    _ = self.compile(writer_name)
