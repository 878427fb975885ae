"""
run wiring.

validates the options of a run, resolves the schema and language plugin,
wires parser and writer configurations, and hands them to the engine.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from pathlib import Path

from graphql import GraphQLSchema

from .config import RunOptions
from .discovery import (
    build_watch_expression,
    get_filepaths_from_glob,
    graphql_search_options,
    source_search_options,
)
from .parsers import DotGraphQLParser, ParserConfig, SourceModuleParser
from .plugins import resolve_language_plugin
from .reporter import ConsoleReporter, Reporter
from .runner import CodegenRunner, RunResult
from .schema import load_schema
from .validation import validate_options
from .watchman import WatchmanClient
from .writer import GENERATED_DIRECTORY_NAME, WriterConfig, get_artifact_file_writer

logger = logging.getLogger(__name__)

GRAPHQL_PARSER_NAME = "graphql"


class ExitCode(IntEnum):
    """process exit status of a run."""

    OK = 0
    ERROR = 100
    VALIDATION_FAILED = 101


def exit_code_for(result: RunResult, *, validate: bool) -> ExitCode:
    """
    map an engine result to a process exit status.

    arguments:
        `result: RunResult`
            the engine's result
        `validate: bool`
            whether the run was validate-only

    returns: `ExitCode`
        ERROR for engine errors, VALIDATION_FAILED when validating found
        pending changes, OK otherwise
    """
    if result is RunResult.ERROR:
        return ExitCode.ERROR
    if validate and result is not RunResult.NO_CHANGES:
        return ExitCode.VALIDATION_FAILED
    return ExitCode.OK


async def run(
    options: RunOptions,
    *,
    cwd: Path | None = None,
    watchman_client: WatchmanClient | None = None,
    reporter: Reporter | None = None,
) -> ExitCode:
    """
    compile, or watch and recompile, the documents of a project.

    arguments:
        `options: RunOptions`
            the run's options
        `cwd: Path | None`
            directory relative paths are resolved against (default: current)
        `watchman_client: WatchmanClient | None`
            watchman client to use (default: a new client)
        `reporter: Reporter | None`
            progress sink (default: a console reporter)

    returns: `ExitCode`
        status for the calling process

    raises:
        `ConfigurationError`
            when the options are invalid
        `SchemaLoadError`
            when the schema cannot be loaded
        `PluginLoadError`
            when the language plugin cannot be loaded
    """
    base = (cwd or Path.cwd()).resolve()
    schema_path, src_dir = validate_options(options, base)

    if reporter is None:
        reporter = ConsoleReporter(verbose=options.verbose, quiet=options.quiet)

    if watchman_client is None:
        watchman_client = WatchmanClient()
    use_watchman = options.watchman and await watchman_client.is_available()
    logger.debug("using watchman: %s", use_watchman)

    schema = load_schema(schema_path)
    language_plugin = resolve_language_plugin(options.language, base)

    input_extensions = tuple(options.extensions or language_plugin.input_extensions)
    output_extension = language_plugin.output_extension

    source_parser_name = "/".join(input_extensions)
    source_writer_name = output_extension

    source_module_parser = SourceModuleParser(language_plugin.find_graphql_tags)

    artifact_directory = (
        base.joinpath(options.artifact_directory).resolve()
        if options.artifact_directory is not None
        else None
    )
    generated_directory_name = (
        str(artifact_directory) if artifact_directory is not None else GENERATED_DIRECTORY_NAME
    )

    source_search = source_search_options(input_extensions, options.include, options.exclude)
    graphql_search = graphql_search_options(src_dir, schema_path, options.include, options.exclude)

    def get_schema() -> GraphQLSchema:
        return schema

    parser_configs = {
        source_parser_name: ParserConfig(
            base_dir=src_dir,
            get_parser=source_module_parser.get_parser,
            get_schema=get_schema,
            get_file_filter=source_module_parser.get_file_filter,
            watchman_expression=build_watch_expression(source_search) if use_watchman else None,
            filepaths=None
            if use_watchman
            else get_filepaths_from_glob(
                src_dir, source_search, respect_gitignore=options.respect_gitignore
            ),
        ),
        GRAPHQL_PARSER_NAME: ParserConfig(
            base_dir=src_dir,
            get_parser=DotGraphQLParser.get_parser,
            get_schema=get_schema,
            watchman_expression=build_watch_expression(graphql_search) if use_watchman else None,
            filepaths=None
            if use_watchman
            else get_filepaths_from_glob(
                src_dir, graphql_search, respect_gitignore=options.respect_gitignore
            ),
        ),
    }

    def is_generated_file(file_path: str) -> bool:
        return (
            file_path.endswith(f".graphql.{output_extension}")
            and generated_directory_name in file_path
        )

    writer_configs = {
        source_writer_name: WriterConfig(
            get_writer=get_artifact_file_writer(
                src_dir,
                language_plugin,
                options.custom_scalars,
                options.no_future_proof_enums,
                artifact_directory,
            ),
            is_generated_file=is_generated_file,
            parser=source_parser_name,
            base_parsers=(GRAPHQL_PARSER_NAME,),
        ),
    }

    codegen_runner = CodegenRunner(
        reporter=reporter,
        parser_configs=parser_configs,
        writer_configs=writer_configs,
        only_validate=options.validate,
        # TODO: detect git/hg and pass a source control hook for added/removed artifacts
        source_control=None,
        watchman_client=watchman_client if use_watchman else None,
        poll_interval=options.poll_interval_ms / 1000,
    )

    if not options.validate and not options.watch and options.watchman:
        reporter.report_message("HINT: pass --watch to keep watching for changes.")

    result = await codegen_runner.watch_all() if options.watch else await codegen_runner.compile_all()
    return exit_code_for(result, validate=options.validate)
