"""
progress and error reporting.

the compiler never prints directly; every notification goes through a
reporter so that verbosity is decided in one place.
"""

from __future__ import annotations

import sys
import traceback
from abc import ABC, abstractmethod
from typing import TextIO, final

from typing_extensions import override


class Reporter(ABC):
    """sink for compiler progress and error notifications."""

    @abstractmethod
    def report_message(self, message: str) -> None:
        """report an informational message."""

    @abstractmethod
    def report_time(self, name: str, ms: float) -> None:
        """report how long a named step took."""

    @abstractmethod
    def report_error(self, caption: str, error: BaseException) -> None:
        """report a failure that did not stop the compiler itself."""


@final
class ConsoleReporter(Reporter):
    """
    reporter writing to a text stream (stderr by default).

    attributes:
        `verbose: bool`
            also report timings and error tracebacks
        `quiet: bool`
            only report errors
        `stream: TextIO`
            destination stream
    """

    verbose: bool
    quiet: bool
    stream: TextIO

    def __init__(
        self,
        *,
        verbose: bool = False,
        quiet: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.verbose = verbose
        self.quiet = quiet
        self.stream = stream if stream is not None else sys.stderr

    @override
    def report_message(self, message: str) -> None:
        if not self.quiet:
            print(message, file=self.stream)

    @override
    def report_time(self, name: str, ms: float) -> None:
        if self.verbose and not self.quiet:
            print(f"{name} took {ms:.0f}ms", file=self.stream)

    @override
    def report_error(self, caption: str, error: BaseException) -> None:
        print(f"{caption}: {error}", file=self.stream)
        if self.verbose:
            print(
                "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                file=self.stream,
            )
