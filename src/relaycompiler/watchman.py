"""
watchman file-watch service client.

talks to the `watchman` command-line client in json mode; every command is
a single request/response exchange.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, final

from .errors import WatchmanError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WatchmanQueryResult:
    """
    files matched by a query.

    attributes:
        `files: tuple[str, ...]`
            paths relative to the queried directory
        `clock: str`
            clock to pass as `since` for the next incremental query
    """

    files: tuple[str, ...]
    clock: str


@final
class WatchmanClient:
    """
    client for a local watchman service.

    attributes:
        `binary: str`
            name or path of the watchman executable
        `timeout: float`
            seconds to wait for each command
    """

    binary: str
    timeout: float
    _watches: dict[Path, tuple[str, str | None]]

    def __init__(self, binary: str = "watchman", timeout: float = 30.0) -> None:
        self.binary = binary
        self.timeout = timeout
        self._watches = {}

    def command(self, *args: Any) -> dict[str, Any]:
        """
        run one watchman command synchronously.

        arguments:
            `*args: Any`
                the command and its arguments, e.g. ("clock", "/repo")

        returns: `dict[str, Any]`
            the decoded response

        raises:
            `WatchmanError`
                when watchman cannot be run or reports an error
        """
        logger.debug("watchman command: %s", args[0] if args else "")
        try:
            result = subprocess.run(
                [self.binary, "-j", "--no-pretty"],
                input=json.dumps(list(args)),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            raise WatchmanError(f"unable to run watchman: {e}") from e

        if result.returncode != 0 and not result.stdout.strip():
            raise WatchmanError(f"watchman exited with {result.returncode}: {result.stderr.strip()}")

        try:
            response: dict[str, Any] = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise WatchmanError(f"unexpected watchman response: {e}") from e

        if "error" in response:
            raise WatchmanError(str(response["error"]))
        return response

    async def is_available(self) -> bool:
        """
        check whether watchman is installed and responding.

        returns: `bool`
            True if `watchman version` succeeds
        """
        if shutil.which(self.binary) is None:
            return False
        try:
            _ = await asyncio.to_thread(self.command, "version")
        except WatchmanError as e:
            logger.debug("watchman unavailable: %s", e)
            return False
        return True

    async def watch_project(self, root: Path) -> tuple[str, str | None]:
        """
        watch the project containing a directory.

        arguments:
            `root: Path`
                directory to watch

        returns: `tuple[str, str | None]`
            the watch root and the directory's path relative to it
        """
        if root not in self._watches:
            response = await asyncio.to_thread(self.command, "watch-project", str(root))
            self._watches[root] = (str(response["watch"]), response.get("relative_path"))
        return self._watches[root]

    async def clock(self, root: Path) -> str:
        """return the current clock of the watch containing a directory."""
        watch, _ = await self.watch_project(root)
        response = await asyncio.to_thread(self.command, "clock", watch)
        return str(response["clock"])

    async def query(
        self,
        root: Path,
        expression: list[Any],
        since: str | None = None,
    ) -> WatchmanQueryResult:
        """
        run a query expression below a directory.

        arguments:
            `root: Path`
                directory the expression's paths are relative to
            `expression: list[Any]`
                watchman expression term
            `since: str | None`
                only report files changed after this clock

        returns: `WatchmanQueryResult`
            matched paths and the clock to continue from
        """
        watch, relative_path = await self.watch_project(root)
        spec: dict[str, Any] = {"expression": expression, "fields": ["name"]}
        if relative_path:
            spec["relative_root"] = relative_path
        if since is not None:
            spec["since"] = since

        response = await asyncio.to_thread(self.command, "query", watch, spec)
        return WatchmanQueryResult(
            files=tuple(sorted(str(name) for name in response.get("files", []))),
            clock=str(response["clock"]),
        )
