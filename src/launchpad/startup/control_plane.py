"""Framework control plane.

The sequencer talks to the web framework only through
``FrameworkControlPlane`` so its control flow does not depend on how the
framework commands are invoked. ``ArtisanControlPlane`` is the production
implementation that runs the framework console in a subprocess.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass, field
import logging
from pathlib import Path
import subprocess  # noqa: S404

logger = logging.getLogger(__name__)

# Exit statuses used when the command never produced one
EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127

CACHE_BUILD_COMMANDS = ("config:cache", "route:cache", "view:cache")
CACHE_CLEAR_COMMANDS = ("config:clear", "route:clear", "view:clear", "cache:clear")


@dataclass
class CommandOutcome:
    """Result of one framework command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def display(self) -> str:
        return " ".join(self.command)

    @property
    def output(self) -> str:
        return (self.stderr or self.stdout).strip()


@dataclass
class ControlResult:
    """Outcome of a control plane operation."""

    operation: str
    outcomes: list[CommandOutcome] = field(default_factory=list)
    value: str | None = None

    @property
    def succeeded(self) -> bool:
        return all(outcome.succeeded for outcome in self.outcomes)

    @property
    def failures(self) -> list[CommandOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]


class FrameworkControlPlane(ABC):
    """Interface for the framework operations the sequencer needs."""

    @abstractmethod
    async def generate_key(self) -> ControlResult:
        """Generate a new application key.

        Returns:
            Result whose ``value`` is the key to persist
        """

    @abstractmethod
    async def build_caches(self) -> ControlResult:
        """Build configuration, routing and view caches.

        Stops at the first failing command.
        """

    @abstractmethod
    async def clear_caches(self) -> ControlResult:
        """Clear configuration, routing, view and generic caches.

        Every clear command runs even if an earlier one failed.
        """

    @abstractmethod
    async def link_public_storage(self) -> ControlResult:
        """Create the public storage symlink."""


class ArtisanControlPlane(FrameworkControlPlane):
    """Runs ``php artisan`` commands inside the application root."""

    def __init__(
        self,
        app_root: Path,
        *,
        php_binary: str = "php",
        console: str = "artisan",
        timeout: float = 300.0,
    ) -> None:
        self.app_root = app_root
        self.php_binary = php_binary
        self.console = console
        self.timeout = timeout

    def _argv(self, command: str, *args: str) -> list[str]:
        return [self.php_binary, self.console, command, *args, "--no-interaction"]

    def _run_sync(self, argv: list[str]) -> CommandOutcome:
        logger.debug("Running %s", " ".join(argv))
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                cwd=self.app_root,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandOutcome(argv, EXIT_NOT_FOUND, stderr=str(e))
        except subprocess.TimeoutExpired:
            return CommandOutcome(
                argv, EXIT_TIMEOUT, stderr=f"timed out after {self.timeout:g}s"
            )

        outcome = CommandOutcome(
            argv, completed.returncode, completed.stdout, completed.stderr
        )
        if not outcome.succeeded:
            logger.debug(
                "%s exited %d: %s", outcome.display, outcome.returncode, outcome.output
            )
        return outcome

    async def _run(self, command: str, *args: str) -> CommandOutcome:
        return await asyncio.to_thread(self._run_sync, self._argv(command, *args))

    async def generate_key(self) -> ControlResult:
        outcome = await self._run("key:generate", "--show")
        result = ControlResult("generate_key", [outcome])
        if outcome.succeeded:
            lines = [line.strip() for line in outcome.stdout.splitlines() if line.strip()]
            result.value = lines[-1] if lines else None
        return result

    async def build_caches(self) -> ControlResult:
        result = ControlResult("build_caches")
        for command in CACHE_BUILD_COMMANDS:
            outcome = await self._run(command)
            result.outcomes.append(outcome)
            if not outcome.succeeded:
                break
        return result

    async def clear_caches(self) -> ControlResult:
        result = ControlResult("clear_caches")
        for command in CACHE_CLEAR_COMMANDS:
            result.outcomes.append(await self._run(command))
        return result

    async def link_public_storage(self) -> ControlResult:
        return ControlResult("link_public_storage", [await self._run("storage:link")])
