"""Launchpad Startup Sequencer.

Brings a freshly started application container to a state where it can serve
traffic, then replaces itself with the server command. The steps run in a
fixed order and every one of them is safe to repeat on a container that was
already prepared by a previous start.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Callable, Sequence
import dataclasses
from dataclasses import dataclass
from enum import StrEnum
import logging
import os
import sys

from launchpad.core.exceptions import (
    CacheBuildFailed,
    HandoffFailed,
    InvalidConfiguration,
    KeyGenerationFailed,
    MissingEnvironmentTemplate,
    MissingProductionEnvironmentFile,
    MissingProductionSecret,
    StartupError,
)
from launchpad.core.logging_config import setup_logging
from launchpad.startup.config_schema import Environment, LaunchpadConfig
from launchpad.startup.control_plane import ArtisanControlPlane, FrameworkControlPlane
from launchpad.startup.env_file import APP_KEY, EnvironmentFile
from launchpad.startup.error_catalog import error_catalog
from launchpad.startup.health_checks import DependencyWaiter, RetryPolicy, ServiceStatus
from launchpad.startup.permissions import OwnershipPolicy
from launchpad.startup.progress_reporter import (
    ProgressPhase,
    ProgressStep,
    StartupProgressReporter,
)
from launchpad.version import get_version

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Relative to the storage tree
STORAGE_SUBDIRECTORIES = (
    "app/public",
    "framework/cache/data",
    "framework/sessions",
    "framework/views",
    "logs",
)

ExecFn = Callable[[str, Sequence[str]], object]


class SequenceState(StrEnum):
    """Terminal states of the sequencer."""

    READY_AND_HANDED_OFF = "ready_and_handed_off"
    FAILED_FATALLY = "failed_fatally"


@dataclass
class SequenceOutcome:
    """How a sequencer run ended."""

    state: SequenceState
    error: StartupError | None = None
    exit_code: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == SequenceState.READY_AND_HANDED_OFF

    @property
    def reason(self) -> str:
        return str(self.error) if self.error else ""


class StartupSequencer:
    """Runs the container preparation steps and hands off to the server."""

    def __init__(
        self,
        environment: Environment,
        control_plane: FrameworkControlPlane,
        *,
        retry_policy: RetryPolicy | None = None,
        waiter: DependencyWaiter | None = None,
        ownership: OwnershipPolicy | None = None,
        reporter: StartupProgressReporter | None = None,
        exec_fn: ExecFn = os.execvp,
    ) -> None:
        """Initialize the sequencer.

        Args:
            environment: Paths, mode and dependency endpoint to prepare
            control_plane: Framework operations (key, caches, storage link)
            retry_policy: Dependency wait policy, unbounded by default
            waiter: Dependency waiter (built from ``retry_policy`` if omitted)
            ownership: Owner and mode for the writable trees
            reporter: Progress reporter (creates default if not provided)
            exec_fn: Replaces the process image, ``os.execvp`` signature
        """
        self.environment = environment
        self.control_plane = control_plane
        self.waiter = waiter or DependencyWaiter(retry_policy)
        self.ownership = ownership or OwnershipPolicy()
        self.reporter = reporter or StartupProgressReporter()
        self.env_file = EnvironmentFile(environment.env_file)
        self._exec = exec_fn
        self._step: ProgressStep | None = None

    @classmethod
    def from_config(
        cls,
        config: LaunchpadConfig,
        *,
        retry_policy: RetryPolicy | None = None,
        reporter: StartupProgressReporter | None = None,
    ) -> StartupSequencer:
        environment = config.to_environment()
        control_plane = ArtisanControlPlane(
            environment.app_root,
            php_binary=config.php_binary,
            console=config.console,
            timeout=config.command_timeout,
        )
        return cls(
            environment,
            control_plane,
            retry_policy=retry_policy or config.retry_policy(),
            ownership=OwnershipPolicy(
                user=config.runtime_user,
                group=config.runtime_group,
                mode=config.directory_mode,
            ),
            reporter=reporter,
        )

    def _start(self, name: str, message: str = "") -> ProgressStep:
        self._step = self.reporter.start_step(name, message)
        return self._step

    async def run(self) -> SequenceOutcome:
        """Run every preparation step up to, but not including, the handoff."""
        env = self.environment
        self.reporter.start_startup(f"{env.app_root} ({env.mode or 'unset'})")

        try:
            await self.wait_for_dependency()
            self.reporter.start_phase(ProgressPhase.PREPARING_ENVIRONMENT)
            self.ensure_environment_file()
            await self.ensure_app_key()
            await self.ensure_public_link()
            await self.prime_caches()
            self.normalize_permissions()
        except StartupError as e:
            return self._fail(e)
        except Exception as e:  # noqa: BLE001 - Report instead of a raw traceback
            logger.exception("Unexpected startup error")
            return self._fail(StartupError(f"Unexpected error: {e!s}", "unknown"))

        self.reporter.report_startup_complete(
            success=True, message="Container prepared"
        )
        return SequenceOutcome(SequenceState.READY_AND_HANDED_OFF)

    def _fail(self, error: StartupError) -> SequenceOutcome:
        if self._step is not None and self._step.status == "running":
            self.reporter.fail_step(self._step, str(error), error, error.details)
        if error_catalog.get_error_info(error.error_code):
            self.reporter.report_error_help(
                error_catalog.format_error_help(error.error_code)
            )
        self.reporter.report_startup_complete(success=False, message=str(error))
        return SequenceOutcome(
            SequenceState.FAILED_FATALLY, error=error, exit_code=EXIT_FAILURE
        )

    async def wait_for_dependency(self) -> None:
        """Step 1: block until the database accepts TCP connections."""
        endpoint = self.environment.dependency
        self.reporter.start_phase(ProgressPhase.WAITING_FOR_DEPENDENCY)
        step = self._start(f"Database {endpoint}", self.waiter.policy.describe())

        result = await self.waiter.wait(endpoint)
        if result.status == ServiceStatus.SKIPPED:
            self.reporter.skip_step(step, result.message)
        else:
            self.reporter.complete_step(
                step,
                f"{result.message} (attempt {result.attempts})",
                {"attempts": result.attempts},
            )

    def ensure_environment_file(self) -> None:
        """Step 2: make sure the environment file exists."""
        env = self.environment
        step = self._start("Environment file", str(env.env_file))

        if self.env_file.exists():
            self.reporter.complete_step(step, "present")
            return
        if env.is_production:
            raise MissingProductionEnvironmentFile(str(env.env_file))
        if not env.env_template.is_file():
            raise MissingEnvironmentTemplate(str(env.env_template))

        self.env_file.materialize_from(env.env_template)
        self.reporter.complete_step(step, f"created from {env.env_template.name}")

    async def ensure_app_key(self) -> None:
        """Step 3: make sure the application key is set."""
        env = self.environment
        step = self._start("Application key")

        if self.env_file.has_app_key():
            self.reporter.complete_step(step, "present")
            return
        if env.is_production:
            raise MissingProductionSecret(str(env.env_file), APP_KEY)

        result = await self.control_plane.generate_key()
        if not result.succeeded:
            failure = result.failures[0]
            raise KeyGenerationFailed(
                f"'{failure.display}' exited with status {failure.returncode}",
                {"output": failure.output},
            )
        if not result.value:
            raise KeyGenerationFailed("command printed no key")

        self.env_file.set(APP_KEY, result.value)
        logger.info("Generated %s in %s", APP_KEY, env.env_file)
        self.reporter.complete_step(step, "generated")

    async def ensure_public_link(self) -> None:
        """Step 4: create the public storage symlink if it is missing."""
        env = self.environment
        step = self._start("Public storage link", str(env.public_link))

        # A dangling link counts as present
        if os.path.lexists(env.public_link):
            self.reporter.complete_step(step, "present")
            return

        problems = []
        for directory in (
            *(env.storage_dir / sub for sub in STORAGE_SUBDIRECTORIES),
            env.bootstrap_cache_dir,
        ):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                problems.append(f"mkdir {directory}: {e.strerror or e}")

        result = await self.control_plane.link_public_storage()
        problems.extend(
            f"'{failure.display}' exited with status {failure.returncode}"
            for failure in result.failures
        )

        if problems:
            self.reporter.warn_step(step, "; ".join(problems))
        else:
            self.reporter.complete_step(step, "linked")

    async def prime_caches(self) -> None:
        """Step 5: clear caches in development, build them otherwise."""
        self.reporter.start_phase(ProgressPhase.PRIMING_CACHES)

        if self.environment.is_development:
            step = self._start("Clear framework caches")
            result = await self.control_plane.clear_caches()
            if result.failures:
                failed = ", ".join(failure.display for failure in result.failures)
                self.reporter.warn_step(step, f"could not clear: {failed}")
            else:
                self.reporter.complete_step(
                    step, f"{len(result.outcomes)} cache(s) cleared"
                )
            return

        step = self._start("Build framework caches")
        result = await self.control_plane.build_caches()
        if result.failures:
            failure = result.failures[0]
            raise CacheBuildFailed(failure.display, failure.returncode, failure.output)
        self.reporter.complete_step(step, f"{len(result.outcomes)} cache(s) built")

    def normalize_permissions(self) -> None:
        """Step 6: reset owner and mode on the writable trees."""
        env = self.environment
        self.reporter.start_phase(ProgressPhase.NORMALIZING_PERMISSIONS)

        for root in (env.storage_dir, env.bootstrap_cache_dir):
            label = (
                root.relative_to(env.app_root)
                if root.is_relative_to(env.app_root)
                else root
            )
            step = self._start(f"Permissions on {label}")
            report = self.ownership.apply(root)
            if report.clean:
                self.reporter.complete_step(step, f"{report.changed} path(s)")
            else:
                self.reporter.warn_step(
                    step,
                    f"{len(report.errors)} error(s), first: {report.errors[0]}",
                    {"errors": report.errors},
                )

    def handoff(self, command: Sequence[str]) -> int:
        """Step 7: replace this process with ``command``.

        Returns only when there is no command (exit 0), when the command
        cannot be executed (exit 1), or when ``exec_fn`` is a test double.
        """
        if not command:
            logger.info("No server command given, exiting")
            return 0

        argv = list(command)
        self.reporter.start_phase(ProgressPhase.HANDING_OFF, " ".join(argv))
        logger.info("Executing %s", " ".join(argv))
        sys.stdout.flush()
        sys.stderr.flush()

        try:
            self._exec(argv[0], argv)
        except OSError as e:
            error = HandoffFailed(argv, e)
            self.reporter.report_error_help(
                error_catalog.format_error_help(error.error_code)
            )
            self.reporter.report_startup_complete(success=False, message=str(error))
            return EXIT_FAILURE
        return 0

    def execute(self, command: Sequence[str]) -> int:
        """Run the full sequence and hand off. Returns the exit code."""
        outcome = asyncio.run(self.run())
        if not outcome.succeeded:
            return outcome.exit_code
        return self.handoff(command)


def _positive(convert: Callable[[str], float]) -> Callable[[str], float]:
    """argparse type accepting only numbers greater than zero."""

    def parse(raw: str) -> float:
        try:
            value = convert(raw)
        except ValueError:
            msg = f"invalid number: {raw!r}"
            raise argparse.ArgumentTypeError(msg) from None
        if value <= 0:
            msg = f"must be greater than 0, got {raw}"
            raise argparse.ArgumentTypeError(msg)
        return value

    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="launchpad",
        description="Prepare the application container, then exec the server command",
    )
    parser.add_argument(
        "--max-wait",
        type=_positive(float),
        default=None,
        help="Give up waiting for the database after this many seconds",
    )
    parser.add_argument(
        "--max-attempts",
        type=_positive(int),
        default=None,
        help="Give up waiting for the database after this many probes",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {get_version()}"
    )
    parser.add_argument(
        "--no-color", action="store_true", help="Disable colored progress output"
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Server command and arguments, e.g. -- php-fpm",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]

    config, errors = LaunchpadConfig.validate_from_env()
    setup_logging(config.log_level.value if config else "INFO")
    reporter = StartupProgressReporter(enable_colors=not args.no_color)

    if config is None:
        error = InvalidConfiguration(errors)
        reporter.start_startup()
        step = reporter.start_step("Loading configuration")
        reporter.fail_step(step, str(error), error)
        for i, message in enumerate(errors, 1):
            reporter.report_error_help(f"{i}. {message}")
        reporter.report_error_help(error_catalog.format_error_help(error.error_code))
        reporter.report_startup_complete(success=False, message=str(error))
        return EXIT_FAILURE

    policy = config.retry_policy()
    if args.max_wait is not None:
        policy = dataclasses.replace(policy, deadline=args.max_wait)
    if args.max_attempts is not None:
        policy = dataclasses.replace(policy, max_attempts=args.max_attempts)

    sequencer = StartupSequencer.from_config(
        config, retry_policy=policy, reporter=reporter
    )
    logger.debug("Configuration: %s", config.get_startup_summary())

    try:
        return sequencer.execute(command)
    except KeyboardInterrupt:
        print("\n❌ Startup cancelled", file=sys.stderr)  # noqa: T201
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
