"""Tests for the launchpad startup sequencer."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from launchpad.core.exceptions import (
    CacheBuildFailed,
    DependencyTimeout,
    KeyGenerationFailed,
    MissingEnvironmentTemplate,
    MissingProductionEnvironmentFile,
    MissingProductionSecret,
    StartupError,
)
from launchpad.startup.control_plane import CACHE_BUILD_COMMANDS
from launchpad.startup.health_checks import DependencyWaiter, RetryPolicy
from launchpad.startup.orchestrator import (
    EXIT_FAILURE,
    SequenceState,
    StartupSequencer,
)
from tests.conftest import TEMPLATE_CONTENT
from tests.fakes.control_plane import FakeControlPlane

PRODUCTION_ENV = b"APP_ENV=production\nAPP_KEY=base64:cHJvZHVjdGlvbi1rZXk=\n"


def snapshot(root: Path) -> set[str]:
    return {str(p.relative_to(root)) for p in root.rglob("*")}


class TestStartupSequencer:
    """End-to-end behaviour of the seven startup steps."""

    @pytest.fixture(autouse=True)
    def _setup(self, make_environment, control_plane, reporter, ownership) -> None:
        self.make_environment = make_environment
        self.control_plane = control_plane
        self.reporter = reporter
        self.ownership = ownership
        self.exec_fn = Mock()

    def sequencer(self, mode: str = "production", **kwargs) -> StartupSequencer:
        kwargs.setdefault("control_plane", self.control_plane)
        return StartupSequencer(
            self.make_environment(mode),
            kwargs.pop("control_plane"),
            reporter=self.reporter,
            ownership=self.ownership,
            exec_fn=self.exec_fn,
            **kwargs,
        )

    def test_production_without_env_file_or_template_creates_nothing(
        self, app_root: Path
    ) -> None:
        (app_root / ".env.example").unlink()
        before = snapshot(app_root)

        exit_code = self.sequencer("production").execute(["php-fpm"])

        assert exit_code != 0
        assert snapshot(app_root) == before
        assert not (app_root / ".env").exists()
        self.exec_fn.assert_not_called()

    def test_production_never_copies_template(self, app_root: Path) -> None:
        exit_code = self.sequencer("production").execute(["php-fpm"])

        assert exit_code == EXIT_FAILURE
        assert not (app_root / ".env").exists()
        self.exec_fn.assert_not_called()

    def test_production_with_empty_key_does_not_generate(self, app_root: Path) -> None:
        (app_root / ".env").write_text("APP_ENV=production\nAPP_KEY=\n")

        exit_code = self.sequencer("production").execute(["php-fpm"])

        assert exit_code != 0
        assert "key:generate" not in self.control_plane.calls
        assert (app_root / ".env").read_text() == "APP_ENV=production\nAPP_KEY=\n"
        self.exec_fn.assert_not_called()

    def test_development_copies_template_verbatim(self, app_root: Path) -> None:
        template = TEMPLATE_CONTENT.replace(b"APP_KEY=\n", b"APP_KEY=base64:a2V5\n")
        (app_root / ".env.example").write_bytes(template)

        exit_code = self.sequencer("development").execute([])

        assert exit_code == 0
        assert (app_root / ".env").read_bytes() == template
        assert "key:generate" not in self.control_plane.calls

    def test_local_without_template_fails(self, app_root: Path) -> None:
        (app_root / ".env.example").unlink()

        exit_code = self.sequencer("local").execute(["php-fpm"])

        assert exit_code == EXIT_FAILURE
        self.exec_fn.assert_not_called()

    def test_production_success_hands_off_to_command(self, app_root: Path) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)

        exit_code = self.sequencer("production").execute(["php-fpm", "-F"])

        assert exit_code == 0
        self.exec_fn.assert_called_once_with("php-fpm", ["php-fpm", "-F"])
        assert self.control_plane.calls[-3:] == list(CACHE_BUILD_COMMANDS)
        assert not any(c.endswith(":clear") for c in self.control_plane.calls)

    @pytest.mark.parametrize("failing", CACHE_BUILD_COMMANDS)
    def test_production_cache_failure_is_fatal(
        self, app_root: Path, failing: str
    ) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)
        control_plane = FakeControlPlane(failing={failing})

        exit_code = self.sequencer("production", control_plane=control_plane).execute(
            ["php-fpm"]
        )

        assert exit_code == EXIT_FAILURE
        self.exec_fn.assert_not_called()
        assert control_plane.calls[-1] == failing

    @pytest.mark.parametrize("mode", ["staging", "testing", "anything-else"])
    def test_non_development_modes_build_caches(
        self, app_root: Path, mode: str
    ) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)

        exit_code = self.sequencer(mode).execute([])

        assert exit_code == 0
        assert set(CACHE_BUILD_COMMANDS) <= set(self.control_plane.calls)

    def test_development_cache_clear_failures_are_tolerated(
        self, app_root: Path, output
    ) -> None:
        control_plane = FakeControlPlane(failing={"config:clear", "view:clear"})

        exit_code = self.sequencer("development", control_plane=control_plane).execute(
            ["php-fpm"]
        )

        assert exit_code == 0
        assert [c for c in control_plane.calls if c.endswith(":clear")] == [
            "config:clear",
            "route:clear",
            "view:clear",
            "cache:clear",
        ]
        self.exec_fn.assert_called_once()
        assert "could not clear" in output.getvalue()

    def test_symlink_failure_is_tolerated(self, app_root: Path, output) -> None:
        control_plane = FakeControlPlane(failing={"storage:link"})

        exit_code = self.sequencer("local", control_plane=control_plane).execute([])

        assert exit_code == 0
        assert "storage:link" in output.getvalue()
        # Runtime directories exist even though the link failed
        assert (app_root / "storage" / "framework" / "views").is_dir()
        assert (app_root / "storage" / "app" / "public").is_dir()

    def test_existing_dangling_link_is_left_alone(self, app_root: Path) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)
        (app_root / "public" / "storage").symlink_to(app_root / "nowhere")

        exit_code = self.sequencer("production").execute([])

        assert exit_code == 0
        assert "storage:link" not in self.control_plane.calls

    def test_rerun_is_idempotent(self, app_root: Path) -> None:
        first = self.sequencer("development").execute(["php-fpm"])
        env_after_first = (app_root / ".env").read_text()

        second = self.sequencer("development").execute(["php-fpm"])

        assert first == second == 0
        assert self.control_plane.calls.count("key:generate") == 1
        assert self.control_plane.calls.count("storage:link") == 1
        assert (app_root / ".env").read_text() == env_after_first
        assert self.exec_fn.call_count == 2

    def test_generated_key_is_persisted(self, app_root: Path) -> None:
        exit_code = self.sequencer("local").execute([])

        assert exit_code == 0
        content = (app_root / ".env").read_text()
        assert f"APP_KEY={self.control_plane.key}" in content
        assert "APP_NAME=Launchpad" in content

    def test_key_generation_failure_is_fatal(self, app_root: Path) -> None:
        control_plane = FakeControlPlane(failing={"key:generate"})

        exit_code = self.sequencer("local", control_plane=control_plane).execute(
            ["php-fpm"]
        )

        assert exit_code == EXIT_FAILURE
        self.exec_fn.assert_not_called()

    def test_permissions_are_normalized(self, app_root: Path) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)
        (app_root / "storage" / "logs").mkdir()
        (app_root / "storage" / "logs" / "app.log").write_text("")
        (app_root / "storage" / "logs" / "app.log").chmod(0o600)

        exit_code = self.sequencer("production").execute([])

        assert exit_code == 0
        mode = (app_root / "storage" / "logs" / "app.log").stat().st_mode & 0o777
        assert mode == 0o775

    def test_no_command_exits_cleanly(self, app_root: Path) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)

        assert self.sequencer("production").execute([]) == 0
        self.exec_fn.assert_not_called()

    def test_unexecutable_command_fails(self, app_root: Path, output) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)
        self.exec_fn.side_effect = FileNotFoundError(2, "No such file or directory")

        exit_code = self.sequencer("production").execute(["php-fmp"])

        assert exit_code == EXIT_FAILURE
        assert "EXEC_001" in output.getvalue()


class TestSequenceOutcome:
    """Outcome reporting from ``run``."""

    @pytest.mark.asyncio
    async def test_failure_outcome_carries_error(
        self, make_environment, control_plane, reporter, output
    ) -> None:
        sequencer = StartupSequencer(
            make_environment("production"), control_plane, reporter=reporter
        )

        outcome = await sequencer.run()

        assert outcome.state == SequenceState.FAILED_FATALLY
        assert isinstance(outcome.error, MissingProductionEnvironmentFile)
        assert outcome.exit_code == EXIT_FAILURE
        assert "Environment file missing in production" in outcome.reason
        text = output.getvalue()
        assert "ENV_002" in text
        assert "Startup Failed" in text

    @pytest.mark.asyncio
    async def test_success_outcome(
        self, app_root, make_environment, control_plane, reporter, ownership, output
    ) -> None:
        sequencer = StartupSequencer(
            make_environment("development"),
            control_plane,
            reporter=reporter,
            ownership=ownership,
        )

        outcome = await sequencer.run()

        assert outcome.succeeded
        assert outcome.error is None
        assert "Startup Complete" in output.getvalue()
        assert reporter.get_startup_summary()["failed_steps"] == 0

    @pytest.mark.asyncio
    async def test_dependency_timeout_is_fatal(
        self, make_environment, control_plane, reporter
    ) -> None:
        probe = AsyncMock(return_value=False)
        waiter = DependencyWaiter(
            RetryPolicy(interval=1.0, max_attempts=3),
            probe=probe,
            sleep=AsyncMock(),
        )
        sequencer = StartupSequencer(
            make_environment("production", db_host="db"),
            control_plane,
            waiter=waiter,
            reporter=reporter,
        )

        outcome = await sequencer.run()

        assert isinstance(outcome.error, DependencyTimeout)
        assert probe.await_count == 3
        assert control_plane.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failure(
        self, app_root, make_environment, reporter
    ) -> None:
        (app_root / ".env").write_bytes(PRODUCTION_ENV)
        control_plane = FakeControlPlane()
        control_plane.build_caches = AsyncMock(side_effect=RuntimeError("kaboom"))
        sequencer = StartupSequencer(
            make_environment("production"), control_plane, reporter=reporter
        )

        outcome = await sequencer.run()

        assert outcome.state == SequenceState.FAILED_FATALLY
        assert type(outcome.error) is StartupError
        assert "kaboom" in outcome.reason


class TestIndividualSteps:
    """Steps called directly, outside the full run."""

    @pytest.fixture(autouse=True)
    def _setup(self, make_environment, control_plane, reporter) -> None:
        self.make_environment = make_environment
        self.control_plane = control_plane
        self.reporter = reporter

    def test_environment_file_missing_template(self, app_root: Path) -> None:
        (app_root / ".env.example").unlink()
        sequencer = StartupSequencer(
            self.make_environment("development"),
            self.control_plane,
            reporter=self.reporter,
        )

        with pytest.raises(MissingEnvironmentTemplate):
            sequencer.ensure_environment_file()

    def test_environment_file_copy_is_byte_for_byte(self, app_root: Path) -> None:
        sequencer = StartupSequencer(
            self.make_environment("development"),
            self.control_plane,
            reporter=self.reporter,
        )

        sequencer.ensure_environment_file()

        assert (app_root / ".env").read_bytes() == TEMPLATE_CONTENT

    @pytest.mark.asyncio
    async def test_production_secret_required(self, app_root: Path) -> None:
        (app_root / ".env").write_text("APP_KEY=   \n")
        sequencer = StartupSequencer(
            self.make_environment("production"),
            self.control_plane,
            reporter=self.reporter,
        )

        with pytest.raises(MissingProductionSecret):
            await sequencer.ensure_app_key()
        assert self.control_plane.calls == []

    @pytest.mark.asyncio
    async def test_empty_generated_key_is_rejected(self, app_root: Path) -> None:
        (app_root / ".env").write_text("APP_KEY=\n")
        sequencer = StartupSequencer(
            self.make_environment("local"),
            FakeControlPlane(key=None),
            reporter=self.reporter,
        )

        with pytest.raises(KeyGenerationFailed):
            await sequencer.ensure_app_key()

    @pytest.mark.asyncio
    async def test_cache_build_error_details(self) -> None:
        sequencer = StartupSequencer(
            self.make_environment("production"),
            FakeControlPlane(failing={"route:cache"}),
            reporter=self.reporter,
        )

        with pytest.raises(CacheBuildFailed) as exc_info:
            await sequencer.prime_caches()

        assert exc_info.value.returncode == 1
        assert exc_info.value.details["command"] == "php artisan route:cache"
        assert "route:cache exploded" in exc_info.value.details["output"]
