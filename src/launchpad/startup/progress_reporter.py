"""Launchpad Startup Progress Reporter.

Provides clear, real-time feedback during container startup with progress
indicators and detailed status messages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging
import sys
import time
from typing import Any, TextIO

logger = logging.getLogger(__name__)


class ProgressPhase(StrEnum):
    """Startup progress phases."""

    INITIALIZING = "initializing"
    WAITING_FOR_DEPENDENCY = "waiting_for_dependency"
    PREPARING_ENVIRONMENT = "preparing_environment"
    PRIMING_CACHES = "priming_caches"
    NORMALIZING_PERMISSIONS = "normalizing_permissions"
    HANDING_OFF = "handing_off"
    READY = "ready"
    FAILED = "failed"


@dataclass
class ProgressStep:
    """Individual progress step."""

    name: str
    phase: ProgressPhase
    status: str = "pending"  # pending, running, completed, warning, failed, skipped
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    start_time: float | None = None
    end_time: float | None = None
    error: Exception | None = None

    @property
    def duration_ms(self) -> float:
        """Get step duration in milliseconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return 0.0

    def start(self) -> None:
        """Mark step as started."""
        self.status = "running"
        self.start_time = time.time()

    def finish(
        self, status: str, message: str = "", details: dict[str, Any] | None = None
    ) -> None:
        self.status = status
        self.end_time = time.time()
        if message:
            self.message = message
        if details:
            self.details.update(details)


class StartupProgressReporter:
    """Reports startup progress with clear status messages."""

    def __init__(
        self, output: TextIO | None = None, *, enable_colors: bool = True
    ) -> None:
        """Initialize progress reporter.

        Args:
            output: Output stream (defaults to stdout)
            enable_colors: Whether to use colored output
        """
        self.output = output or sys.stdout
        self.enable_colors = (
            enable_colors and hasattr(self.output, "isatty") and self.output.isatty()
        )
        self.steps: list[ProgressStep] = []
        self.current_phase = ProgressPhase.INITIALIZING
        self.start_time = time.time()
        self.end_time: float | None = None

        color_names = ["reset", "bold", "green", "yellow", "red", "cyan", "gray"]
        self.colors = (
            {
                "reset": "\033[0m",
                "bold": "\033[1m",
                "green": "\033[32m",
                "yellow": "\033[33m",
                "red": "\033[31m",
                "cyan": "\033[36m",
                "gray": "\033[90m",
            }
            if self.enable_colors
            else dict.fromkeys(color_names, "")
        )

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        return f"{self.colors[color]}{text}{self.colors['reset']}"

    def _print(self, message: str) -> None:
        print(message, file=self.output, flush=True)

    def _get_phase_emoji(self, phase: ProgressPhase) -> str:
        phase_emojis = {
            ProgressPhase.INITIALIZING: "🚀",
            ProgressPhase.WAITING_FOR_DEPENDENCY: "🔌",
            ProgressPhase.PREPARING_ENVIRONMENT: "⚙️",
            ProgressPhase.PRIMING_CACHES: "📦",
            ProgressPhase.NORMALIZING_PERMISSIONS: "🔐",
            ProgressPhase.HANDING_OFF: "🤝",
            ProgressPhase.READY: "✅",
            ProgressPhase.FAILED: "❌",
        }
        return phase_emojis.get(phase, "📍")

    def _get_status_symbol(self, status: str) -> str:
        symbols = {
            "pending": "⏳",
            "running": "🔄",
            "completed": "✅",
            "warning": "⚠️",
            "failed": "❌",
            "skipped": "⏭️",
        }
        return symbols.get(status, "❓")

    def start_startup(self, app_name: str = "application container") -> None:
        """Start startup progress reporting."""
        self.start_time = time.time()
        header = f"{self._colorize('🚀 Preparing', 'bold')} {self._colorize(app_name, 'cyan')}"
        self._print(f"\n{header}")
        self._print(self._colorize("=" * 60, "gray"))

    def start_phase(self, phase: ProgressPhase, message: str = "") -> None:
        """Start a new startup phase."""
        self.current_phase = phase
        emoji = self._get_phase_emoji(phase)
        phase_name = phase.value.replace("_", " ").title()

        display_message = f"{emoji} {self._colorize(phase_name, 'bold')}"
        if message:
            display_message += f": {message}"

        self._print(f"\n{display_message}")
        logger.info("Startup phase: %s", phase_name)

    def start_step(self, name: str, message: str = "") -> ProgressStep:
        """Start a new progress step."""
        step = ProgressStep(name=name, phase=self.current_phase)
        self.steps.append(step)
        step.start()

        display_message = f"  {self._get_status_symbol('running')} {name}"
        if message:
            display_message += f": {self._colorize(message, 'gray')}"

        self._print(display_message)
        return step

    def complete_step(
        self,
        step: ProgressStep,
        message: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Mark step as completed."""
        step.finish("completed", message, details)

        display_message = f"  {self._get_status_symbol('completed')} {self._colorize(step.name, 'green')}"
        if message:
            display_message += f": {message}"
        if step.duration_ms > 0:
            display_message += f" {self._colorize(f'({step.duration_ms:.0f}ms)', 'gray')}"

        self._print(display_message)
        logger.info("Completed: %s in %.0fms", step.name, step.duration_ms)

    def warn_step(
        self,
        step: ProgressStep,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Mark step as completed with a tolerated failure."""
        step.finish("warning", message, details)

        symbol = self._get_status_symbol("warning")
        self._print(
            f"  {symbol} {self._colorize(step.name, 'yellow')}: {self._colorize(message, 'yellow')}"
        )
        logger.warning("Tolerated failure in %s: %s", step.name, message)

    def fail_step(
        self,
        step: ProgressStep,
        message: str,
        error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Mark step as failed."""
        step.finish("failed", message, details)
        step.error = error

        symbol = self._get_status_symbol("failed")
        self._print(
            f"  {symbol} {self._colorize(step.name, 'red')}: {self._colorize(message, 'red')}"
        )
        logger.error("Step failed: %s - %s", step.name, message)

    def skip_step(self, step: ProgressStep, reason: str) -> None:
        """Mark step as skipped."""
        step.finish("skipped", reason)

        symbol = self._get_status_symbol("skipped")
        self._print(
            f"  {symbol} {self._colorize(step.name, 'yellow')}: {self._colorize(reason, 'gray')}"
        )
        logger.info("Skipped: %s - %s", step.name, reason)

    def report_error_help(self, help_text: str) -> None:
        """Print catalog help for a fatal error."""
        self._print("")
        for line in help_text.splitlines():
            self._print(f"  {line}")

    def report_startup_complete(
        self, *, success: bool = True, message: str = ""
    ) -> None:
        """Report startup completion."""
        self.end_time = time.time()
        total_duration = (self.end_time - self.start_time) * 1000

        if success:
            self.current_phase = ProgressPhase.READY
            label = self._colorize("Startup Complete", "green")
        else:
            self.current_phase = ProgressPhase.FAILED
            label = self._colorize("Startup Failed", "red")

        status_msg = f"{self._get_phase_emoji(self.current_phase)} {label} ({total_duration:.0f}ms)"
        if message:
            status_msg += f": {message}"
        self._print(f"\n{status_msg}")
        self._print(f"{self._colorize('=' * 60, 'gray')}\n")

        if success:
            logger.info("Startup completed successfully in %.0fms", total_duration)
        else:
            logger.error("Startup failed after %.0fms: %s", total_duration, message)

    def get_startup_summary(self) -> dict[str, Any]:
        """Get startup summary."""

        def count(status: str) -> int:
            return sum(1 for s in self.steps if s.status == status)

        total_duration = 0.0
        if self.end_time:
            total_duration = (self.end_time - self.start_time) * 1000

        return {
            "total_duration_ms": total_duration,
            "total_steps": len(self.steps),
            "completed_steps": count("completed"),
            "warning_steps": count("warning"),
            "failed_steps": count("failed"),
            "skipped_steps": count("skipped"),
            "final_phase": self.current_phase.value,
            "success": count("failed") == 0
            and self.current_phase == ProgressPhase.READY,
        }
