"""Exception hierarchy for the Launchpad startup sequencer.

Every fatal startup condition is a ``StartupError`` subclass carrying:
- the error catalog code used to print remediation help
- the sequencer step that raised it
- free-form details for logs and reports

Tolerated failures never raise; they are reported as warnings by the step
that observed them.
"""

from __future__ import annotations

from typing import Any


class StartupError(Exception):
    """Startup-specific error with detailed context."""

    error_code = "STARTUP_000"

    def __init__(
        self,
        message: str,
        phase: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.details = details or {}


class InvalidConfiguration(StartupError):
    """Sequencer settings could not be parsed from the environment."""

    error_code = "CONFIG_001"

    def __init__(self, errors: list[str], phase: str = "configuration") -> None:
        super().__init__(
            f"Found {len(errors)} configuration error(s)",
            phase,
            {"errors": errors},
        )
        self.errors = errors


class DependencyTimeout(StartupError):
    """The dependency endpoint did not accept connections within the policy."""

    error_code = "DEP_001"

    def __init__(
        self, host: str, port: int, attempts: int, elapsed: float
    ) -> None:
        super().__init__(
            f"{host}:{port} not reachable after {attempts} attempt(s) "
            f"in {elapsed:.1f}s",
            "dependency_wait",
            {"host": host, "port": port, "attempts": attempts, "elapsed": elapsed},
        )
        self.host = host
        self.port = port
        self.attempts = attempts


class MissingEnvironmentTemplate(StartupError):
    """Neither the environment file nor its template exists."""

    error_code = "ENV_001"

    def __init__(self, template: str) -> None:
        super().__init__(
            f"Environment template not found: {template}",
            "environment_file",
            {"template": template},
        )


class MissingProductionEnvironmentFile(StartupError):
    """Production refuses to fabricate an environment file from a template."""

    error_code = "ENV_002"

    def __init__(self, env_file: str) -> None:
        super().__init__(
            f"Environment file missing in production: {env_file}",
            "environment_file",
            {"env_file": env_file},
        )


class MissingProductionSecret(StartupError):
    """Production refuses to generate an application key."""

    error_code = "KEY_001"

    def __init__(self, env_file: str, key_name: str = "APP_KEY") -> None:
        super().__init__(
            f"{key_name} is empty in {env_file} and cannot be generated in production",
            "application_key",
            {"env_file": env_file, "key": key_name},
        )


class KeyGenerationFailed(StartupError):
    """The framework key generation command failed or printed nothing."""

    error_code = "KEY_002"

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            f"Application key generation failed: {reason}",
            "application_key",
            details,
        )


class CacheBuildFailed(StartupError):
    """A production cache could not be built."""

    error_code = "CACHE_001"

    def __init__(self, command: str, returncode: int, output: str = "") -> None:
        super().__init__(
            f"Cache build '{command}' exited with status {returncode}",
            "caches",
            {"command": command, "returncode": returncode, "output": output},
        )
        self.returncode = returncode


class HandoffFailed(StartupError):
    """The server command could not be executed."""

    error_code = "EXEC_001"

    def __init__(self, command: list[str], error: OSError) -> None:
        super().__init__(
            f"Cannot execute {command[0]!r}: {error.strerror or error}",
            "handoff",
            {"command": command, "errno": error.errno},
        )
