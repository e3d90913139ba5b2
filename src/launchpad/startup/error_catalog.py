"""Launchpad Startup Error Catalog.

Catalog of fatal startup errors with clear messages and solutions. The
sequencer prints the matching entry when it aborts so that operators reading
``docker logs`` know what to fix.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class ErrorCategory(StrEnum):
    """Error categories for organization."""

    CONFIGURATION = "configuration"
    NETWORKING = "networking"
    ENVIRONMENT = "environment"
    SECRETS = "secrets"
    FRAMEWORK = "framework"
    PROCESS = "process"


class ErrorSeverity(StrEnum):
    """Error severity levels."""

    CRITICAL = "critical"  # Prevents startup
    WARNING = "warning"  # Tolerated, startup continues


@dataclass
class ErrorSolution:
    """Suggested solution for an error."""

    description: str
    steps: list[str]
    documentation_links: list[str] = field(default_factory=list)


@dataclass
class StartupErrorInfo:
    """Comprehensive error information."""

    code: str
    title: str
    description: str
    category: ErrorCategory
    severity: ErrorSeverity
    solutions: list[ErrorSolution]
    common_causes: list[str]
    related_errors: list[str] = field(default_factory=list)


class StartupErrorCatalog:
    """Catalog of startup errors with solutions."""

    def __init__(self) -> None:
        self.errors: dict[str, StartupErrorInfo] = self._build_error_catalog()

    def _build_error_catalog(self) -> dict[str, StartupErrorInfo]:
        """Build the error catalog."""
        errors = {}

        errors["CONFIG_001"] = StartupErrorInfo(
            code="CONFIG_001",
            title="Invalid Sequencer Configuration",
            description="An environment variable read by the sequencer has an invalid value.",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "DB_PORT is not a number or is outside 1-65535",
                "LAUNCHPAD_DIRECTORY_MODE is not an octal mode",
                "A wait limit is zero or negative",
            ],
            solutions=[
                ErrorSolution(
                    description="Fix the invalid value",
                    steps=[
                        "Check the variable named in the error message",
                        "Correct it in the compose file or orchestrator manifest",
                        "Recreate the container",
                    ],
                ),
            ],
        )

        errors["DEP_001"] = StartupErrorInfo(
            code="DEP_001",
            title="Database Not Reachable",
            description="The database did not accept TCP connections before the wait limit.",
            category=ErrorCategory.NETWORKING,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Database container still initialising",
                "Wrong DB_HOST or DB_PORT",
                "Application and database on different networks",
            ],
            solutions=[
                ErrorSolution(
                    description="Verify the database endpoint",
                    steps=[
                        "Check DB_HOST and DB_PORT match the database service",
                        "Check the database container logs",
                        "Gate the app on the database health check in compose",
                    ],
                ),
                ErrorSolution(
                    description="Relax the wait limit",
                    steps=[
                        "Raise LAUNCHPAD_WAIT_TIMEOUT or LAUNCHPAD_WAIT_MAX_ATTEMPTS",
                        "Unset both to wait indefinitely",
                    ],
                ),
            ],
        )

        errors["ENV_001"] = StartupErrorInfo(
            code="ENV_001",
            title="Environment Template Missing",
            description="There is no environment file and no template to create it from.",
            category=ErrorCategory.ENVIRONMENT,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "The template was excluded by .dockerignore",
                "LAUNCHPAD_ENV_TEMPLATE points to the wrong file",
            ],
            solutions=[
                ErrorSolution(
                    description="Provide an environment file",
                    steps=[
                        "Ship .env.example in the image",
                        "Or mount a ready .env into the application root",
                    ],
                ),
            ],
            related_errors=["ENV_002"],
        )

        errors["ENV_002"] = StartupErrorInfo(
            code="ENV_002",
            title="Production Environment File Missing",
            description="Production containers must be given an environment file; it is never created from a template.",
            category=ErrorCategory.ENVIRONMENT,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Secret or volume holding .env not mounted",
                "APP_ENV=production set on a development stack",
            ],
            solutions=[
                ErrorSolution(
                    description="Mount the production environment file",
                    steps=[
                        "Mount .env into the application root",
                        "Check LAUNCHPAD_ENV_FILE if a different name is used",
                    ],
                ),
            ],
            related_errors=["ENV_001", "KEY_001"],
        )

        errors["KEY_001"] = StartupErrorInfo(
            code="KEY_001",
            title="Production Application Key Missing",
            description="APP_KEY is empty and keys are never generated in production.",
            category=ErrorCategory.SECRETS,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "APP_KEY line present but empty",
                "Environment file copied from a template",
            ],
            solutions=[
                ErrorSolution(
                    description="Set a persistent application key",
                    steps=[
                        "Generate one once with 'php artisan key:generate --show'",
                        "Store it in the production environment file",
                        "Never rotate it without re-encrypting stored data",
                    ],
                ),
            ],
        )

        errors["KEY_002"] = StartupErrorInfo(
            code="KEY_002",
            title="Application Key Generation Failed",
            description="The framework could not generate an application key.",
            category=ErrorCategory.FRAMEWORK,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Composer dependencies not installed",
                "PHP binary missing from the image",
            ],
            solutions=[
                ErrorSolution(
                    description="Check the framework console",
                    steps=[
                        "Run 'php artisan --version' inside the container",
                        "Rebuild the image if vendor/ is missing",
                    ],
                ),
            ],
        )

        errors["CACHE_001"] = StartupErrorInfo(
            code="CACHE_001",
            title="Production Cache Build Failed",
            description="A configuration, route or view cache could not be built.",
            category=ErrorCategory.FRAMEWORK,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Closure-based routes cannot be cached",
                "Syntax error in a configuration file",
                "Broken Blade template",
            ],
            solutions=[
                ErrorSolution(
                    description="Reproduce the failing command",
                    steps=[
                        "Run the command shown above inside the container",
                        "Fix the reported file and rebuild the image",
                    ],
                ),
            ],
        )

        errors["EXEC_001"] = StartupErrorInfo(
            code="EXEC_001",
            title="Server Command Not Executable",
            description="The command passed after the sequencer could not be executed.",
            category=ErrorCategory.PROCESS,
            severity=ErrorSeverity.CRITICAL,
            common_causes=[
                "Typo in the container CMD",
                "Server binary not installed in the image",
            ],
            solutions=[
                ErrorSolution(
                    description="Fix the container command",
                    steps=[
                        "Check CMD in the Dockerfile or 'command' in compose",
                        "Use an absolute path if PATH is unusual",
                    ],
                ),
            ],
        )

        return errors

    def get_error_info(self, error_code: str) -> StartupErrorInfo | None:
        """Get error information by code."""
        return self.errors.get(error_code)

    def find_errors_by_category(
        self, category: ErrorCategory
    ) -> list[StartupErrorInfo]:
        """Find all errors in a specific category."""
        return [error for error in self.errors.values() if error.category == category]

    def format_error_help(
        self, error_code: str, context: dict[str, str] | None = None
    ) -> str:
        """Format error help message."""
        error_info = self.get_error_info(error_code)
        if not error_info:
            return f"Unknown error code: {error_code}"

        lines: list[str] = []
        lines.extend(
            (
                f"🚨 {error_info.title} ({error_info.code})",
                "=" * 60,
                "",
                f"📝 Description: {error_info.description}",
                f"📊 Severity: {error_info.severity.value.upper()}",
                f"🏷️  Category: {error_info.category.value.title()}",
                "",
            )
        )

        if error_info.common_causes:
            lines.append("🔍 Common Causes:")
            lines.extend(f"  • {cause}" for cause in error_info.common_causes)
            lines.append("")

        if error_info.solutions:
            lines.append("💡 Solutions:")
            for i, solution in enumerate(error_info.solutions, 1):
                lines.append(f"\n  {i}. {solution.description}")
                lines.extend(f"     • {step}" for step in solution.steps)

                if solution.documentation_links:
                    lines.append("     📖 Documentation:")
                    lines.extend(
                        f"        {link}" for link in solution.documentation_links
                    )

        if context:
            lines.extend(("", "🔧 Context:"))
            for key, value in context.items():
                lines.append(f"  • {key}: {value}")

        if error_info.related_errors:
            lines.extend(("", "🔗 Related Errors:"))
            for related_code in error_info.related_errors:
                related_error = self.get_error_info(related_code)
                if related_error:
                    lines.append(f"  • {related_code}: {related_error.title}")

        return "\n".join(lines)


# Global error catalog instance
error_catalog = StartupErrorCatalog()
