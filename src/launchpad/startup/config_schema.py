"""Launchpad Configuration Schema.

Pydantic-based validation of the values the sequencer reads from the process
environment. Only ``APP_ENV``, ``DB_HOST`` and ``DB_PORT`` belong to the
application; the ``LAUNCHPAD_*`` settings tune the sequencer itself. Every
other variable is left untouched for the server process.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
import logging
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from launchpad.startup.health_checks import DependencyEndpoint, RetryPolicy

logger = logging.getLogger(__name__)

# Modes that clear caches instead of building them
DEVELOPMENT_MODES = frozenset({"local", "development"})
PRODUCTION_MODE = "production"


class LogLevel(StrEnum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class Environment:
    """Everything the sequencer needs to know about the container it prepares.

    Paths are absolute. The sequencer never looks anything up outside this
    object, so tests can point it at a temporary directory.
    """

    mode: str
    app_root: Path
    env_file: Path
    env_template: Path
    public_link: Path
    storage_dir: Path
    bootstrap_cache_dir: Path
    dependency: DependencyEndpoint

    @property
    def is_production(self) -> bool:
        return self.mode.lower() == PRODUCTION_MODE

    @property
    def is_development(self) -> bool:
        return self.mode.lower() in DEVELOPMENT_MODES

    @classmethod
    def for_app_root(
        cls,
        app_root: Path,
        *,
        mode: str = PRODUCTION_MODE,
        db_host: str = "127.0.0.1",
        db_port: int = 3306,
    ) -> Environment:
        """Build an environment using the conventional framework layout."""
        return cls(
            mode=mode,
            app_root=app_root,
            env_file=app_root / ".env",
            env_template=app_root / ".env.example",
            public_link=app_root / "public" / "storage",
            storage_dir=app_root / "storage",
            bootstrap_cache_dir=app_root / "bootstrap" / "cache",
            dependency=DependencyEndpoint(host=db_host, port=db_port),
        )


class LaunchpadConfig(BaseSettings):
    """Sequencer configuration loaded from environment variables."""

    # Application values
    app_env: str = Field(
        default=PRODUCTION_MODE,
        description="Deployment mode (production, local, development, ...)",
        alias="APP_ENV",
    )
    db_host: str = Field(
        default="127.0.0.1", description="Database host", alias="DB_HOST"
    )
    db_port: int = Field(
        default=3306, description="Database port", ge=1, le=65535, alias="DB_PORT"
    )

    # Layout
    app_root: Path = Field(
        default=Path("/var/www/html"),
        description="Application working directory",
        alias="LAUNCHPAD_APP_ROOT",
    )
    env_file: str = Field(default=".env", alias="LAUNCHPAD_ENV_FILE")
    env_template: str = Field(default=".env.example", alias="LAUNCHPAD_ENV_TEMPLATE")
    public_link: str = Field(default="public/storage", alias="LAUNCHPAD_PUBLIC_LINK")
    storage_dir: str = Field(default="storage", alias="LAUNCHPAD_STORAGE_DIR")
    bootstrap_cache_dir: str = Field(
        default="bootstrap/cache", alias="LAUNCHPAD_BOOTSTRAP_CACHE_DIR"
    )

    # Framework console
    php_binary: str = Field(
        default="php", min_length=1, alias="LAUNCHPAD_PHP_BINARY"
    )
    console: str = Field(default="artisan", min_length=1, alias="LAUNCHPAD_CONSOLE")
    command_timeout: float = Field(
        default=300.0,
        description="Timeout for each framework command in seconds",
        gt=0,
        alias="LAUNCHPAD_COMMAND_TIMEOUT",
    )

    # Permissions
    runtime_user: str = Field(default="www-data", alias="LAUNCHPAD_RUNTIME_USER")
    runtime_group: str = Field(default="www-data", alias="LAUNCHPAD_RUNTIME_GROUP")
    directory_mode: int = Field(
        default=0o775,
        description="Mode applied recursively to writable trees",
        alias="LAUNCHPAD_DIRECTORY_MODE",
    )

    # Dependency wait
    wait_interval: float = Field(
        default=1.0, gt=0, le=60, alias="LAUNCHPAD_WAIT_INTERVAL"
    )
    wait_max_attempts: int | None = Field(
        default=None, gt=0, alias="LAUNCHPAD_WAIT_MAX_ATTEMPTS"
    )
    wait_timeout: float | None = Field(
        default=None, gt=0, alias="LAUNCHPAD_WAIT_TIMEOUT"
    )

    log_level: LogLevel = Field(default=LogLevel.INFO, alias="LAUNCHPAD_LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("directory_mode", mode="before")
    @classmethod
    def parse_octal_mode(cls, v: Any) -> int:
        """Accept ``"775"``, ``"0775"`` and ``"0o775"`` as octal."""
        if isinstance(v, str):
            text = v.strip().lower().removeprefix("0o")
            try:
                v = int(text, 8)
            except ValueError:
                msg = f"Invalid octal mode: {v}"
                raise ValueError(msg) from None
        if not isinstance(v, int) or not 0 <= v <= 0o7777:
            msg = f"Mode out of range: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("app_env")
    @classmethod
    def normalize_app_env(cls, v: str) -> str:
        return v.strip().lower()

    def is_development(self) -> bool:
        """Check if running in a development-like mode."""
        return self.app_env in DEVELOPMENT_MODES

    def _resolve(self, relative: str) -> Path:
        return (self.app_root / relative).absolute()

    def to_environment(self) -> Environment:
        """Materialise the value object consumed by the sequencer."""
        return Environment(
            mode=self.app_env,
            app_root=self.app_root.absolute(),
            env_file=self._resolve(self.env_file),
            env_template=self._resolve(self.env_template),
            public_link=self._resolve(self.public_link),
            storage_dir=self._resolve(self.storage_dir),
            bootstrap_cache_dir=self._resolve(self.bootstrap_cache_dir),
            dependency=DependencyEndpoint(host=self.db_host, port=self.db_port),
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            interval=self.wait_interval,
            max_attempts=self.wait_max_attempts,
            deadline=self.wait_timeout,
        )

    def get_startup_summary(self) -> dict[str, Any]:
        """Get startup configuration summary."""
        return {
            "app_env": self.app_env,
            "cache_mode": "clear" if self.is_development() else "build",
            "dependency": f"{self.db_host}:{self.db_port}",
            "app_root": str(self.app_root),
            "wait_policy": self.retry_policy().describe(),
            "log_level": self.log_level.value,
        }

    @classmethod
    def validate_from_env(cls) -> tuple[LaunchpadConfig | None, list[str]]:
        """Validate configuration from environment variables.

        Returns:
            Tuple of (config, errors). Config is None if validation fails.
        """
        try:
            return cls(), []
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field_path = ".".join(str(loc) for loc in error["loc"])
                errors.append(f"{field_path}: {error['msg']}")
            return None, errors
