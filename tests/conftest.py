"""Shared test fixtures for the launchpad test suite."""

from __future__ import annotations

import io
import os
from pathlib import Path

import pytest

from launchpad.startup.config_schema import Environment
from launchpad.startup.permissions import OwnershipPolicy
from launchpad.startup.progress_reporter import StartupProgressReporter
from tests.fakes.control_plane import FakeControlPlane

TEMPLATE_CONTENT = (
    b"APP_NAME=Launchpad\r\n"
    b"APP_ENV=local\n"
    b"APP_KEY=\n"
    b"DB_HOST=127.0.0.1\n"
    b"# trailing comment without newline"
)


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    """A minimal framework layout with a template but no ``.env``."""
    root = tmp_path / "app"
    (root / "public").mkdir(parents=True)
    (root / "storage").mkdir()
    (root / "bootstrap" / "cache").mkdir(parents=True)
    (root / ".env.example").write_bytes(TEMPLATE_CONTENT)
    return root


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(output: io.StringIO) -> StartupProgressReporter:
    return StartupProgressReporter(output=output, enable_colors=False)


@pytest.fixture
def ownership() -> OwnershipPolicy:
    """Chown to ourselves so the step works without root."""
    return OwnershipPolicy(user=str(os.getuid()), group=str(os.getgid()), mode=0o775)


@pytest.fixture
def make_environment(app_root: Path):
    def factory(mode: str = "production", db_host: str = "127.0.0.1") -> Environment:
        return Environment.for_app_root(app_root, mode=mode, db_host=db_host)

    return factory


@pytest.fixture
def control_plane(app_root: Path) -> FakeControlPlane:
    return FakeControlPlane(
        public_link=app_root / "public" / "storage",
        link_target=app_root / "storage" / "app" / "public",
    )
