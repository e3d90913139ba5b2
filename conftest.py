"""Global pytest configuration for logging setup.

This file ensures consistent logging behavior across all tests
and prevents caplog issues caused by logger configuration conflicts.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def setup_logging() -> None:
    """Keep launchpad loggers at DEBUG and propagating so caplog sees them.

    ``launchpad.core.logging_config.setup_logging`` turns propagation off;
    tests that exercise it must not leak that into other tests.
    """
    loggers_to_configure = [
        "launchpad",
        "launchpad.startup.orchestrator",
        "launchpad.startup.health_checks",
        "launchpad.startup.permissions",
    ]

    for logger_name in loggers_to_configure:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = True

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def configure_caplog(caplog: pytest.LogCaptureFixture) -> None:
    """Global fixture to configure caplog for all tests."""
    caplog.set_level(logging.DEBUG, logger="launchpad")
