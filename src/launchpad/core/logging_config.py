"""Launchpad - Logging Configuration.

Plain-text logging for container startup. Logs go to stderr so the progress
output on stdout stays readable in ``docker logs``.
"""

import logging
import logging.config
import sys
from typing import Any

# Configure logger
logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", *, debug: bool = False) -> None:
    """Configure logging for the sequencer."""
    logging_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s | %(name)s | %(levelname)s | "
                    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if debug else "simple",
                "stream": sys.stderr,
            },
        },
        "loggers": {
            "launchpad": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }

    logging.config.dictConfig(logging_config)

    logger.debug("Logging configured with level %s", level)
