"""Application environment file handling.

Thin wrapper over python-dotenv so the sequencer can read and update the
framework's ``.env`` without disturbing the rest of the file.
"""

from __future__ import annotations

import logging
from pathlib import Path
import shutil

from dotenv import dotenv_values, set_key

logger = logging.getLogger(__name__)

APP_KEY = "APP_KEY"


class EnvironmentFile:
    """The key-value file the application reads at its own startup."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def materialize_from(self, template: Path) -> None:
        """Copy ``template`` verbatim into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(template, self.path)
        logger.info("Created %s from %s", self.path, template)

    def values(self) -> dict[str, str | None]:
        return dict(dotenv_values(self.path))

    def get(self, key: str) -> str:
        """Return the value for ``key`` or an empty string."""
        return (self.values().get(key) or "").strip()

    def set(self, key: str, value: str) -> None:
        """Insert or replace ``key`` keeping every other line intact."""
        # set_key swaps in a temp file, which would leave the file 0600
        mode = self.path.stat().st_mode & 0o7777
        set_key(self.path, key, value, quote_mode="never")
        self.path.chmod(mode)
        logger.debug("Persisted %s into %s", key, self.path)

    def has_app_key(self) -> bool:
        return bool(self.get(APP_KEY))
