"""Ownership and mode normalisation for runtime-writable trees."""

from __future__ import annotations

from dataclasses import dataclass, field
import grp
import logging
import os
from pathlib import Path
import pwd

logger = logging.getLogger(__name__)


@dataclass
class PermissionReport:
    """What happened while normalising one tree."""

    root: Path
    changed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.errors


def resolve_owner(user: str, group: str) -> tuple[int, int]:
    """Translate names (or numeric strings) into ids.

    Raises:
        KeyError: the user or group does not exist in this image.
    """
    uid = int(user) if user.isdigit() else pwd.getpwnam(user).pw_uid
    gid = int(group) if group.isdigit() else grp.getgrnam(group).gr_gid
    return uid, gid


def _walk(root: Path):
    yield root
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in (*dirnames, *filenames):
            yield base / name


def normalize_tree(
    root: Path,
    *,
    user: str,
    group: str,
    mode: int,
) -> PermissionReport:
    """Recursively apply owner and mode below ``root``.

    Never raises; every failure is collected in the report. Symlinks are
    re-owned but not followed or chmod'ed.
    """
    report = PermissionReport(root=root)
    if not root.exists():
        report.errors.append(f"{root} does not exist")
        return report

    owner: tuple[int, int] | None
    try:
        owner = resolve_owner(user, group)
    except KeyError as e:
        owner = None
        report.errors.append(f"unknown owner {user}:{group} ({e})")

    for path in _walk(root):
        if owner is not None:
            try:
                os.chown(path, *owner, follow_symlinks=False)
            except PermissionError as e:
                # Unprivileged container: no point retrying on every file
                owner = None
                report.errors.append(f"chown {path}: {e.strerror or e}")
            except OSError as e:
                report.errors.append(f"chown {path}: {e.strerror or e}")
        if path.is_symlink():
            continue
        try:
            path.chmod(mode)
            report.changed += 1
        except OSError as e:
            report.errors.append(f"chmod {path}: {e.strerror or e}")

    if report.errors:
        logger.warning(
            "Permissions on %s partially applied (%d error(s))",
            root,
            len(report.errors),
        )
    return report


@dataclass(frozen=True)
class OwnershipPolicy:
    """Owner and mode applied to the runtime-writable trees."""

    user: str = "www-data"
    group: str = "www-data"
    mode: int = 0o775

    def apply(self, root: Path) -> PermissionReport:
        return normalize_tree(root, user=self.user, group=self.group, mode=self.mode)
