"""Workspace snapshots under ``.strata/backups``."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from strata_agent.core.logging_config import get_logger

from .paths import STATE_DIR_NAME

logger = get_logger(__name__)

BACKUP_EXCLUDES = frozenset({STATE_DIR_NAME, ".git", "node_modules", ".vscode", "dist", "build"})


@dataclass(frozen=True)
class BackupResult:
    name: str
    path: Path
    item_count: int

    @property
    def summary(self) -> str:
        return f"Snapshot created at {STATE_DIR_NAME}/backups/{self.name} ({self.item_count} items)"


def backup_name(now: datetime, label: Optional[str] = None) -> str:
    """``2026-01-02T03-04-05-678Z[_label]``: ISO-8601 UTC with ``:`` and ``.`` replaced."""
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"{stamp}_{label}" if label else stamp


def create_backup(
    root: Path,
    label: Optional[str] = None,
    *,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> BackupResult:
    """
    Copy the top-level entries of ``root`` into a new backup folder.

    Dependency, build and VCS folders are skipped, as is ``.strata`` itself so
    the backup never copies into its own destination.
    """
    name = backup_name(clock(), label)
    dest = root / STATE_DIR_NAME / "backups" / name
    dest.mkdir(parents=True, exist_ok=True)

    count = 0
    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        if entry.name in BACKUP_EXCLUDES:
            continue
        target = dest / entry.name
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(entry, target, dirs_exist_ok=True)
        else:
            shutil.copy2(entry, target)
        count += 1

    logger.info(f"Backup {name} created with {count} item(s)")
    return BackupResult(name=name, path=dest, item_count=count)
