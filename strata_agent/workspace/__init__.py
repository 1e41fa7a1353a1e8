"""Workspace access: path resolution, snapshot building and caching, backups."""

from .backup import BackupResult, create_backup
from .cache import WorkspaceContextCache
from .context import ContextLimits, WorkspaceContextBuilder
from .paths import WorkspacePaths

__all__ = [
    "BackupResult",
    "ContextLimits",
    "WorkspaceContextBuilder",
    "WorkspaceContextCache",
    "WorkspacePaths",
    "create_backup",
]
