"""Resolve action paths against the workspace root."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from strata_agent.errors import WorkspaceNotOpenError

_WINDOWS_ABSOLUTE = re.compile(r"^[a-zA-Z]:[\\/]")
_SEPARATORS = re.compile(r"[\\/]")

STATE_DIR_NAME = ".strata"


class WorkspacePaths:
    """
    Path resolution for one workspace.

    Absolute paths (POSIX or drive-letter) are honored as given. Relative paths
    are split on both separators and joined onto the root.
    """

    def __init__(self, root: Optional[Path | str]) -> None:
        self._root = Path(root) if root is not None else None

    @property
    def root(self) -> Optional[Path]:
        return self._root

    def require_root(self) -> Path:
        if self._root is None:
            raise WorkspaceNotOpenError()
        return self._root

    @property
    def state_dir(self) -> Path:
        return self.require_root() / STATE_DIR_NAME

    def resolve(self, path: str) -> Path:
        """
        Resolve an action path.

        Raises:
            ValueError: If the path is missing or blank.
            WorkspaceNotOpenError: If the path is relative and no workspace is open.
        """
        if not isinstance(path, str) or not path.strip():
            raise ValueError("Missing path for tool action.")
        if path.startswith("/") or _WINDOWS_ABSOLUTE.match(path):
            return Path(path)
        segments = [s for s in _SEPARATORS.split(path) if s]
        return self.require_root().joinpath(*segments)

    def resolve_cwd(self, cwd: Optional[str]) -> Optional[str]:
        """Working directory for a command; defaults to the root (or None without one)."""
        if isinstance(cwd, str) and cwd.strip():
            return str(self.resolve(cwd.strip()))
        return str(self._root) if self._root is not None else None

    def display(self, path: Path) -> str:
        """Render a path relative to the root when it lies inside it."""
        if self._root is not None:
            try:
                return "./" + path.relative_to(self._root).as_posix()
            except ValueError:
                pass
        return str(path)
