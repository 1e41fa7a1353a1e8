"""Heuristics for shell commands: long-running detection and ``&&`` splitting."""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, List

DEFAULT_LONG_RUNNING_PATTERNS: tuple[str, ...] = (
    "npm run dev",
    "pnpm dev",
    "yarn dev",
    "bun dev",
    "npm start",
    "pnpm start",
    "yarn start",
    "bun start",
    "vite",
    "next dev",
    "node server",
    "nodemon",
    "watch",
)


class LongRunningClassifier:
    """
    Predicate telling whether a command is likely a dev server or watcher.

    A command is long-running when its lowercased text contains any of the
    configured substrings. Such commands get a grace period before the runner
    hands them to the background instead of waiting for them to exit.
    """

    def __init__(self, patterns: Iterable[str] = DEFAULT_LONG_RUNNING_PATTERNS) -> None:
        self._patterns: FrozenSet[str] = frozenset(p.lower() for p in patterns if p)

    @property
    def patterns(self) -> FrozenSet[str]:
        return self._patterns

    def extend(self, *patterns: str) -> "LongRunningClassifier":
        """Return a new classifier with additional patterns."""
        return LongRunningClassifier([*self._patterns, *patterns])

    def is_long_running(self, command: str) -> bool:
        text = (command or "").lower()
        return any(pattern in text for pattern in self._patterns)

    __call__ = is_long_running


_AND_AND = re.compile(r"\s*&&\s*")


def split_chained_command(command: str) -> List[str]:
    """
    Split ``a && b && c`` into its parts.

    Splitting is purely textual: an ``&&`` inside quotes is split as well. This
    matches how commands have always been chained here; shell-aware parsing
    would change which commands run.
    """
    raw = command or ""
    if "&&" not in raw:
        return [raw]
    return [part.strip() for part in _AND_AND.split(raw) if part.strip()]
