"""
Workspace snapshot.

Builds the bounded textual summary of the open project that grounds every
prompt: a truncated file tree, detected Node projects with a package.json
summary, dependency install state, key file excerpts, and the package manager
hint derived from lock files.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Deque, Dict, List, Optional, Tuple

from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import WorkspaceSignals, WorkspaceSnapshot

logger = get_logger(__name__)

IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        ".next",
        "dist",
        "build",
        "out",
        "coverage",
        ".turbo",
        ".cache",
        ".vscode",
        "workspaces",
        ".openvscode-server",
        ".npm",
    }
)

KEY_FILE_CANDIDATES: Tuple[str, ...] = (
    "vite.config.js",
    "vite.config.ts",
    "next.config.js",
    "next.config.mjs",
    "tailwind.config.js",
    "tailwind.config.cjs",
    "tailwind.config.ts",
    "postcss.config.js",
    "postcss.config.cjs",
    "tsconfig.json",
    "jsconfig.json",
    "src/main.jsx",
    "src/main.tsx",
    "src/index.jsx",
    "src/index.tsx",
    "src/App.jsx",
    "src/App.tsx",
    "app/page.jsx",
    "app/page.tsx",
    "README.md",
)

# Checked in priority order.
LOCK_FILES: Tuple[Tuple[str, str], ...] = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("package-lock.json", "npm"),
)

SUMMARY_LIST_LIMIT = 40
RAW_MANIFEST_EXCERPT_CHARS = 2000


@dataclass(frozen=True)
class ContextLimits:
    max_tree_entries: int = 250
    max_tree_depth: int = 4
    max_file_bytes: int = 20_000
    max_key_files: int = 8
    max_key_file_bytes: int = 6_000


@dataclass
class _NodeProject:
    manifest: str
    has_node_modules: bool
    summary: str
    key_files: List[Tuple[str, str]] = field(default_factory=list)


def read_text_truncated(path: Path, max_bytes: int) -> str:
    with path.open("rb") as fh:
        data = fh.read(max_bytes)
    return data.decode("utf-8", errors="replace")


def summarize_package_json(pkg: Any) -> str:
    """Condensed JSON view of a manifest: name, private flag, and key lists."""
    if not isinstance(pkg, dict):
        return ""

    def _names(value: Any) -> Optional[str]:
        if not isinstance(value, dict) or not value:
            return None
        keys = list(value.keys())
        text = ", ".join(keys[:SUMMARY_LIST_LIMIT])
        return text + ", ..." if len(keys) > SUMMARY_LIST_LIMIT else text

    summary: Dict[str, Any] = {}
    if isinstance(pkg.get("name"), str) and pkg["name"]:
        summary["name"] = pkg["name"]
    if pkg.get("private") is True:
        summary["private"] = True
    for key in ("scripts", "dependencies", "devDependencies"):
        names = _names(pkg.get(key))
        if names:
            summary[key] = names
    return json.dumps(summary, indent=2)


def detect_package_manager(root: Path) -> str:
    for lock_file, manager in LOCK_FILES:
        if (root / lock_file).exists():
            return manager
    return "npm"


class WorkspaceContextBuilder:
    """
    Compute a ``WorkspaceSnapshot`` for a workspace root.

    The tree walk is breadth-first so the entry cap keeps shallow entries
    first; collected entries are rendered as an indented tree in path order.
    """

    def __init__(self, root: Optional[Path], limits: Optional[ContextLimits] = None) -> None:
        self._root = root
        self._limits = limits or ContextLimits()

    @property
    def limits(self) -> ContextLimits:
        return self._limits

    def build(self) -> WorkspaceSnapshot:
        root = self._root
        if root is None or not root.is_dir():
            return WorkspaceSnapshot()

        tree_lines = self.collect_tree(root)
        package_manager = detect_package_manager(root)
        projects = [self._describe_project(root, manifest) for manifest in self._find_manifests(root)]

        sections: List[str] = [
            "Workspace context:",
            f"Workspace root: {root}",
            "File tree (truncated):",
            "\n".join(tree_lines) or "(empty)",
        ]
        if projects:
            sections.append("Detected Node project(s):")
            sections.append(f"Package manager hint: {package_manager}")
            for project in projects:
                node_modules = "present" if project.has_node_modules else "missing"
                sections.append(f"- package.json: {project.manifest} | node_modules: {node_modules}")
                if project.summary:
                    sections.append("package.json summary:")
                    sections.append(project.summary)
                if project.key_files:
                    sections.append("Key file excerpts (truncated):")
                    for rel, contents in project.key_files:
                        sections.append(f"--- file: {rel} ---")
                        sections.append(contents)

        signals = WorkspaceSignals(
            package_manager=package_manager,
            has_projects=bool(projects),
            needs_install=any(not p.has_node_modules for p in projects),
        )
        logger.debug(
            f"Workspace snapshot built: {len(tree_lines)} tree entries, {len(projects)} project(s), "
            f"needs_install={signals.needs_install}"
        )
        return WorkspaceSnapshot(text="\n".join(sections) + "\n", signals=signals)

    def collect_tree(self, root: Path) -> List[str]:
        """Breadth-first listing capped at ``max_tree_entries``, rendered as a tree."""
        limits = self._limits
        collected: List[Tuple[Tuple[str, ...], bool]] = []
        queue: Deque[Tuple[Path, int, Tuple[str, ...]]] = deque([(root, 0, ())])

        while queue and len(collected) < limits.max_tree_entries:
            directory, depth, parts = queue.popleft()
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError:
                continue
            for entry in entries:
                if len(collected) >= limits.max_tree_entries:
                    break
                is_dir = entry.is_dir()
                if is_dir and entry.name in IGNORED_DIRS:
                    continue
                entry_parts = parts + (entry.name,)
                collected.append((entry_parts, is_dir))
                if is_dir and depth < limits.max_tree_depth:
                    queue.append((entry, depth + 1, entry_parts))

        collected.sort(key=lambda item: item[0])
        return ["  " * (len(parts) - 1) + parts[-1] + ("/" if is_dir else "") for parts, is_dir in collected]

    def _find_manifests(self, root: Path) -> List[Path]:
        manifests: List[Path] = []
        if (root / "package.json").is_file():
            manifests.append(root / "package.json")
        try:
            children = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError:
            return manifests
        for child in children:
            if child.is_dir() and child.name not in IGNORED_DIRS and (child / "package.json").is_file():
                manifests.append(child / "package.json")
        return manifests

    def _describe_project(self, root: Path, manifest: Path) -> _NodeProject:
        limits = self._limits
        project_dir = manifest.parent
        raw = ""
        try:
            raw = read_text_truncated(manifest, limits.max_file_bytes)
            summary = summarize_package_json(json.loads(raw))
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Could not parse {manifest}: {e}")
            summary = raw[:RAW_MANIFEST_EXCERPT_CHARS]

        key_files: List[Tuple[str, str]] = []
        for candidate in KEY_FILE_CANDIDATES:
            if len(key_files) >= limits.max_key_files:
                break
            path = project_dir.joinpath(*candidate.split("/"))
            if not path.is_file():
                continue
            try:
                contents = read_text_truncated(path, limits.max_key_file_bytes)
            except OSError:
                continue
            if contents:
                key_files.append((path.relative_to(root).as_posix(), contents))

        return _NodeProject(
            manifest=manifest.relative_to(root).as_posix(),
            has_node_modules=(project_dir / "node_modules").exists(),
            summary=summary,
            key_files=key_files,
        )
