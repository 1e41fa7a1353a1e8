"""Persistent key/value memory for the agent, stored as JSON in the workspace."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from strata_agent.core.logging_config import get_logger

logger = get_logger(__name__)

MEMORY_FILE_NAME = "memory.json"


class MemoryStore:
    """
    JSON document at ``<root>/.strata/memory.json``.

    A missing or unreadable document reads as an empty mapping. Writes are
    whole-document rewrites, pretty-printed with two-space indentation.
    """

    def __init__(self, state_dir: Path) -> None:
        self._path = state_dir / MEMORY_FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            logger.warning(f"Memory file {self._path} is not valid JSON, treating as empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, key: str, value: Any) -> Dict[str, Any]:
        memory = self.read()
        memory[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(memory, indent=2), encoding="utf-8")
        logger.debug(f"Memory key {key!r} written")
        return memory

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

    def dumps(self) -> str:
        """Current memory as indented JSON, the form ``manageMemory read`` reports."""
        return json.dumps(self.read(), indent=2)
