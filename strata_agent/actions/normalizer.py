"""Canonicalize action type aliases.

Models frequently emit shorthand names (``mkdir``, ``exec``, ``write``) instead
of the canonical action types. The alias table maps each shorthand to its
canonical name; anything not in the table passes through unchanged so that the
executor can reject it deterministically.
"""

from __future__ import annotations

from typing import Dict, Optional

from strata_agent.schemas.domain import ActionType

ACTION_ALIASES: Dict[str, str] = {
    "createFile": ActionType.create_or_overwrite_file.value,
    "writeFile": ActionType.create_or_overwrite_file.value,
    "write": ActionType.create_or_overwrite_file.value,
    "mkdir": ActionType.create_directory.value,
    "rm": ActionType.delete_path.value,
    "remove": ActionType.delete_path.value,
    "delete": ActionType.delete_path.value,
    "exec": ActionType.run_terminal_command.value,
    "run": ActionType.run_terminal_command.value,
    "command": ActionType.run_terminal_command.value,
    "read": ActionType.read_file.value,
    "ls": ActionType.list_files.value,
    "list": ActionType.list_files.value,
    "fetch": ActionType.fetch_url.value,
    "get": ActionType.fetch_url.value,
    "open": ActionType.open_file.value,
    "append": ActionType.append_to_file.value,
    "kill": ActionType.kill_port.value,
    "killBackground": ActionType.kill_background_processes.value,
    "killBackgroundProcs": ActionType.kill_background_processes.value,
    "imageGen": ActionType.generate_image.value,
    "genImage": ActionType.generate_image.value,
}

_CANONICAL = {t.value: t for t in ActionType}


def normalize_action_type(action_type: str) -> str:
    """Map an alias to its canonical type name.

    Unmapped names are returned unchanged, which makes the function idempotent:
    canonical names never appear as alias keys.
    """
    return ACTION_ALIASES.get(action_type, action_type)


def coerce_action_type(action_type: str) -> Optional[ActionType]:
    """Resolve a raw type string to ``ActionType``; ``None`` for unknown types."""
    return _CANONICAL.get(normalize_action_type(action_type))
