"""Extract the structured action list from free-form model output.

The model embeds at most one fenced block tagged ``strata-tools`` whose body is
a JSON object ``{"actions": [...]}``. Everything around the block is prose meant
for the user. Extraction never raises: malformed blocks are logged and yield an
empty action list, while the prose is still returned with the block removed.
"""

from __future__ import annotations

import json
import re
from typing import Any, List

from pydantic import ValidationError

from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import Action, ChatReply

logger = get_logger(__name__)

TOOL_BLOCK_PATTERN = re.compile(r"```\s*strata-tools\s*(.*?)```", re.IGNORECASE | re.DOTALL)


def extract_tool_calls(text: Any) -> ChatReply:
    """
    Split model output into display text and actions.

    Args:
        text: Raw model output. Non-string input yields an empty reply.

    Returns:
        A ``ChatReply`` whose ``display_text`` is the input with the first
        tool-call block removed and trimmed, and whose ``actions`` are the
        parsed entries of that block (empty when absent or malformed).
    """
    if not isinstance(text, str):
        return ChatReply()

    match = TOOL_BLOCK_PATTERN.search(text)
    if match is None:
        return ChatReply(display_text=text, actions=[])

    display_text = (text[: match.start()] + text[match.end():]).strip()
    body = match.group(1).strip()
    logger.debug(f"Found tool-call block ({len(body)} chars)")

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse strata-tools JSON: {e}")
        return ChatReply(display_text=display_text, actions=[])

    raw_actions = parsed.get("actions") if isinstance(parsed, dict) else None
    if not isinstance(raw_actions, list):
        logger.warning("strata-tools block has no 'actions' list; ignoring it")
        return ChatReply(display_text=display_text, actions=[])

    actions: List[Action] = []
    for index, entry in enumerate(raw_actions):
        if not isinstance(entry, dict) or not isinstance(entry.get("type"), str):
            logger.warning(f"Dropping malformed action at index {index}: {entry!r}")
            continue
        try:
            actions.append(Action.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Dropping invalid action at index {index}: {e}")

    logger.debug(f"Parsed {len(actions)} action(s)")
    return ChatReply(display_text=display_text, actions=actions)
