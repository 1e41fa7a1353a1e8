"""Parsing of model tool-call blocks and canonicalization of action types."""

from .extractor import extract_tool_calls
from .normalizer import ACTION_ALIASES, coerce_action_type, normalize_action_type

__all__ = [
    "ACTION_ALIASES",
    "coerce_action_type",
    "extract_tool_calls",
    "normalize_action_type",
]
