"""Schemas and DTOs for the strata-agent core."""

from .domain import (
    Action,
    ActionError,
    ActionResult,
    ActionStatus,
    ActionType,
    AgentKey,
    ApplySummary,
    BlockedAction,
    ChatReply,
    ConversationMessage,
    WorkspaceSignals,
    WorkspaceSnapshot,
)

__all__ = [
    "Action",
    "ActionError",
    "ActionResult",
    "ActionStatus",
    "ActionType",
    "AgentKey",
    "ApplySummary",
    "BlockedAction",
    "ChatReply",
    "ConversationMessage",
    "WorkspaceSignals",
    "WorkspaceSnapshot",
]
