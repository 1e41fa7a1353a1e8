"""Partition actions by the active persona's allowlist."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from strata_agent.actions.normalizer import normalize_action_type
from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import Action, BlockedAction

from .profiles import DEFAULT_PROFILE_PROVIDER, StaticAgentProfileProvider

logger = get_logger(__name__)


@dataclass(frozen=True)
class RoleFilterResult:
    allowed: List[Action] = field(default_factory=list)
    blocked: List[BlockedAction] = field(default_factory=list)


def filter_actions_by_role(
    actions: Sequence[Action],
    agent_key: Optional[str],
    provider: StaticAgentProfileProvider = DEFAULT_PROFILE_PROVIDER,
) -> RoleFilterResult:
    """
    Split actions into those the persona may run and those it may not.

    An absent or unknown persona imposes no restriction. Otherwise each action's
    normalized type is checked against the persona allowlist. Input order is
    preserved in both partitions.

    Args:
        actions: Actions extracted from the model reply.
        agent_key: Active persona key, if any.
        provider: Persona source.

    Returns:
        ``RoleFilterResult`` with ``allowed`` actions and ``blocked`` entries
        carrying the reason ``"Tool not allowed for role: <key>"``.
    """
    profile = provider.find(agent_key)
    if profile is None:
        return RoleFilterResult(allowed=list(actions), blocked=[])

    allowed: List[Action] = []
    blocked: List[BlockedAction] = []
    for action in actions:
        if profile.allows(normalize_action_type(action.type)):
            allowed.append(action)
        else:
            blocked.append(BlockedAction(action=action, reason=f"Tool not allowed for role: {agent_key}"))

    if blocked:
        logger.info(f"Blocked {len(blocked)} action(s) for role {agent_key}: {[b.action.type for b in blocked]}")
    return RoleFilterResult(allowed=allowed, blocked=blocked)
