"""Agent personas and role-based action filtering."""

from .access import RoleFilterResult, filter_actions_by_role
from .profiles import (
    DEFAULT_PROFILE_PROVIDER,
    AgentProfile,
    AgentProfileProvider,
    StaticAgentProfileProvider,
    build_active_agent_context,
)

__all__ = [
    "AgentProfile",
    "AgentProfileProvider",
    "DEFAULT_PROFILE_PROVIDER",
    "RoleFilterResult",
    "StaticAgentProfileProvider",
    "build_active_agent_context",
    "filter_actions_by_role",
]
