"""
Agent persona definitions.

This module defines the fixed set of personas the user can switch between.
Each persona carries a display name, a role, hints for tone and humor, and the
allowlist of canonical action types it may invoke. Profiles are served by a
static in-memory provider.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, Optional, Protocol

from strata_agent.schemas.base import FrozenSchema
from strata_agent.schemas.domain import ActionType, AgentKey


class AgentProfile(FrozenSchema):
    """
    Complete definition of a persona.

    Attributes:
        key: Stable identifier used by the presentation layer.
        display_name: Human name the persona speaks as.
        role: Short role title.
        voice_hint: Guidance for tone of voice.
        humor_style: Guidance for humor.
        allowed_tools: Canonical action types the persona may invoke.
    """

    key: AgentKey
    display_name: str
    role: str
    voice_hint: str
    humor_style: str
    allowed_tools: FrozenSet[ActionType]

    def allows(self, action_type: str) -> bool:
        return action_type in {t.value for t in self.allowed_tools}

    def ordered_tools(self) -> list[ActionType]:
        """Allowed tools in declaration order of ``ActionType``."""
        return [t for t in ActionType if t in self.allowed_tools]


class AgentProfileProvider(Protocol):
    """Source of persona definitions."""

    def get(self, key: AgentKey | str) -> AgentProfile:
        """
        Retrieve a persona.

        Raises:
            KeyError: If the key is not a known persona.
        """
        ...

    def list_keys(self) -> Iterable[AgentKey]:
        ...


class StaticAgentProfileProvider:
    """Profile provider backed by an in-memory dictionary."""

    def __init__(self, *, profiles: Dict[AgentKey, AgentProfile]) -> None:
        self._profiles = dict(profiles)

    def get(self, key: AgentKey | str) -> AgentProfile:
        if isinstance(key, AgentKey):
            agent_key = key
        else:
            try:
                agent_key = AgentKey(str(key))
            except ValueError as e:
                raise KeyError(key) from e
        return self._profiles[agent_key]

    def find(self, key: Optional[AgentKey | str]) -> Optional[AgentProfile]:
        """Like ``get`` but returns ``None`` for absent or unknown keys."""
        if not key:
            return None
        try:
            return self.get(key)
        except KeyError:
            return None

    def list_keys(self) -> Iterable[AgentKey]:
        return self._profiles.keys()


_READ_TOOLS = frozenset({ActionType.read_file, ActionType.list_files, ActionType.open_file})
_WRITE_TOOLS = frozenset({ActionType.create_or_overwrite_file, ActionType.append_to_file})

DEFAULT_PROFILE_PROVIDER = StaticAgentProfileProvider(
    profiles={
        AgentKey.architect: AgentProfile(
            key=AgentKey.architect,
            display_name="Ari",
            role="Architect",
            voice_hint="calm, confident",
            humor_style="dry, subtle",
            allowed_tools=_READ_TOOLS
            | {
                ActionType.fetch_url,
                ActionType.manage_memory,
                ActionType.get_system_status,
                ActionType.generate_image,
            },
        ),
        AgentKey.researcher: AgentProfile(
            key=AgentKey.researcher,
            display_name="Nova",
            role="Researcher",
            voice_hint="curious, warm",
            humor_style="playful, nerdy",
            allowed_tools=_READ_TOOLS
            | _WRITE_TOOLS
            | {ActionType.fetch_url, ActionType.manage_memory, ActionType.generate_image},
        ),
        AgentKey.coder: AgentProfile(
            key=AgentKey.coder,
            display_name="Byte",
            role="Coder",
            voice_hint="fast, upbeat",
            humor_style="witty, punchy",
            allowed_tools=_READ_TOOLS
            | _WRITE_TOOLS
            | {ActionType.create_directory, ActionType.run_terminal_command, ActionType.generate_image},
        ),
        AgentKey.debugger: AgentProfile(
            key=AgentKey.debugger,
            display_name="Patch",
            role="Debugger",
            voice_hint="focused, direct",
            humor_style="deadpan",
            allowed_tools=_READ_TOOLS
            | _WRITE_TOOLS
            | {
                ActionType.run_terminal_command,
                ActionType.kill_port,
                ActionType.kill_background_processes,
                ActionType.get_system_status,
                ActionType.generate_image,
            },
        ),
        AgentKey.data: AgentProfile(
            key=AgentKey.data,
            display_name="Quill",
            role="Data Collector",
            voice_hint="measured, precise",
            humor_style="light",
            allowed_tools=_READ_TOOLS
            | _WRITE_TOOLS
            | {ActionType.fetch_url, ActionType.manage_memory, ActionType.generate_image},
        ),
        AgentKey.devops: AgentProfile(
            key=AgentKey.devops,
            display_name="Pulse",
            role="DevOps",
            voice_hint="steady, pragmatic",
            humor_style="practical",
            allowed_tools=_READ_TOOLS
            | _WRITE_TOOLS
            | {
                ActionType.run_terminal_command,
                ActionType.kill_port,
                ActionType.kill_background_processes,
                ActionType.get_system_status,
                ActionType.create_backup,
                ActionType.generate_image,
            },
        ),
    }
)


def build_active_agent_context(
    agent_key: Optional[str],
    provider: StaticAgentProfileProvider = DEFAULT_PROFILE_PROVIDER,
) -> str:
    """Render the persona block injected into the prompt; empty for unknown keys."""
    profile = provider.find(agent_key)
    if profile is None:
        return ""
    allowed = ", ".join(t.value for t in profile.ordered_tools())
    lines = [
        "Active agent:",
        f"- name: {profile.display_name}",
        f"- role: {profile.role}",
        f"- voice: {profile.voice_hint}",
        f"- humor: {profile.humor_style}",
        f"- allowed_tools: {allowed}",
        "Instruction: respond as this agent (human-like, natural). Stay strictly within this role.",
    ]
    return "\n".join(lines) + "\n"
