from __future__ import annotations

import pytest

from strata_agent.roles.profiles import DEFAULT_PROFILE_PROVIDER, build_active_agent_context
from strata_agent.schemas.domain import ActionType, AgentKey

T = ActionType


@pytest.mark.parametrize(
    ("key", "display_name", "role", "allowed"),
    [
        (
            AgentKey.architect,
            "Ari",
            "Architect",
            {T.read_file, T.list_files, T.open_file, T.fetch_url, T.manage_memory, T.get_system_status, T.generate_image},
        ),
        (
            AgentKey.researcher,
            "Nova",
            "Researcher",
            {
                T.read_file,
                T.list_files,
                T.open_file,
                T.fetch_url,
                T.manage_memory,
                T.create_or_overwrite_file,
                T.append_to_file,
                T.generate_image,
            },
        ),
        (
            AgentKey.coder,
            "Byte",
            "Coder",
            {
                T.read_file,
                T.list_files,
                T.open_file,
                T.create_directory,
                T.create_or_overwrite_file,
                T.append_to_file,
                T.run_terminal_command,
                T.generate_image,
            },
        ),
        (
            AgentKey.debugger,
            "Patch",
            "Debugger",
            {
                T.read_file,
                T.list_files,
                T.open_file,
                T.create_or_overwrite_file,
                T.append_to_file,
                T.run_terminal_command,
                T.kill_port,
                T.kill_background_processes,
                T.get_system_status,
                T.generate_image,
            },
        ),
        (
            AgentKey.data,
            "Quill",
            "Data Collector",
            {
                T.read_file,
                T.list_files,
                T.open_file,
                T.fetch_url,
                T.create_or_overwrite_file,
                T.append_to_file,
                T.manage_memory,
                T.generate_image,
            },
        ),
        (
            AgentKey.devops,
            "Pulse",
            "DevOps",
            {
                T.read_file,
                T.list_files,
                T.open_file,
                T.create_or_overwrite_file,
                T.append_to_file,
                T.run_terminal_command,
                T.kill_port,
                T.kill_background_processes,
                T.get_system_status,
                T.create_backup,
                T.generate_image,
            },
        ),
    ],
)
def test_profiles_are_correct(key: AgentKey, display_name: str, role: str, allowed: set[ActionType]) -> None:
    profile = DEFAULT_PROFILE_PROVIDER.get(key)
    assert profile.key == key
    assert profile.display_name == display_name
    assert profile.role == role
    assert set(profile.allowed_tools) == allowed


@pytest.mark.parametrize("key", list(AgentKey))
def test_get_accepts_enum_and_string(key: AgentKey) -> None:
    assert DEFAULT_PROFILE_PROVIDER.get(key) == DEFAULT_PROFILE_PROVIDER.get(key.value)


def test_unknown_key_raises_key_error() -> None:
    with pytest.raises(KeyError):
        DEFAULT_PROFILE_PROVIDER.get("wizard")


@pytest.mark.parametrize("key", [None, "", "wizard"])
def test_find_returns_none_for_unknown(key) -> None:
    assert DEFAULT_PROFILE_PROVIDER.find(key) is None


class TestBuildActiveAgentContext:
    def test_renders_persona_block(self) -> None:
        block = build_active_agent_context("debugger")

        assert block.startswith("Active agent:\n")
        assert "- name: Patch" in block
        assert "- role: Debugger" in block
        assert "- voice: focused, direct" in block
        assert "- humor: deadpan" in block
        assert "killPort" in block
        assert "fetchUrl" not in block
        assert "Stay strictly within this role." in block

    @pytest.mark.parametrize("key", [None, "", "wizard"])
    def test_unknown_key_renders_nothing(self, key) -> None:
        assert build_active_agent_context(key) == ""
