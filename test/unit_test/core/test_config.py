from __future__ import annotations

import os
from pathlib import Path

import pytest

from strata_agent.core.config import (
    API_KEY_ENV,
    StrataSettings,
    load_workspace_env,
    resolve_api_key,
)
from strata_agent.errors import MissingCredentialError


@pytest.fixture
def bare_settings(monkeypatch: pytest.MonkeyPatch) -> StrataSettings:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    return StrataSettings(_env_file=None)


class TestStrataSettings:
    def test_defaults(self, bare_settings: StrataSettings):
        assert bare_settings.model == "gemini-3-pro-preview"
        assert bare_settings.max_retries == 3
        assert bare_settings.retry_base_seconds == 1.0
        assert bare_settings.retry_jitter_seconds == 0.5
        assert bare_settings.context_ttl_seconds == 8.0
        assert bare_settings.context_max_tree_entries == 250
        assert bare_settings.output_tail_bytes == 6000
        assert bare_settings.result_tail_chars == 1500
        assert bare_settings.long_running_grace_seconds == 15.0
        assert bare_settings.fetch_max_chars == 8000

    def test_environment_aliases(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("STRATA_MODEL", "other-model")
        monkeypatch.setenv("STRATA_MAX_RETRIES", "5")
        settings = StrataSettings(_env_file=None)
        assert settings.model == "other-model"
        assert settings.max_retries == 5

    def test_image_model_falls_back_to_chat_model(self, bare_settings: StrataSettings):
        assert bare_settings.effective_image_model == bare_settings.model
        assert StrataSettings(_env_file=None, image_model="img").effective_image_model == "img"


class TestResolveApiKey:
    def test_prefers_settings(self, bare_settings: StrataSettings):
        settings = bare_settings.model_copy(update={"gemini_api_key": "from-settings"})
        assert resolve_api_key(settings) == "from-settings"

    def test_reads_process_environment(self, bare_settings: StrataSettings, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(API_KEY_ENV, "from-env")
        assert resolve_api_key(bare_settings) == "from-env"

    def test_falls_back_to_workspace_dotenv_and_strips_quotes(self, bare_settings: StrataSettings, workspace: Path):
        (workspace / ".env").write_text('# comment\nOTHER=1\nGEMINI_API_KEY="quoted-key"\n', encoding="utf-8")

        key = resolve_api_key(bare_settings, workspace)

        assert key == "quoted-key"
        assert os.environ.pop(API_KEY_ENV) == "quoted-key"

    def test_single_quotes_are_stripped(self, workspace: Path):
        (workspace / ".env").write_text("GEMINI_API_KEY='single'\n", encoding="utf-8")
        assert load_workspace_env(workspace)["GEMINI_API_KEY"] == "single"

    def test_missing_everywhere_is_fatal(self, bare_settings: StrataSettings, workspace: Path):
        with pytest.raises(MissingCredentialError, match="GEMINI_API_KEY environment variable is not set."):
            resolve_api_key(bare_settings, workspace)

    def test_workspace_env_is_parsed_once(self, workspace: Path):
        env_file = workspace / ".env"
        env_file.write_text("GEMINI_API_KEY=first\n", encoding="utf-8")
        assert load_workspace_env(workspace)["GEMINI_API_KEY"] == "first"

        env_file.write_text("GEMINI_API_KEY=second\n", encoding="utf-8")
        assert load_workspace_env(workspace)["GEMINI_API_KEY"] == "first"
