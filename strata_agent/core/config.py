"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
Values are bound from environment variables and an optional ``.env`` file in the
current directory. The model-service credential additionally falls back to the
``.env`` file of the open workspace (see ``resolve_api_key``).
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from strata_agent.errors import MissingCredentialError

API_KEY_ENV = "GEMINI_API_KEY"


class StrataSettings(BaseSettings):
    """
    Runtime settings model.

    All properties are bound from environment variables (by alias) and the
    ``.env`` file. Field names may be used directly when constructing settings
    in code, which is what the tests do.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Model service
    # =====================================================================
    gemini_api_key: Optional[str] = Field(
        default=None, alias=API_KEY_ENV, description="Credential for the model service"
    )
    model: str = Field(default="gemini-3-pro-preview", alias="STRATA_MODEL", description="Model used for chat turns")
    image_model: Optional[str] = Field(
        default=None,
        alias="STRATA_IMAGE_MODEL",
        description="Model used for image generation (defaults to the chat model)",
    )
    api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="STRATA_API_BASE_URL",
        description="Base URL of the model service REST API",
    )
    request_timeout_seconds: float = Field(default=300.0, alias="STRATA_REQUEST_TIMEOUT", gt=0)

    # =====================================================================
    # Retry policy
    # =====================================================================
    max_retries: int = Field(default=3, alias="STRATA_MAX_RETRIES", ge=0, le=10)
    retry_base_seconds: float = Field(default=1.0, alias="STRATA_RETRY_BASE_SECONDS", ge=0)
    retry_jitter_seconds: float = Field(default=0.5, alias="STRATA_RETRY_JITTER_SECONDS", ge=0)

    # =====================================================================
    # Workspace context
    # =====================================================================
    context_ttl_seconds: float = Field(default=8.0, alias="STRATA_CONTEXT_TTL_SECONDS", ge=0)
    context_max_tree_entries: int = Field(default=250, alias="STRATA_CONTEXT_MAX_TREE_ENTRIES", ge=1)
    context_max_tree_depth: int = Field(default=4, alias="STRATA_CONTEXT_MAX_TREE_DEPTH", ge=0)
    context_max_file_bytes: int = Field(default=20_000, alias="STRATA_CONTEXT_MAX_FILE_BYTES", ge=1)
    context_max_key_files: int = Field(default=8, alias="STRATA_CONTEXT_MAX_KEY_FILES", ge=0)
    context_max_key_file_bytes: int = Field(default=6_000, alias="STRATA_CONTEXT_MAX_KEY_FILE_BYTES", ge=1)

    # =====================================================================
    # Execution
    # =====================================================================
    output_tail_bytes: int = Field(default=6_000, alias="STRATA_OUTPUT_TAIL_BYTES", ge=1)
    result_tail_chars: int = Field(default=1_500, alias="STRATA_RESULT_TAIL_CHARS", ge=1)
    long_running_grace_seconds: float = Field(default=15.0, alias="STRATA_LONG_RUNNING_GRACE_SECONDS", gt=0)
    kill_port_timeout_seconds: float = Field(default=5.0, alias="STRATA_KILL_PORT_TIMEOUT_SECONDS", gt=0)
    fetch_max_chars: int = Field(default=8_000, alias="STRATA_FETCH_MAX_CHARS", ge=1)
    tool_log_prompt_entries: int = Field(default=25, alias="STRATA_TOOL_LOG_PROMPT_ENTRIES", ge=0)

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(default="INFO", alias="STRATA_LOG_LEVEL")
    log_format: str = Field(default="detailed", alias="STRATA_LOG_FORMAT")
    log_file_dir: str = Field(default="logs", alias="STRATA_LOG_FILE_DIR")
    enable_file_logging: bool = Field(default=False, alias="STRATA_ENABLE_FILE_LOGGING")

    @property
    def effective_image_model(self) -> str:
        """Model used for ``generateImage`` actions."""
        return self.image_model or self.model


@lru_cache(maxsize=1)
def get_settings() -> StrataSettings:
    """Return the process-wide settings instance."""
    return StrataSettings()


_workspace_env_cache: Dict[Path, Dict[str, Optional[str]]] = {}


def load_workspace_env(workspace_root: Path) -> Dict[str, Optional[str]]:
    """Parse ``<workspace_root>/.env`` once and cache the result.

    Lines are ``KEY=value``; surrounding quotes are stripped and comment lines
    ignored. A missing file parses as an empty mapping.
    """
    env_path = (workspace_root / ".env").resolve()
    cached = _workspace_env_cache.get(env_path)
    if cached is not None:
        return cached
    values: Dict[str, Optional[str]] = dict(dotenv_values(env_path)) if env_path.is_file() else {}
    _workspace_env_cache[env_path] = values
    return values


def clear_workspace_env_cache() -> None:
    _workspace_env_cache.clear()


def resolve_api_key(settings: StrataSettings, workspace_root: Optional[Path] = None) -> str:
    """
    Resolve the model-service credential.

    Lookup order: settings (process environment / cwd ``.env``), then the
    process environment at call time, then the workspace ``.env`` file. A key
    found in the workspace file is exported to ``os.environ`` so that later
    lookups are cheap.

    Raises:
        MissingCredentialError: If no credential can be found.
    """
    api_key = settings.gemini_api_key or os.environ.get(API_KEY_ENV)
    if not api_key and workspace_root is not None:
        api_key = load_workspace_env(workspace_root).get(API_KEY_ENV)
        if api_key:
            os.environ[API_KEY_ENV] = api_key
    if not api_key:
        raise MissingCredentialError(f"{API_KEY_ENV} environment variable is not set.")
    return api_key
