"""
Session orchestrator.

One ``SessionOrchestrator`` per open workspace ties the pieces together: it
composes prompts from the cached workspace snapshot, the persona, the tool log
and the conversation, calls the model through the retrier, extracts actions
from the reply, filters them by persona, executes the allowed ones and records
every result in the tool log.

The session owns all mutable state that used to be global: the snapshot cache
slot, the process registry (through its runner), the tool log, the active
persona and the pending attachment.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

import httpx

from strata_agent.actions.extractor import extract_tool_calls
from strata_agent.core.config import StrataSettings, get_settings, resolve_api_key
from strata_agent.core.logging_config import get_logger, setup_logging
from strata_agent.core.monitoring import initialize_logfire
from strata_agent.executor.base import ExecutionContext, OpenFileHook
from strata_agent.executor.executor import ActionExecutor
from strata_agent.model.client import MAX_INLINE_ATTACHMENT_BYTES, GeminiClient, InlineData, ModelClient, ModelRequest
from strata_agent.model.retry import ModelCallRetrier
from strata_agent.process.output import OutputChannel
from strata_agent.process.runner import ProcessRunner
from strata_agent.roles.access import filter_actions_by_role
from strata_agent.roles.profiles import DEFAULT_PROFILE_PROVIDER, build_active_agent_context
from strata_agent.schemas.domain import (
    Action,
    ActionError,
    ActionResult,
    ActionStatus,
    ApplySummary,
    ChatReply,
    ConversationMessage,
)
from strata_agent.workspace.cache import WorkspaceContextCache
from strata_agent.workspace.context import ContextLimits, WorkspaceContextBuilder
from strata_agent.workspace.paths import WorkspacePaths

from .prompt import AUTO_CONTINUE_PROMPT, build_prompt

logger = get_logger(__name__)

HistoryItem = Union[ConversationMessage, Mapping[str, Any]]


def _coerce_history(history: Iterable[HistoryItem]) -> List[ConversationMessage]:
    turns: List[ConversationMessage] = []
    for item in history:
        if isinstance(item, ConversationMessage):
            turns.append(item)
        elif isinstance(item, Mapping) and isinstance(item.get("text"), str):
            role = "assistant" if item.get("role") == "assistant" else "user"
            turns.append(ConversationMessage(role=role, text=item["text"]))
    return turns


class SessionOrchestrator:
    """
    Drive chat turns and action execution for one workspace.

    Args:
        workspace_root: Root folder of the open workspace, or None.
        settings: Runtime settings; defaults to ``get_settings()``.
        model_client: Transport; a ``GeminiClient`` is created on first use
            when omitted (which requires the credential).
        http_client: Client for ``fetchUrl``.
        runner: Shell runner; one is built from the settings when omitted.
        open_file: Editor hook for ``openFile``.
        sleep: Sleep used between model retries.
        clock: Monotonic clock for the snapshot cache.
    """

    def __init__(
        self,
        workspace_root: Optional[Path | str],
        *,
        settings: Optional[StrataSettings] = None,
        model_client: Optional[ModelClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        runner: Optional[ProcessRunner] = None,
        open_file: Optional[OpenFileHook] = None,
        sleep: Optional[Callable[[float], Any]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.paths = WorkspacePaths(workspace_root)
        self._model_client = model_client
        self._owns_model_client = False
        self._sleep = sleep
        self._retrier: Optional[ModelCallRetrier] = None

        self.runner = runner or ProcessRunner(
            tail_bytes=self.settings.output_tail_bytes,
            long_running_grace_seconds=self.settings.long_running_grace_seconds,
        )

        limits = ContextLimits(
            max_tree_entries=self.settings.context_max_tree_entries,
            max_tree_depth=self.settings.context_max_tree_depth,
            max_file_bytes=self.settings.context_max_file_bytes,
            max_key_files=self.settings.context_max_key_files,
            max_key_file_bytes=self.settings.context_max_key_file_bytes,
        )
        builder = WorkspaceContextBuilder(self.paths.root, limits)
        cache_kwargs = {"clock": clock} if clock is not None else {}
        self.context_cache = WorkspaceContextCache(builder, ttl=self.settings.context_ttl_seconds, **cache_kwargs)

        self.executor = ActionExecutor(
            ExecutionContext(
                paths=self.paths,
                runner=self.runner,
                settings=self.settings,
                http_client=http_client,
                model_client=model_client,
                model_client_factory=self._ensure_model_client,
                open_file=open_file,
            )
        )

        self._tool_log: List[ActionResult] = []
        self._active_agent: Optional[str] = None
        self._attachment: Optional[Path] = None
        self._model_lock = asyncio.Lock()

    @classmethod
    def create(cls, workspace_root: Optional[Path | str], **kwargs: Any) -> "SessionOrchestrator":
        """Entry point for hosts: configures logging and monitoring, then builds the session."""
        settings = kwargs.get("settings") or get_settings()
        setup_logging(settings.log_level, settings.log_format, settings.enable_file_logging)
        initialize_logfire()
        kwargs["settings"] = settings
        session = cls(workspace_root, **kwargs)
        logger.info(f"Session started for workspace {workspace_root or '(none)'} with model {settings.model}")
        return session

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def channel(self) -> OutputChannel:
        return self.runner.channel

    @property
    def tool_log(self) -> tuple[ActionResult, ...]:
        return tuple(self._tool_log)

    @property
    def active_agent(self) -> Optional[str]:
        return self._active_agent

    @property
    def attachment(self) -> Optional[Path]:
        return self._attachment

    def set_active_agent(self, agent_key: Optional[str]) -> Optional[str]:
        """Switch persona; unknown keys reset to no persona."""
        profile = DEFAULT_PROFILE_PROVIDER.find(agent_key)
        self._active_agent = profile.key.value if profile is not None else None
        logger.info(f"Active agent set to {self._active_agent or '(none)'}")
        return self._active_agent

    def attach(self, path: Path | str) -> Path:
        """
        Attach a file to the next model call.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file exceeds the inline attachment limit.
        """
        target = Path(path)
        if not target.is_absolute():
            target = self.paths.resolve(str(path))
        if not target.is_file():
            raise FileNotFoundError(f"Attachment not found: {target}")
        size = target.stat().st_size
        if size > MAX_INLINE_ATTACHMENT_BYTES:
            raise ValueError(f"Attachment too large ({size} bytes, max {MAX_INLINE_ATTACHMENT_BYTES})")
        self._attachment = target
        return target

    def clear_attachment(self) -> None:
        self._attachment = None

    def clear_context_cache(self) -> None:
        self.context_cache.clear()
        logger.info("Workspace context cache cleared")

    # ------------------------------------------------------------------
    # Model turns
    # ------------------------------------------------------------------
    def _ensure_model_client(self) -> ModelClient:
        """
        Return the model transport, building a ``GeminiClient`` on first use.

        Raises:
            MissingCredentialError: If no credential is configured.
        """
        if self._model_client is None:
            api_key = resolve_api_key(self.settings, self.paths.root)
            self._model_client = GeminiClient(
                api_key,
                base_url=self.settings.api_base_url,
                timeout=self.settings.request_timeout_seconds,
            )
            self._owns_model_client = True
            self.executor.ctx.model_client = self._model_client
        return self._model_client

    def _ensure_retrier(self) -> ModelCallRetrier:
        if self._retrier is None:
            model_client = self._ensure_model_client()
            retry_kwargs: dict[str, Any] = {
                "base_delay": self.settings.retry_base_seconds,
                "jitter": self.settings.retry_jitter_seconds,
            }
            if self._sleep is not None:
                retry_kwargs["sleep"] = self._sleep
            self._retrier = ModelCallRetrier(model_client, **retry_kwargs)
        return self._retrier

    async def _ask(self, user_text: str, history: Sequence[HistoryItem]) -> ChatReply:
        async with self._model_lock:
            retrier = self._ensure_retrier()
            snapshot = await self.context_cache.get()
            prompt = build_prompt(
                user_text,
                agent_block=build_active_agent_context(self._active_agent),
                snapshot=snapshot,
                tool_log=self._tool_log,
                history=_coerce_history(history),
                tool_log_entries=self.settings.tool_log_prompt_entries,
            )
            attachment = InlineData.from_path(self._attachment) if self._attachment is not None else None
            request = ModelRequest(model=self.settings.model, prompt=prompt, attachment=attachment)

            response = await retrier.call(request, max_retries=self.settings.max_retries)
            self._attachment = None

        reply = extract_tool_calls(response.text)
        logger.info(f"Model reply: {len(reply.display_text)} chars of text, {len(reply.actions)} action(s)")
        return reply

    async def chat(self, user_text: str, history: Sequence[HistoryItem] = ()) -> ChatReply:
        """
        Run one chat turn.

        Blank input returns an empty reply without calling the model.

        Raises:
            MissingCredentialError: If no credential is configured.
            ModelServiceError: If the model call fails for good.
        """
        text = (user_text or "").strip()
        if not text:
            return ChatReply()
        return await self._ask(text, history)

    async def auto_continue(self, history: Sequence[HistoryItem] = ()) -> ChatReply:
        """Ask the model to keep working toward the last goal."""
        return await self._ask(AUTO_CONTINUE_PROMPT, history)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def apply_actions(self, actions: Sequence[Action]) -> ApplySummary:
        """
        Filter actions by persona, execute the allowed ones, and log everything.

        Blocked actions are reported as failed results carrying the block reason.
        """
        if not actions:
            return ApplySummary()
        partition = filter_actions_by_role(actions, self._active_agent)
        summary = await self.executor.execute_batch(partition.allowed)
        for blocked in partition.blocked:
            summary.errors.append(ActionError(action=blocked.action, message=blocked.reason))
            summary.results.append(
                ActionResult(
                    action=blocked.action,
                    status=ActionStatus.failed,
                    exit_code=-1,
                    output_tail="",
                    message=blocked.reason,
                )
            )
        self._tool_log.extend(summary.results)
        logger.info(f"Applied {summary.applied} action(s), {len(summary.errors)} error(s)")
        return summary

    async def run_turn(
        self, user_text: str, history: Sequence[HistoryItem] = ()
    ) -> tuple[ChatReply, ApplySummary]:
        """Chat, then apply whatever actions the reply carried."""
        reply = await self.chat(user_text, history)
        summary = await self.apply_actions(reply.actions)
        return reply, summary

    async def forward_input(self, data: str) -> bool:
        return await self.runner.forward_input(data)

    async def aclose(self) -> None:
        """Stop every process started by this session and release owned clients."""
        await self.runner.kill_all()
        if self._owns_model_client and isinstance(self._model_client, GeminiClient):
            await self._model_client.aclose()

    async def __aenter__(self) -> "SessionOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
