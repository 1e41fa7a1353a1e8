"""
Action executor.

Dispatches each action to the handler registered for its canonical type and
turns every local failure into a result, so one failing action never aborts a
batch. Batches run strictly in order, one action at a time.
"""

from __future__ import annotations

from typing import Iterable, Optional

from strata_agent.core.logging_config import get_logger
from strata_agent.core.monitoring import log_error
from strata_agent.errors import InvalidActionPayloadError, UnsupportedActionError
from strata_agent.schemas.domain import Action, ActionError, ActionResult, ActionStatus, ApplySummary

from .base import ActionHandlerRegistry, ExecutionContext, failure, skipped
from .filesystem import (
    AppendFileHandler,
    CreateDirectoryHandler,
    DeletePathHandler,
    ListFilesHandler,
    OpenFileHandler,
    ReadFileHandler,
    WriteFileHandler,
)
from .image import GenerateImageHandler
from .network import FetchUrlHandler
from .process_actions import KillBackgroundProcessesHandler, KillPortHandler, RunTerminalCommandHandler
from .system import SystemStatusHandler
from .workspace_state import CreateBackupHandler, ManageMemoryHandler

logger = get_logger(__name__)


def build_default_registry() -> ActionHandlerRegistry:
    """Registry with a handler for every canonical action type."""
    registry = ActionHandlerRegistry()
    for handler in (
        CreateDirectoryHandler(),
        WriteFileHandler(),
        AppendFileHandler(),
        DeletePathHandler(),
        OpenFileHandler(),
        ReadFileHandler(),
        ListFilesHandler(),
        FetchUrlHandler(),
        KillPortHandler(),
        KillBackgroundProcessesHandler(),
        RunTerminalCommandHandler(),
        SystemStatusHandler(),
        ManageMemoryHandler(),
        CreateBackupHandler(),
        GenerateImageHandler(),
    ):
        registry.register(handler)
    return registry


class ActionExecutor:
    """Execute actions against a workspace.

    Args:
        ctx: Workspace and runtime dependencies shared by all handlers.
        registry: Handler lookup; defaults to every built-in handler.
    """

    def __init__(self, ctx: ExecutionContext, registry: Optional[ActionHandlerRegistry] = None) -> None:
        self.ctx = ctx
        self.registry = registry or build_default_registry()

    async def execute(self, action: Action) -> ActionResult:
        """
        Execute one action.

        Returns:
            The handler's result; ``skipped`` when the payload is missing a
            required field; ``failed`` for unknown types and for any error
            raised by the handler.
        """
        kind = action.kind
        try:
            if kind is None or not self.registry.has(kind):
                raise UnsupportedActionError(action.type)
            if kind.value != action.type:
                logger.debug(f"Normalized action type {action.type} -> {kind.value}")
            result = await self.registry.get(kind).execute(self.ctx, action)
        except InvalidActionPayloadError as e:
            logger.warning(f"Skipping {action.type}: {e}")
            return skipped(action, str(e))
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Tool execution error for {action.type}: {message}")
            log_error(e.__class__.__name__, message, {"action_type": action.type})
            return failure(action, message)

        if result.status == ActionStatus.failed:
            log_error("ActionFailed", result.message or "failed", {"action_type": action.type})
        log = logger.error if result.status == ActionStatus.failed else logger.info
        log(f"Action {action.type} -> {result.status.value}{f' ({result.message})' if result.message else ''}")
        return result

    async def execute_batch(self, actions: Iterable[Action]) -> ApplySummary:
        """Execute actions sequentially in input order."""
        summary = ApplySummary()
        for action in actions:
            result = await self.execute(action)
            summary.results.append(result)
            if result.status in (ActionStatus.success, ActionStatus.running):
                summary.applied += 1
            elif result.status == ActionStatus.failed:
                summary.errors.append(ActionError(action=action, message=result.message or "failed"))
        return summary
