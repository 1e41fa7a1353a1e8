"""Handlers for state kept under ``.strata/``: agent memory and backups."""

from __future__ import annotations

import re

from strata_agent.core.logging_config import get_logger
from strata_agent.errors import InvalidActionPayloadError
from strata_agent.schemas.domain import Action, ActionResult, ActionType
from strata_agent.workspace.backup import create_backup

from .base import ActionHandler, ExecutionContext, success
from .definitions import BackupInput, MemoryInput

logger = get_logger(__name__)

_UNSAFE_LABEL_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ManageMemoryHandler(ActionHandler[MemoryInput]):
    """
    Read, write or clear ``.strata/memory.json``.

    ``write`` needs both ``key`` and ``value``; ``read`` of a missing document
    returns ``{}``.
    """

    payload_model = MemoryInput

    @property
    def name(self) -> ActionType:
        return ActionType.manage_memory

    async def handle(self, ctx: ExecutionContext, action: Action, payload: MemoryInput) -> ActionResult:
        store = ctx.memory()
        if payload.operation == "write":
            if not payload.key or payload.value is None:
                raise InvalidActionPayloadError("Missing key/value for write")
            store.write(payload.key, payload.value)
            return success(action, output_tail=f"Wrote key: {payload.key}")
        if payload.operation == "clear":
            store.clear()
            logger.info("Agent memory cleared")
            return success(action, output_tail="Memory cleared")
        return success(action, output_tail=store.dumps())


class CreateBackupHandler(ActionHandler[BackupInput]):
    """Snapshot the workspace's top-level entries into ``.strata/backups``."""

    payload_model = BackupInput

    @property
    def name(self) -> ActionType:
        return ActionType.create_backup

    async def handle(self, ctx: ExecutionContext, action: Action, payload: BackupInput) -> ActionResult:
        root = ctx.paths.require_root()
        label = _UNSAFE_LABEL_CHARS.sub("-", payload.label).strip("-.") if payload.label else None
        result = create_backup(root, label or None, clock=ctx.clock)
        return success(action, output_tail=result.summary)
