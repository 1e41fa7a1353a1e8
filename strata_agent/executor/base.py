"""
Action handler abstractions.

A handler executes one canonical action type. The executor resolves an action's
normalized type through an ``ActionHandlerRegistry`` and calls the handler with
an ``ExecutionContext`` carrying the workspace and runtime dependencies.

Handlers validate the action payload into their typed input model first; a
missing or invalid field raises ``InvalidActionPayloadError``, which the
executor reports as a ``skipped`` result. Every other local failure becomes a
``failed`` result.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Type, TypeVar

import httpx
from pydantic import ValidationError

from strata_agent.core.config import StrataSettings
from strata_agent.errors import InvalidActionPayloadError
from strata_agent.memory.store import MemoryStore
from strata_agent.model.client import ModelClient
from strata_agent.process.output import OutputChannel
from strata_agent.process.runner import ProcessRunner
from strata_agent.schemas.domain import Action, ActionResult, ActionStatus, ActionType
from strata_agent.workspace.paths import WorkspacePaths

from .definitions import ActionPayload

PayloadT = TypeVar("PayloadT", bound=ActionPayload)

OpenFileHook = Callable[[Path], Optional[Awaitable[None]]]


@dataclass
class ExecutionContext:
    """Execution context passed to action handlers.

    Attributes
    ----------
    paths:
        Path resolution for the open workspace.
    runner:
        Shell runner owning the process registry and output channel.
    settings:
        Runtime settings (truncation limits, timeouts, model names).
    http_client:
        Client used by ``fetchUrl``; created lazily when absent.
    model_client:
        Transport used by ``generateImage``.
    model_client_factory:
        Builds ``model_client`` on first use when it is absent.
    open_file:
        Optional editor hook called by ``openFile``.
    clock:
        Wall-clock source for timestamps in file names.
    """

    paths: WorkspacePaths
    runner: ProcessRunner
    settings: StrataSettings
    http_client: Optional[httpx.AsyncClient] = None
    model_client: Optional[ModelClient] = None
    model_client_factory: Optional[Callable[[], ModelClient]] = None
    open_file: Optional[OpenFileHook] = None
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc))

    @property
    def channel(self) -> OutputChannel:
        return self.runner.channel

    def memory(self) -> MemoryStore:
        return MemoryStore(self.paths.state_dir)

    def resolve_model_client(self) -> Optional[ModelClient]:
        if self.model_client is None and self.model_client_factory is not None:
            self.model_client = self.model_client_factory()
        return self.model_client


def success(action: Action, *, output_tail: Optional[str] = None, **kwargs: Any) -> ActionResult:
    return ActionResult(action=action, status=ActionStatus.success, output_tail=output_tail, **kwargs)


def failure(action: Action, message: str, *, exit_code: int = -1, output_tail: str = "") -> ActionResult:
    return ActionResult(
        action=action,
        status=ActionStatus.failed,
        exit_code=exit_code,
        output_tail=output_tail,
        message=message,
    )


def skipped(action: Action, reason: str) -> ActionResult:
    return ActionResult(action=action, status=ActionStatus.skipped, message=reason)


def load_payload(model: Type[PayloadT], action: Action) -> PayloadT:
    """
    Validate an action's payload into ``model``.

    Raises:
        InvalidActionPayloadError: Listing the missing or invalid fields.
    """
    try:
        return model.model_validate(action.payload)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "payload" for err in e.errors()})
        raise InvalidActionPayloadError(f"Missing or invalid field(s) for {action.type}: {', '.join(fields)}") from e


class ActionHandler(ABC, Generic[PayloadT]):
    """Abstract base class for action handlers."""

    payload_model: Type[PayloadT]

    @property
    @abstractmethod
    def name(self) -> ActionType:
        """Canonical action type handled."""

    @abstractmethod
    async def handle(self, ctx: ExecutionContext, action: Action, payload: PayloadT) -> ActionResult:
        """Perform the effect for a validated payload."""

    async def execute(self, ctx: ExecutionContext, action: Action) -> ActionResult:
        """Validate the payload and perform the effect.

        Raises:
            InvalidActionPayloadError: If the payload does not validate.
        """
        return await self.handle(ctx, action, load_payload(self.payload_model, action))


class ActionHandlerRegistry:
    """
    In-memory mapping of canonical action types to handlers.

    Notes:
        - ``register`` overwrites any existing handler for the action type.
        - ``get`` raises ``KeyError`` if the action type is not registered.
    """

    def __init__(self) -> None:
        self._handlers: Dict[ActionType, ActionHandler[Any]] = {}

    def register(self, handler: ActionHandler[Any]) -> None:
        self._handlers[handler.name] = handler

    def get(self, name: ActionType) -> ActionHandler[Any]:
        return self._handlers[name]

    def has(self, name: ActionType) -> bool:
        return name in self._handlers

    def names(self) -> list[ActionType]:
        return list(self._handlers)
