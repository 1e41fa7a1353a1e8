from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field

from .base import BaseSchema, FrozenSchema


class ActionType(str, Enum):
    create_directory = "createDirectory"
    create_or_overwrite_file = "createOrOverwriteFile"
    append_to_file = "appendToFile"
    delete_path = "deletePath"
    open_file = "openFile"
    read_file = "readFile"
    list_files = "listFiles"
    fetch_url = "fetchUrl"
    kill_port = "killPort"
    kill_background_processes = "killBackgroundProcesses"
    run_terminal_command = "runTerminalCommand"
    get_system_status = "getSystemStatus"
    manage_memory = "manageMemory"
    create_backup = "createBackup"
    generate_image = "generateImage"


class ActionStatus(str, Enum):
    success = "success"
    failed = "failed"
    running = "running"
    skipped = "skipped"


class AgentKey(str, Enum):
    architect = "architect"
    researcher = "researcher"
    coder = "coder"
    debugger = "debugger"
    data = "data"
    devops = "devops"


class Action(BaseSchema):
    """
    One directive emitted by the model inside a tool-call block.

    The envelope keeps ``type`` as the raw string the model produced (it may be
    an alias or an unknown type) and every other field verbatim, so the action
    round-trips unchanged into results and the tool log. Typed validation of
    the payload happens in the handler that executes it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    type: str

    @property
    def payload(self) -> Dict[str, Any]:
        """All fields except ``type``."""
        return dict(self.model_extra or {})

    @property
    def kind(self) -> Optional[ActionType]:
        """Canonical type after alias normalization, ``None`` when unknown."""
        from strata_agent.actions.normalizer import coerce_action_type

        return coerce_action_type(self.type)

    def get(self, key: str, default: Any = None) -> Any:
        return (self.model_extra or {}).get(key, default)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ActionResult(FrozenSchema):
    """Outcome of one executed (or refused) action.

    Serialized with camelCase keys (``exitCode``, ``outputTail``) to match the
    wire shape consumed by the presentation layer.
    """

    action: Action
    status: ActionStatus
    exit_code: Optional[int] = Field(default=None, alias="exitCode")
    output_tail: Optional[str] = Field(default=None, alias="outputTail")
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (ActionStatus.success, ActionStatus.running)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BlockedAction(FrozenSchema):
    action: Action
    reason: str


class ActionError(FrozenSchema):
    action: Action
    message: str


class ApplySummary(BaseSchema):
    """Aggregate outcome of one batch of actions."""

    applied: int = 0
    errors: List[ActionError] = Field(default_factory=list)
    results: List[ActionResult] = Field(default_factory=list)


class WorkspaceSignals(FrozenSchema):
    package_manager: Optional[str] = None
    has_projects: bool = False
    needs_install: bool = False


class WorkspaceSnapshot(FrozenSchema):
    text: str = ""
    signals: WorkspaceSignals = Field(default_factory=WorkspaceSignals)


class ConversationMessage(FrozenSchema):
    role: Literal["user", "assistant"]
    text: str


class ChatReply(FrozenSchema):
    """Model output split into prose for display and the extracted actions."""

    display_text: str = ""
    actions: List[Action] = Field(default_factory=list)
