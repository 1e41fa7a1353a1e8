"""Filesystem action handlers."""

from __future__ import annotations

import inspect
import shutil

from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import Action, ActionResult, ActionType

from .base import ActionHandler, ExecutionContext, failure, success
from .definitions import FileContentInput, PathInput

logger = get_logger(__name__)


class CreateDirectoryHandler(ActionHandler[PathInput]):
    """Create a directory and any missing parents."""

    payload_model = PathInput

    @property
    def name(self) -> ActionType:
        return ActionType.create_directory

    async def handle(self, ctx: ExecutionContext, action: Action, payload: PathInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        target.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created directory {target}")
        return success(action)


class WriteFileHandler(ActionHandler[FileContentInput]):
    """Create or overwrite a file, creating parent directories as needed."""

    payload_model = FileContentInput

    @property
    def name(self) -> ActionType:
        return ActionType.create_or_overwrite_file

    async def handle(self, ctx: ExecutionContext, action: Action, payload: FileContentInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        written = target.write_text(payload.contents, encoding="utf-8")
        logger.info(f"Wrote file {target} ({written} chars)")
        return success(action)


class AppendFileHandler(ActionHandler[FileContentInput]):
    """Append to a file; a missing file is created."""

    payload_model = FileContentInput

    @property
    def name(self) -> ActionType:
        return ActionType.append_to_file

    async def handle(self, ctx: ExecutionContext, action: Action, payload: FileContentInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(payload.contents)
        logger.info(f"Appended {len(payload.contents)} chars to {target}")
        return success(action)


class DeletePathHandler(ActionHandler[PathInput]):
    """Delete a file or a directory tree."""

    payload_model = PathInput

    @property
    def name(self) -> ActionType:
        return ActionType.delete_path

    async def handle(self, ctx: ExecutionContext, action: Action, payload: PathInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
        logger.info(f"Deleted {target}")
        return success(action)


class OpenFileHandler(ActionHandler[PathInput]):
    """Check that a file exists and hand it to the editor hook, if one is set."""

    payload_model = PathInput

    @property
    def name(self) -> ActionType:
        return ActionType.open_file

    async def handle(self, ctx: ExecutionContext, action: Action, payload: PathInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        if not target.is_file():
            return failure(action, f"File not found: {target}")
        if ctx.open_file is not None:
            outcome = ctx.open_file(target)
            if inspect.isawaitable(outcome):
                await outcome
        return success(action)


class ReadFileHandler(ActionHandler[PathInput]):
    """Return a file's text in the result so the model can see it."""

    payload_model = PathInput

    @property
    def name(self) -> ActionType:
        return ActionType.read_file

    async def handle(self, ctx: ExecutionContext, action: Action, payload: PathInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        content = target.read_text(encoding="utf-8", errors="replace")
        logger.debug(f"Read {target} ({len(content)} chars)")
        return success(action, output_tail=content)


class ListFilesHandler(ActionHandler[PathInput]):
    """List a directory; subdirectories carry a trailing ``/``."""

    payload_model = PathInput

    @property
    def name(self) -> ActionType:
        return ActionType.list_files

    async def handle(self, ctx: ExecutionContext, action: Action, payload: PathInput) -> ActionResult:
        target = ctx.paths.resolve(payload.path)
        names = [p.name + "/" if p.is_dir() else p.name for p in sorted(target.iterdir(), key=lambda p: p.name)]
        return success(action, output_tail="\n".join(names))
