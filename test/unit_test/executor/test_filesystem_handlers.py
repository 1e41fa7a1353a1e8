from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from strata_agent.errors import InvalidActionPayloadError
from strata_agent.executor.filesystem import (
    AppendFileHandler,
    CreateDirectoryHandler,
    DeletePathHandler,
    ListFilesHandler,
    OpenFileHandler,
    ReadFileHandler,
    WriteFileHandler,
)
from strata_agent.schemas.domain import Action, ActionStatus


class TestWriteAndAppend:
    @pytest.mark.asyncio
    async def test_write_creates_parents(self, make_ctx, workspace: Path) -> None:
        ctx = make_ctx()
        action = Action(type="createOrOverwriteFile", path="src/App.jsx", contents="export default 1\n")

        result = await WriteFileHandler().execute(ctx, action)

        assert result.status is ActionStatus.success
        assert (workspace / "src" / "App.jsx").read_text(encoding="utf-8") == "export default 1\n"

    @pytest.mark.asyncio
    async def test_write_accepts_content_alias_and_overwrites(self, make_ctx, workspace: Path) -> None:
        (workspace / "a.txt").write_text("old", encoding="utf-8")

        await WriteFileHandler().execute(make_ctx(), Action(type="writeFile", path="a.txt", content="new"))

        assert (workspace / "a.txt").read_text(encoding="utf-8") == "new"

    @pytest.mark.asyncio
    async def test_write_without_contents_creates_empty_file(self, make_ctx, workspace: Path) -> None:
        await WriteFileHandler().execute(make_ctx(), Action(type="createFile", path="empty.txt"))
        assert (workspace / "empty.txt").read_text(encoding="utf-8") == ""

    @pytest.mark.asyncio
    async def test_append_creates_then_appends(self, make_ctx, workspace: Path) -> None:
        ctx = make_ctx()
        handler = AppendFileHandler()

        await handler.execute(ctx, Action(type="appendToFile", path="logs/out.txt", contents="a"))
        await handler.execute(ctx, Action(type="appendToFile", path="logs/out.txt", contents="b"))

        assert (workspace / "logs" / "out.txt").read_text(encoding="utf-8") == "ab"

    @pytest.mark.asyncio
    async def test_missing_path_is_invalid_payload(self, make_ctx) -> None:
        with pytest.raises(InvalidActionPayloadError, match="path"):
            await WriteFileHandler().execute(make_ctx(), Action(type="createOrOverwriteFile", contents="x"))


class TestDirectoriesAndDeletion:
    @pytest.mark.asyncio
    async def test_create_directory_is_idempotent(self, make_ctx, workspace: Path) -> None:
        ctx = make_ctx()
        action = Action(type="createDirectory", path="a/b/c")

        await CreateDirectoryHandler().execute(ctx, action)
        result = await CreateDirectoryHandler().execute(ctx, action)

        assert result.ok
        assert (workspace / "a" / "b" / "c").is_dir()

    @pytest.mark.asyncio
    async def test_delete_file_and_tree(self, make_ctx, workspace: Path) -> None:
        (workspace / "dir" / "sub").mkdir(parents=True)
        (workspace / "dir" / "sub" / "x.txt").write_text("x", encoding="utf-8")
        (workspace / "f.txt").write_text("f", encoding="utf-8")
        ctx = make_ctx()

        await DeletePathHandler().execute(ctx, Action(type="deletePath", path="dir"))
        await DeletePathHandler().execute(ctx, Action(type="rm", path="f.txt"))

        assert list(workspace.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_missing_path_raises(self, make_ctx) -> None:
        with pytest.raises(FileNotFoundError):
            await DeletePathHandler().execute(make_ctx(), Action(type="deletePath", path="nope"))


class TestReadListOpen:
    @pytest.mark.asyncio
    async def test_read_returns_contents(self, make_ctx, workspace: Path) -> None:
        (workspace / "notes.md").write_text("# Notes", encoding="utf-8")

        result = await ReadFileHandler().execute(make_ctx(), Action(type="readFile", path="notes.md"))

        assert result.output_tail == "# Notes"

    @pytest.mark.asyncio
    async def test_list_marks_directories(self, make_ctx, workspace: Path) -> None:
        (workspace / "src").mkdir()
        (workspace / "b.txt").write_text("", encoding="utf-8")
        (workspace / "a.txt").write_text("", encoding="utf-8")

        result = await ListFilesHandler().execute(make_ctx(), Action(type="ls", path="."))

        assert result.output_tail == "a.txt\nb.txt\nsrc/"

    @pytest.mark.asyncio
    async def test_open_missing_file_fails(self, make_ctx, workspace: Path) -> None:
        result = await OpenFileHandler().execute(make_ctx(), Action(type="openFile", path="ghost.ts"))

        assert result.status is ActionStatus.failed
        assert result.message == f"File not found: {workspace / 'ghost.ts'}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("hook_factory", [MagicMock, AsyncMock])
    async def test_open_calls_editor_hook(self, make_ctx, workspace: Path, hook_factory) -> None:
        (workspace / "main.ts").write_text("", encoding="utf-8")
        hook = hook_factory(return_value=None)

        result = await OpenFileHandler().execute(make_ctx(open_file=hook), Action(type="open", path="main.ts"))

        assert result.ok
        hook.assert_called_once_with(workspace / "main.ts")
