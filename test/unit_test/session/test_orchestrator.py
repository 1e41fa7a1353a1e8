from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import List
from unittest.mock import AsyncMock, patch

import pytest

from strata_agent.errors import EmptyModelResponseError, MissingCredentialError
from strata_agent.model.client import InlineData, ModelRequest, ModelResponse
from strata_agent.schemas.domain import Action, ActionStatus
from strata_agent.session.orchestrator import SessionOrchestrator
from strata_agent.session.prompt import AUTO_CONTINUE_PROMPT


class RecordingModel:
    """Model client returning scripted replies and recording requests."""

    def __init__(self, *texts: str) -> None:
        self._texts = list(texts)
        self.requests: List[ModelRequest] = []

    async def generate_content(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)
        return ModelResponse(text=self._texts.pop(0) if self._texts else "")


def _tools(*actions: dict) -> str:
    return "```strata-tools\n" + json.dumps({"actions": list(actions)}) + "\n```"


@pytest.fixture
def make_session(workspace: Path, strata_settings, make_runner, fake_process):
    async def _sleep(_seconds: float) -> None:
        return None

    def _make(model=None, **kwargs) -> SessionOrchestrator:
        runner, _ = make_runner(lambda _cmd: fake_process(b"ok\n"))
        return SessionOrchestrator(
            workspace, settings=strata_settings, model_client=model, runner=runner, sleep=_sleep, **kwargs
        )

    return _make


class TestChat:
    @pytest.mark.asyncio
    async def test_blank_input_does_not_call_the_model(self, make_session) -> None:
        model = RecordingModel("unused")
        session = make_session(model)

        reply = await session.chat("   ")

        assert reply.display_text == ""
        assert reply.actions == []
        assert model.requests == []

    @pytest.mark.asyncio
    async def test_reply_is_split_into_text_and_actions(self, make_session, strata_settings) -> None:
        model = RecordingModel("Creating it.\n" + _tools({"type": "mkdir", "path": "src"}))
        session = make_session(model)

        reply = await session.chat("make a src folder", history=[{"role": "user", "text": "hello"}])

        assert reply.display_text == "Creating it."
        assert [a.type for a in reply.actions] == ["mkdir"]
        request = model.requests[0]
        assert request.model == strata_settings.model
        assert "User: hello" in request.prompt
        assert request.prompt.endswith("User message:\nmake a src folder")

    @pytest.mark.asyncio
    async def test_empty_replies_are_retried(self, make_session) -> None:
        model = RecordingModel("", "", "Done.")
        session = make_session(model)

        reply = await session.chat("status?")

        assert reply.display_text == "Done."
        assert len(model.requests) == 3

    @pytest.mark.asyncio
    async def test_persistently_empty_reply_raises(self, make_session, strata_settings) -> None:
        session = make_session(RecordingModel())

        with pytest.raises(EmptyModelResponseError):
            await session.chat("hello")

    @pytest.mark.asyncio
    async def test_persona_block_is_included(self, make_session) -> None:
        model = RecordingModel("Hi.")
        session = make_session(model)
        session.set_active_agent("coder")

        await session.chat("hey")

        assert "- name: Byte" in model.requests[0].prompt

    @pytest.mark.asyncio
    async def test_auto_continue_uses_fixed_prompt(self, make_session) -> None:
        model = RecordingModel("Next steps.")
        session = make_session(model)

        await session.auto_continue()

        assert model.requests[0].prompt.endswith("User message:\n" + AUTO_CONTINUE_PROMPT)

    @pytest.mark.asyncio
    async def test_attachment_is_sent_once(self, make_session, workspace: Path) -> None:
        (workspace / "brief.pdf").write_bytes(b"%PDF-1.7")
        model = RecordingModel("Read it.", "Again.")
        session = make_session(model)
        session.attach("brief.pdf")

        await session.chat("summarize the brief")
        await session.chat("and now?")

        assert model.requests[0].attachment is not None
        assert model.requests[0].attachment.mime_type == "application/pdf"
        assert model.requests[1].attachment is None
        assert session.attachment is None

    @pytest.mark.asyncio
    async def test_missing_credential_is_fatal(self, workspace: Path, strata_settings, monkeypatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        settings = strata_settings.model_copy(update={"gemini_api_key": None})
        session = SessionOrchestrator(workspace, settings=settings)

        with pytest.raises(MissingCredentialError):
            await session.chat("hello")


class TestApplyActions:
    @pytest.mark.asyncio
    async def test_results_are_logged(self, make_session, workspace: Path) -> None:
        session = make_session()

        summary = await session.apply_actions(
            [Action(type="createDirectory", path="app"), Action(type="runTerminalCommand", command="npm install")]
        )

        assert summary.applied == 2
        assert [r.status for r in session.tool_log] == [ActionStatus.success, ActionStatus.success]
        assert (workspace / "app").is_dir()

    @pytest.mark.asyncio
    async def test_blocked_actions_become_failed_results(self, make_session) -> None:
        session = make_session()
        session.set_active_agent("architect")

        summary = await session.apply_actions(
            [Action(type="readFile", path="missing"), Action(type="runTerminalCommand", command="rm -rf /")]
        )

        blocked = summary.results[-1]
        assert blocked.status is ActionStatus.failed
        assert blocked.exit_code == -1
        assert blocked.message == "Tool not allowed for role: architect"
        assert [e.message for e in summary.errors][-1] == "Tool not allowed for role: architect"
        assert len(session.tool_log) == 2

    @pytest.mark.asyncio
    async def test_tool_log_reaches_the_next_prompt(self, make_session) -> None:
        model = RecordingModel("ok")
        session = make_session(model)
        await session.apply_actions([Action(type="readFile", path="nope.txt")])

        await session.chat("why did that fail?")

        assert "- failed: readFile path=nope.txt" in model.requests[0].prompt

    @pytest.mark.asyncio
    async def test_run_turn_applies_reply_actions(self, make_session, workspace: Path) -> None:
        model = RecordingModel(_tools({"type": "writeFile", "path": "hello.txt", "contents": "hi"}))
        session = make_session(model)

        reply, summary = await session.run_turn("write hello")

        assert len(reply.actions) == 1
        assert summary.applied == 1
        assert (workspace / "hello.txt").read_text(encoding="utf-8") == "hi"

    @pytest.mark.asyncio
    async def test_no_actions(self, make_session) -> None:
        summary = await make_session().apply_actions([])
        assert summary.applied == 0
        assert summary.results == []

    @pytest.mark.asyncio
    async def test_generate_image_builds_the_client_without_a_prior_chat(
        self, workspace: Path, strata_settings, make_runner, fake_process
    ) -> None:
        runner, _ = make_runner(lambda _cmd: fake_process(b""))
        session = SessionOrchestrator(workspace, settings=strata_settings, runner=runner)
        image = InlineData(mime_type="image/png", data=base64.b64encode(b"\x89PNG").decode("ascii"))

        with patch("strata_agent.session.orchestrator.GeminiClient") as client_cls:
            client_cls.return_value.generate_content = AsyncMock(return_value=ModelResponse(images=[image]))
            summary = await session.apply_actions([Action(type="generateImage", prompt="a cat", outputPath="cat.png")])

        assert summary.applied == 1
        assert summary.results[0].status is ActionStatus.success
        assert (workspace / "cat.png").read_bytes() == b"\x89PNG"
        client_cls.assert_called_once_with(
            "test-key",
            base_url=strata_settings.api_base_url,
            timeout=strata_settings.request_timeout_seconds,
        )

    @pytest.mark.asyncio
    async def test_generate_image_without_credential_is_a_failed_result(
        self, workspace: Path, strata_settings, make_runner, fake_process, monkeypatch
    ) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        runner, _ = make_runner(lambda _cmd: fake_process(b""))
        settings = strata_settings.model_copy(update={"gemini_api_key": None})
        session = SessionOrchestrator(workspace, settings=settings, runner=runner)

        summary = await session.apply_actions([Action(type="generateImage", prompt="a cat")])

        assert summary.results[0].status is ActionStatus.failed
        assert len(summary.errors) == 1


class TestSessionState:
    def test_unknown_agent_resets_persona(self, make_session) -> None:
        session = make_session()
        assert session.set_active_agent("devops") == "devops"
        assert session.set_active_agent("wizard") is None
        assert session.active_agent is None

    def test_attach_rejects_missing_file(self, make_session) -> None:
        with pytest.raises(FileNotFoundError):
            make_session().attach("nope.png")

    def test_attach_rejects_oversized_file(self, make_session, workspace: Path) -> None:
        (workspace / "big.mp4").write_bytes(b"0" * 11)
        with patch("strata_agent.session.orchestrator.MAX_INLINE_ATTACHMENT_BYTES", 10):
            with pytest.raises(ValueError, match="too large"):
                make_session().attach("big.mp4")

    @pytest.mark.asyncio
    async def test_aclose_kills_background_processes(self, workspace: Path, strata_settings, make_runner, fake_process) -> None:
        runner, _ = make_runner(lambda _cmd: fake_process(never_exits=True))
        session = SessionOrchestrator(workspace, settings=strata_settings, model_client=RecordingModel(), runner=runner)
        await session.apply_actions([Action(type="runTerminalCommand", command="npm run dev")])
        assert len(runner.registry.background) == 1

        async with session:
            pass

        assert runner.registry.background == ()

    @pytest.mark.asyncio
    async def test_clear_context_cache(self, make_session, workspace: Path) -> None:
        model = RecordingModel("a", "b")
        session = make_session(model)
        await session.chat("first")
        (workspace / "new_file.txt").write_text("", encoding="utf-8")

        session.clear_context_cache()
        await session.chat("second")

        assert "new_file.txt" not in model.requests[0].prompt
        assert "new_file.txt" in model.requests[1].prompt

    @patch("strata_agent.session.orchestrator.initialize_logfire")
    @patch("strata_agent.session.orchestrator.setup_logging")
    def test_create_configures_logging_and_monitoring(
        self, mock_setup_logging, mock_initialize_logfire, workspace: Path, strata_settings
    ) -> None:
        session = SessionOrchestrator.create(workspace, settings=strata_settings, model_client=RecordingModel())

        assert session.settings is strata_settings
        mock_setup_logging.assert_called_once_with(
            strata_settings.log_level, strata_settings.log_format, strata_settings.enable_file_logging
        )
        mock_initialize_logfire.assert_called_once_with()
