from __future__ import annotations

import importlib
import sys
from unittest.mock import MagicMock, patch

import pytest

from strata_agent.core import monitoring


@pytest.fixture(autouse=True)
def unconfigured(monkeypatch):
    monkeypatch.setattr(monitoring, "_logfire", None)


@pytest.fixture
def fake_logfire():
    fake = MagicMock(name="logfire")
    with patch.dict(sys.modules, {"logfire": fake}):
        yield fake


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(monitoring, "LOGFIRE_ENABLED", True)
    monkeypatch.setattr(monitoring, "LOGFIRE_TOKEN", "test-token")


class TestEnvironmentFlags:
    def test_disabled_by_default(self, monkeypatch) -> None:
        for name in ("LOGFIRE_ENABLED", "LOGFIRE_SERVICE_NAME", "LOGFIRE_SAMPLE_RATE"):
            monkeypatch.delenv(name, raising=False)
        importlib.reload(monitoring)

        assert monitoring.LOGFIRE_ENABLED is False
        assert monitoring.LOGFIRE_SERVICE_NAME == "strata-agent"
        assert monitoring.LOGFIRE_SAMPLE_RATE == 1.0

    @pytest.mark.parametrize(("value", "expected"), [("true", True), ("1", True), ("YES", True), ("off", False)])
    def test_enabled_flag_parsing(self, monkeypatch, value: str, expected: bool) -> None:
        monkeypatch.setenv("LOGFIRE_ENABLED", value)
        try:
            importlib.reload(monitoring)
            assert monitoring.LOGFIRE_ENABLED is expected
        finally:
            monkeypatch.delenv("LOGFIRE_ENABLED")
            importlib.reload(monitoring)


class TestInitializeLogfire:
    @patch("strata_agent.core.monitoring.LOGFIRE_ENABLED", False)
    @patch("strata_agent.core.monitoring.logger")
    def test_disabled_does_nothing(self, mock_logger, fake_logfire) -> None:
        assert monitoring.initialize_logfire() is False

        mock_logger.info.assert_called_once()
        fake_logfire.configure.assert_not_called()
        assert not monitoring.is_monitoring_enabled()

    @patch("strata_agent.core.monitoring.LOGFIRE_ENABLED", True)
    @patch("strata_agent.core.monitoring.LOGFIRE_TOKEN", "")
    @patch("strata_agent.core.monitoring.logger")
    def test_missing_token_warns(self, mock_logger, fake_logfire) -> None:
        assert monitoring.initialize_logfire() is False

        assert "LOGFIRE_TOKEN" in mock_logger.warning.call_args[0][0]
        fake_logfire.configure.assert_not_called()

    def test_configures_and_instruments_httpx(self, enabled, fake_logfire) -> None:
        assert monitoring.initialize_logfire() is True

        kwargs = fake_logfire.configure.call_args.kwargs
        assert kwargs["token"] == "test-token"
        assert kwargs["service_name"] == monitoring.LOGFIRE_SERVICE_NAME
        assert kwargs["environment"] == monitoring.LOGFIRE_ENVIRONMENT
        fake_logfire.instrument_httpx.assert_called_once()
        assert monitoring.is_monitoring_enabled()

    def test_second_call_is_ignored(self, enabled, fake_logfire) -> None:
        monitoring.initialize_logfire()
        monitoring.initialize_logfire()

        fake_logfire.configure.assert_called_once()

    @patch("strata_agent.core.monitoring.logger")
    def test_instrumentation_failure_is_tolerated(self, mock_logger, enabled, fake_logfire) -> None:
        fake_logfire.instrument_httpx.side_effect = RuntimeError("no httpx hook")

        assert monitoring.initialize_logfire() is True
        assert "no httpx hook" in mock_logger.warning.call_args[0][0]

    @patch("strata_agent.core.monitoring.logger")
    def test_package_not_installed_warns(self, mock_logger, enabled) -> None:
        with patch.dict(sys.modules, {"logfire": None}):
            assert monitoring.initialize_logfire() is False

        assert "not installed" in mock_logger.warning.call_args[0][0]
        assert not monitoring.is_monitoring_enabled()

    @patch("strata_agent.core.monitoring.logger")
    def test_configure_error_is_logged(self, mock_logger, enabled, fake_logfire) -> None:
        fake_logfire.configure.side_effect = ValueError("bad token")

        assert monitoring.initialize_logfire() is False
        mock_logger.error.assert_called_once()


class TestLogHelpers:
    def test_helpers_are_noops_until_configured(self, fake_logfire) -> None:
        monitoring.log_llm_call("m", 10)
        monitoring.log_error("E", "boom")

        fake_logfire.info.assert_not_called()
        fake_logfire.error.assert_not_called()

    def test_helpers_send_events_once_configured(self, enabled, fake_logfire) -> None:
        monitoring.initialize_logfire()

        monitoring.log_llm_call("gemini", 120, retries=2)
        monitoring.log_error("ActionFailed", "exit=1", {"action_type": "runTerminalCommand"})

        fake_logfire.info.assert_called_once_with("LLM call completed", model="gemini", tokens_used=120, retries=2)
        fake_logfire.error.assert_called_once_with("ActionFailed: exit=1", action_type="runTerminalCommand")

    @patch("strata_agent.core.monitoring.logger")
    def test_helper_errors_are_swallowed(self, mock_logger, enabled, fake_logfire) -> None:
        monitoring.initialize_logfire()
        fake_logfire.info.side_effect = RuntimeError("exporter down")
        fake_logfire.error.side_effect = RuntimeError("exporter down")

        monitoring.log_llm_call("gemini", None)
        monitoring.log_error("E", "boom")

        assert mock_logger.debug.call_count == 2
