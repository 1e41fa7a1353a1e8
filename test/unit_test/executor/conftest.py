from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import pytest

from strata_agent.core.config import StrataSettings
from strata_agent.executor.base import ExecutionContext
from strata_agent.process.runner import ProcessRunner
from strata_agent.workspace.paths import WorkspacePaths

FIXED_NOW = datetime(2026, 3, 4, 5, 6, 7, 890_000, tzinfo=timezone.utc)


@pytest.fixture
def make_ctx(workspace: Path, strata_settings: StrataSettings, make_runner, fake_process) -> Callable[..., ExecutionContext]:
    def _make(runner: Optional[ProcessRunner] = None, **kwargs) -> ExecutionContext:
        if runner is None:
            runner, _ = make_runner(lambda _cmd: fake_process())
        kwargs.setdefault("clock", lambda: FIXED_NOW)
        return ExecutionContext(paths=WorkspacePaths(workspace), runner=runner, settings=strata_settings, **kwargs)

    return _make
