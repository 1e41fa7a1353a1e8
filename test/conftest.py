from __future__ import annotations

import asyncio
import itertools
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import httpx
import pytest

from strata_agent.core.config import StrataSettings, clear_workspace_env_cache
from strata_agent.process.runner import ProcessRunner


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process`` driven entirely in memory."""

    _pids = itertools.count(40_000)

    def __init__(self, output: bytes = b"", exit_code: int = 0, *, never_exits: bool = False) -> None:
        self.pid = next(self._pids)
        self.returncode: Optional[int] = None
        self.stdout = asyncio.StreamReader()
        self.stderr = None
        self.stdin = None
        self.terminated = False
        self._exited = asyncio.Event()
        if output:
            self.stdout.feed_data(output)
        if not never_exits:
            self.stdout.feed_eof()
            self._finish(exit_code)

    def _finish(self, code: int) -> None:
        self.returncode = code
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if self.returncode is None:
            self.stdout.feed_eof()
            self._finish(-15)


class FakeSpawner:
    """Records spawned commands and returns processes built by ``factory``."""

    uses_process_group = False

    def __init__(self, factory: Callable[[str], FakeProcess]) -> None:
        self._factory = factory
        self.commands: List[Tuple[str, Optional[str]]] = []
        self.processes: List[FakeProcess] = []

    async def __call__(self, command: str, cwd: Optional[str]) -> FakeProcess:
        self.commands.append((command, cwd))
        process = self._factory(command)
        self.processes.append(process)
        return process


@pytest.fixture
def fake_process() -> type[FakeProcess]:
    return FakeProcess


@pytest.fixture
def fake_spawner() -> type[FakeSpawner]:
    return FakeSpawner


@pytest.fixture
def strata_settings() -> StrataSettings:
    """Settings isolated from the developer's environment, tuned for fast tests."""
    return StrataSettings(
        _env_file=None,
        gemini_api_key="test-key",
        model="test-model",
        api_base_url="http://mock/v1beta",
        retry_base_seconds=0.0,
        retry_jitter_seconds=0.0,
        long_running_grace_seconds=0.05,
        kill_port_timeout_seconds=0.5,
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def make_runner(fake_spawner: type[FakeSpawner]) -> Callable[..., Tuple[ProcessRunner, FakeSpawner]]:
    def _make(factory: Callable[[str], FakeProcess], **kwargs) -> Tuple[ProcessRunner, FakeSpawner]:
        spawner = fake_spawner(factory)
        kwargs.setdefault("long_running_grace_seconds", 0.05)
        return ProcessRunner(spawner=spawner, **kwargs), spawner

    return _make


@pytest.fixture(autouse=True)
def _reset_workspace_env_cache():
    clear_workspace_env_cache()
    yield
    clear_workspace_env_cache()


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "/",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
