"""
Process ownership.

A ``ProcessHandle`` wraps one spawned shell process together with its tail
buffer and the tasks pumping its output. The ``ProcessRegistry`` owns handles:
at most one foreground (active) process, plus the background list of processes
that outlived their foreground wait window.
"""

from __future__ import annotations

import asyncio
import os
import signal
from typing import Any, List, Optional

from strata_agent.core.logging_config import get_logger

from .output import TailBuffer

logger = get_logger(__name__)


class ProcessHandle:
    """One spawned process plus its output capture."""

    def __init__(
        self,
        process: Any,
        command: str,
        *,
        tail: TailBuffer,
        owns_process_group: bool = False,
    ) -> None:
        self.process = process
        self.command = command
        self.tail = tail
        self.owns_process_group = owns_process_group
        self.readers: List[asyncio.Task] = []
        self.backgrounded = False

    @property
    def pid(self) -> Optional[int]:
        return getattr(self.process, "pid", None)

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def alive(self) -> bool:
        return self.process.returncode is None

    def kill(self) -> bool:
        """
        Terminate the process (and its process group when it owns one).

        Returns:
            True if a signal was delivered, False if the process was already gone.
        """
        if not self.alive:
            return False
        try:
            if self.owns_process_group and self.pid is not None:
                os.killpg(self.pid, signal.SIGTERM)
            else:
                self.process.terminate()
        except ProcessLookupError:
            return False
        logger.debug(f"Sent terminate to pid={self.pid} ({self.command!r})")
        return True

    async def write_stdin(self, data: str) -> bool:
        stdin = getattr(self.process, "stdin", None)
        if stdin is None or not self.alive:
            return False
        try:
            stdin.write(data.encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug(f"stdin of pid={self.pid} is closed")
            return False
        return True


class ProcessRegistry:
    """
    Foreground slot plus background list, guarded by one lock.

    Invariants: a handle is in at most one place, and promotion to the
    background happens at most once per handle.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._active: Optional[ProcessHandle] = None
        self._background: List[ProcessHandle] = []

    @property
    def active(self) -> Optional[ProcessHandle]:
        return self._active

    @property
    def background(self) -> tuple[ProcessHandle, ...]:
        return tuple(self._background)

    async def set_active(self, handle: ProcessHandle) -> None:
        async with self._lock:
            self._active = handle

    async def promote(self, handle: ProcessHandle) -> bool:
        """Move a handle from the active slot to the background list.

        Returns:
            True if the handle was promoted by this call, False if it already was.
        """
        async with self._lock:
            if handle.backgrounded:
                return False
            if self._active is handle:
                self._active = None
            handle.backgrounded = True
            self._background.append(handle)
        logger.info(f"Process pid={handle.pid} ({handle.command!r}) moved to background")
        return True

    async def retire(self, handle: ProcessHandle) -> None:
        """Forget a handle whose process has exited."""
        async with self._lock:
            if self._active is handle:
                self._active = None
            if handle in self._background:
                self._background.remove(handle)

    async def write_stdin(self, data: str) -> bool:
        handle = self._active
        if handle is None:
            return False
        return await handle.write_stdin(data)

    async def kill_all(self) -> int:
        """
        Terminate the active process and every live background process.

        Both slots are cleared afterwards.

        Returns:
            The number of processes that were still alive and got signalled.
        """
        async with self._lock:
            handles: List[ProcessHandle] = []
            if self._active is not None:
                handles.append(self._active)
            handles.extend(h for h in self._background if h not in handles)
            self._active = None
            self._background = []

        killed = 0
        for handle in handles:
            if handle.kill():
                killed += 1
        logger.info(f"Killed {killed} process(es)")
        return killed
