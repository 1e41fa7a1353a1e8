"""
Shell process runner.

Spawns shell commands, streams their stdout and stderr concurrently into a tail
buffer and the output channel, and either waits for completion or, after a grace
period, hands the still-running process to the background registry.
"""

from __future__ import annotations

import asyncio
import codecs
import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from strata_agent.core.logging_config import get_logger

from .classifier import LongRunningClassifier, split_chained_command
from .output import OutputChannel, OutputChunk, OutputStream, TailBuffer
from .registry import ProcessHandle, ProcessRegistry

logger = get_logger(__name__)

_READ_SIZE = 4096


@dataclass(frozen=True)
class CommandOutcome:
    """Result of running one command (or the last part of a chain that ran)."""

    exit_code: int
    output_tail: str = ""
    still_running: bool = False
    message: str = ""
    command: str = ""


class ShellSpawner(Protocol):
    """Creates a shell process; injectable so tests can use fake processes."""

    uses_process_group: bool

    async def __call__(self, command: str, cwd: Optional[str]) -> Any:
        ...


class AsyncioShellSpawner:
    """Spawn through ``asyncio.create_subprocess_shell``.

    On POSIX the child gets its own session so the whole process tree can be
    signalled at once.
    """

    def __init__(self) -> None:
        self.uses_process_group = os.name == "posix"

    async def __call__(self, command: str, cwd: Optional[str]) -> Any:
        return await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            env=os.environ.copy(),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=self.uses_process_group,
        )


class ProcessRunner:
    """
    Run shell commands with live output and background promotion.

    Args:
        registry: Owner of the active and background processes.
        channel: Where live output is published.
        classifier: Decides which chained parts get the grace period.
        spawner: Process factory.
        tail_bytes: Byte budget of each command's tail buffer.
        long_running_grace_seconds: How long to wait for a long-running part
            before returning control with ``still_running=True``.
    """

    def __init__(
        self,
        *,
        registry: Optional[ProcessRegistry] = None,
        channel: Optional[OutputChannel] = None,
        classifier: Optional[LongRunningClassifier] = None,
        spawner: Optional[ShellSpawner] = None,
        tail_bytes: int = 6000,
        long_running_grace_seconds: float = 15.0,
    ) -> None:
        self.registry = registry or ProcessRegistry()
        self.channel = channel or OutputChannel()
        self.classifier = classifier or LongRunningClassifier()
        self._spawner: ShellSpawner = spawner or AsyncioShellSpawner()
        self._tail_bytes = tail_bytes
        self._grace = long_running_grace_seconds
        self._watchers: set[asyncio.Future] = set()

    async def run(self, command: str, cwd: Optional[str] = None, timeout: Optional[float] = None) -> CommandOutcome:
        """
        Run one command through the shell.

        Args:
            command: Shell command line.
            cwd: Working directory, or the current directory when None.
            timeout: Seconds to wait before promoting the process to the
                background. None or 0 waits for completion.

        Returns:
            ``CommandOutcome``. Spawn failures are reported with ``exit_code=-1``.
        """
        tail = TailBuffer(self._tail_bytes)
        try:
            process = await self._spawner(command, cwd)
        except (OSError, ValueError) as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Failed to spawn {command!r}: {message}")
            tail.append(f"\n{message}\n")
            self.channel.write(f"\n{message}\n", OutputStream.stderr)
            return CommandOutcome(exit_code=-1, output_tail=tail.text, message=message, command=command)

        handle = ProcessHandle(
            process,
            command,
            tail=tail,
            owns_process_group=getattr(self._spawner, "uses_process_group", False),
        )
        for stream, kind in ((process.stdout, OutputStream.stdout), (process.stderr, OutputStream.stderr)):
            if stream is not None:
                handle.readers.append(asyncio.create_task(self._pump(handle, stream, kind)))
        await self.registry.set_active(handle)
        logger.debug(f"Spawned pid={handle.pid}: {command!r} (cwd={cwd}, timeout={timeout})")

        waiter = asyncio.ensure_future(self._wait_for_exit(handle))
        if timeout:
            done, _ = await asyncio.wait({waiter}, timeout=timeout)
            if not done:
                await self.registry.promote(handle)
                self._watchers.add(waiter)
                waiter.add_done_callback(self._watchers.discard)
                return CommandOutcome(
                    exit_code=0,
                    output_tail=tail.text,
                    still_running=True,
                    message="Process still running",
                    command=command,
                )

        exit_code = await waiter
        logger.debug(f"pid={handle.pid} exited with {exit_code}")
        return CommandOutcome(exit_code=exit_code, output_tail=tail.text, command=command)

    async def run_chain(self, command: str, cwd: Optional[str] = None) -> CommandOutcome:
        """
        Run ``a && b && c`` part by part.

        Long-running parts get the grace period; others run to completion.
        Execution stops at the first non-zero exit or the first part handed to
        the background, and that part's outcome is returned.
        """
        outcome = CommandOutcome(exit_code=0, command=command)
        for part in split_chained_command(command):
            timeout = self._grace if self.classifier.is_long_running(part) else None
            outcome = await self.run(part, cwd=cwd, timeout=timeout)
            if outcome.still_running:
                self.channel.write("\n[process running in background]\n")
                break
            if outcome.exit_code != 0:
                break
        return outcome

    async def forward_input(self, data: str) -> bool:
        """Write user input to the foreground process's stdin."""
        return await self.registry.write_stdin(data)

    async def kill_all(self) -> int:
        return await self.registry.kill_all()

    async def _pump(self, handle: ProcessHandle, stream: Any, kind: OutputStream) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(_READ_SIZE)
            if not data:
                break
            text = decoder.decode(data)
            if text:
                self._emit(handle, text, kind)
        rest = decoder.decode(b"", final=True)
        if rest:
            self._emit(handle, rest, kind)

    def _emit(self, handle: ProcessHandle, text: str, kind: OutputStream) -> None:
        handle.tail.append(text)
        self.channel.publish(OutputChunk(text=text, stream=kind, pid=handle.pid))

    async def _wait_for_exit(self, handle: ProcessHandle) -> int:
        exit_code = await handle.process.wait()
        if handle.readers:
            await asyncio.gather(*handle.readers)
        await self.registry.retire(handle)
        if handle.backgrounded:
            self.channel.write(f"\n[exit code: {exit_code}]\n")
        return exit_code if isinstance(exit_code, int) else 0
