"""Shell process execution: runner, registry, output channel and heuristics."""

from .classifier import DEFAULT_LONG_RUNNING_PATTERNS, LongRunningClassifier, split_chained_command
from .output import OutputChannel, OutputChunk, OutputStream, TailBuffer
from .registry import ProcessHandle, ProcessRegistry
from .runner import AsyncioShellSpawner, CommandOutcome, ProcessRunner, ShellSpawner

__all__ = [
    "AsyncioShellSpawner",
    "CommandOutcome",
    "DEFAULT_LONG_RUNNING_PATTERNS",
    "LongRunningClassifier",
    "OutputChannel",
    "OutputChunk",
    "OutputStream",
    "ProcessHandle",
    "ProcessRegistry",
    "ProcessRunner",
    "ShellSpawner",
    "TailBuffer",
    "split_chained_command",
]
