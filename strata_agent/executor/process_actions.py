"""Handlers that run or stop shell processes."""

from __future__ import annotations

import sys

from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import Action, ActionResult, ActionStatus, ActionType

from .base import ActionHandler, ExecutionContext, success
from .definitions import CommandInput, NoInput, PortInput

logger = get_logger(__name__)


def clip_tail(text: str, limit: int) -> str:
    """Keep the last ``limit`` characters of stripped output."""
    trimmed = (text or "").strip()
    return trimmed[-limit:] if len(trimmed) > limit else trimmed


def kill_port_command(port: int, platform: str = sys.platform) -> str:
    """Shell command that kills every listener on ``port`` and prints one line per process."""
    if platform == "win32":
        return f'for /f "tokens=5" %a in (\'netstat -aon ^| findstr :{port}\') do taskkill /F /PID %a'
    return f"lsof -ti:{port} | while read pid; do echo $pid; kill -9 $pid; done"


def count_killed_processes(output: str) -> int:
    """Count PID lines (POSIX) and ``SUCCESS:`` lines (taskkill) in kill output."""
    return sum(
        1 for line in output.splitlines() if line.strip().isdigit() or line.strip().startswith("SUCCESS:")
    )


class RunTerminalCommandHandler(ActionHandler[CommandInput]):
    """
    Run a (possibly ``&&``-chained) shell command.

    The result status is ``running`` when a long-running part was handed to the
    background, ``failed`` on a non-zero exit and ``success`` otherwise. The
    message is ``exit=<code>`` or ``running``.
    """

    payload_model = CommandInput

    @property
    def name(self) -> ActionType:
        return ActionType.run_terminal_command

    async def handle(self, ctx: ExecutionContext, action: Action, payload: CommandInput) -> ActionResult:
        cwd = ctx.paths.resolve_cwd(payload.cwd)
        ctx.channel.write(f"\n$ {payload.command}   [cwd: {cwd or '(workspace)'}]\n")

        outcome = await ctx.runner.run_chain(payload.command, cwd=cwd)
        tail = clip_tail(outcome.output_tail, ctx.settings.result_tail_chars)

        if outcome.still_running:
            logger.info(f"Command still running in background: {outcome.command!r}")
            return ActionResult(action=action, status=ActionStatus.running, exit_code=0, output_tail=tail, message="running")

        if outcome.exit_code != 0:
            detail = outcome.message or f"Command failed with exit code {outcome.exit_code}"
            logger.error(f"Command {outcome.command!r} failed: {detail}")
            return ActionResult(
                action=action,
                status=ActionStatus.failed,
                exit_code=outcome.exit_code,
                output_tail=tail,
                message=f"exit={outcome.exit_code}",
            )

        logger.info(f"Command succeeded: {payload.command!r}")
        return ActionResult(action=action, status=ActionStatus.success, exit_code=0, output_tail=tail, message="exit=0")


class KillPortHandler(ActionHandler[PortInput]):
    """Kill whatever listens on a TCP port using the platform's tools."""

    payload_model = PortInput

    @property
    def name(self) -> ActionType:
        return ActionType.kill_port

    async def handle(self, ctx: ExecutionContext, action: Action, payload: PortInput) -> ActionResult:
        ctx.channel.write(f"\n[Killing processes on port {payload.port}]\n")
        outcome = await ctx.runner.run(
            kill_port_command(payload.port),
            cwd=None,
            timeout=ctx.settings.kill_port_timeout_seconds,
        )
        killed = count_killed_processes(outcome.output_tail)
        message = f"Killed {killed} process(es) on port {payload.port}"
        logger.info(f"{message} (exit={outcome.exit_code})")
        ctx.channel.write(f"[{message}]\n")
        return success(action, output_tail=message, message=message)


class KillBackgroundProcessesHandler(ActionHandler[NoInput]):
    """Terminate the foreground process and every background process."""

    payload_model = NoInput

    @property
    def name(self) -> ActionType:
        return ActionType.kill_background_processes

    async def handle(self, ctx: ExecutionContext, action: Action, payload: NoInput) -> ActionResult:
        killed = await ctx.runner.kill_all()
        message = f"Killed {killed} background process(es)"
        ctx.channel.write(f"\n[{message}]\n")
        return success(action, output_tail=message, message=message)
