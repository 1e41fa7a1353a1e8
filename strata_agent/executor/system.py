"""``getSystemStatus`` handler."""

from __future__ import annotations

import json
import os
import platform
import sys
import time
from typing import Any, Dict, Optional, Tuple

from strata_agent.schemas.domain import Action, ActionResult, ActionType

from .base import ActionHandler, ExecutionContext, success
from .definitions import NoInput


def _memory_bytes() -> Tuple[Optional[int], Optional[int]]:
    """Total and available physical memory, where the OS exposes them."""
    try:
        page_size = os.sysconf("SC_PAGE_SIZE")
        total = os.sysconf("SC_PHYS_PAGES") * page_size
        free = os.sysconf("SC_AVPHYS_PAGES") * page_size
        return total, free
    except (AttributeError, ValueError, OSError):
        return None, None


def _uptime_seconds() -> Optional[float]:
    try:
        with open("/proc/uptime", encoding="utf-8") as fh:
            return float(fh.read().split()[0])
    except (OSError, ValueError, IndexError):
        pass
    if hasattr(time, "CLOCK_BOOTTIME"):
        return time.clock_gettime(time.CLOCK_BOOTTIME)
    return None


def collect_system_status() -> Dict[str, Any]:
    total, free = _memory_bytes()
    default_shell = "cmd/powershell" if sys.platform == "win32" else "bash"
    return {
        "platform": sys.platform,
        "arch": platform.machine(),
        "cpus": os.cpu_count(),
        "totalMemory": total,
        "freeMemory": free,
        "uptime": _uptime_seconds(),
        "release": platform.release(),
        "shell": os.environ.get("SHELL") or default_shell,
        "cwd": os.getcwd(),
    }


class SystemStatusHandler(ActionHandler[NoInput]):
    payload_model = NoInput

    @property
    def name(self) -> ActionType:
        return ActionType.get_system_status

    async def handle(self, ctx: ExecutionContext, action: Action, payload: NoInput) -> ActionResult:
        return success(action, output_tail=json.dumps(collect_system_status(), indent=2))
