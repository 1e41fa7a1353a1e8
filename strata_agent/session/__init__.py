"""Session orchestration: prompt composition and the chat/apply loop."""

from .orchestrator import SessionOrchestrator
from .prompt import AUTO_CONTINUE_PROMPT, SYSTEM_PROMPT, build_prompt, render_tool_log

__all__ = [
    "AUTO_CONTINUE_PROMPT",
    "SYSTEM_PROMPT",
    "SessionOrchestrator",
    "build_prompt",
    "render_tool_log",
]
