"""
Prompt composition.

Assembles the single text prompt sent to the model for a chat turn, in this
order: system prompt, active persona block, workspace snapshot, recent tool
results, conversation history, the user message, then meta instructions.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from strata_agent.schemas.domain import ActionResult, ConversationMessage, WorkspaceSignals, WorkspaceSnapshot

SYSTEM_PROMPT = """\
You are Strata, an autonomous general-purpose IDE agent working inside the user's workspace.

ROLE
- Act as architect, engineer, debugger, reviewer, DevOps, analyst and designer as the task requires.
- Keep the human in final control of risky or irreversible actions.
- Read the workspace context below (file tree, package.json, README) as the source of truth.

CONVERSATION STYLE
- Infer the intent behind terse or messy instructions; state assumptions briefly and proceed.
- Be direct and concise. Default to senior-engineer depth.
- Treat compiler errors, stack traces and logs as primary signals and look for root causes.

OUTPUT FORMAT (STRICT)
- Answer mode: questions, explanations and status updates. Reply in 1-3 focused sentences or short bullets, with NO tool block.
- Tool mode: only when concrete actions are required and safe, or when the user explicitly asks for them.
- In tool mode output exactly ONE tool block:
  ```strata-tools
  { "actions": [ ... ] }
  ```
- The tool block must be valid JSON.
- When the request is complete, reply in answer mode with what was done and how to run or verify it.

TOOLS AVAILABLE
- runTerminalCommand: { type:"runTerminalCommand", command:"...", cwd?:"..." } (cmd is accepted for command)
- createDirectory: { type:"createDirectory", path:"..." }
- createOrOverwriteFile: { type:"createOrOverwriteFile", path:"...", contents:"..." }
- appendToFile: { type:"appendToFile", path:"...", contents:"..." }
- deletePath: { type:"deletePath", path:"..." }
- openFile: { type:"openFile", path:"..." }
- readFile: { type:"readFile", path:"..." }
- listFiles: { type:"listFiles", path:"..." }
- fetchUrl: { type:"fetchUrl", url:"..." }
- killPort: { type:"killPort", port:1234 }
- killBackgroundProcesses: { type:"killBackgroundProcesses" }
- getSystemStatus: { type:"getSystemStatus" }
- manageMemory: { type:"manageMemory", operation:"read|write|clear", key?:"...", value?:any }
- createBackup: { type:"createBackup", label:"..." }
- generateImage: { type:"generateImage", prompt:"detailed image description", outputPath?:"relative/path/image.png" }

WORKFLOW
1) Understand the task and the current workspace context.
2) Decide whether tools are needed. If a direct answer is enough, stay in answer mode.
3) Use tools to create and edit files; do not paste long code into chat.
4) Dev servers and watchers keep running in the background; use killPort or killBackgroundProcesses to stop them.
5) Check the recent tool results before proposing the next step, and fix failures before moving on.
"""

AUTO_CONTINUE_PROMPT = (
    "Continue the previous task automatically. Based on our last conversation and actions, "
    "propose the next concrete steps and strata-tools needed to move the project closer to done."
)

SCAFFOLD_KEYWORDS = (
    "scaffold",
    "create project",
    "create a project",
    "full saas",
    "build a saas",
    "create app",
    "create an app",
    "generate app",
    "scaffold app",
    "production ready",
    "production-grade",
)

SCAFFOLD_META = (
    "\n\nMeta instruction: The user is asking you to build or scaffold a real project or app. "
    "You MUST respond with a strata-tools block that actually creates directories, creates or overwrites files, "
    "and runs key commands. Do not only paste code into chat; prefer tools for all file and folder creation."
)

INSTALL_META = (
    "\n\nMeta instruction: This workspace appears to contain a Node project but dependencies are not installed "
    "(node_modules missing). Propose strata-tools to install dependencies using the detected package manager, "
    "then run the project using the appropriate script (e.g., dev/start) as needed."
)

TOOL_LOG_HEADER = "Recent tool actions (applied/skipped/failed):"
TOOL_LOG_MESSAGE_CHARS = 320
TOOL_LOG_OUTPUT_CHARS = 380

_WHITESPACE = re.compile(r"\s+")


def _collapse(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def render_tool_log_entry(result: ActionResult) -> str:
    action = result.action
    command = action.get("command") or action.get("cmd")
    path = action.get("path")
    cwd = action.get("cwd")

    line = f"- {result.status.value}: {action.type}"
    if isinstance(command, str) and command:
        line += f" cmd={command}"
    elif isinstance(path, str) and path:
        line += f" path={path}"
    if isinstance(cwd, str) and cwd:
        line += f" cwd={cwd}"

    message = _collapse(result.message)
    if message:
        if len(message) > TOOL_LOG_MESSAGE_CHARS:
            message = message[:TOOL_LOG_MESSAGE_CHARS] + "..."
        line += f" msg={message}"
    output = _collapse(result.output_tail)
    if output:
        if len(output) > TOOL_LOG_OUTPUT_CHARS:
            output = "..." + output[-TOOL_LOG_OUTPUT_CHARS:]
        line += f" out={output}"
    return line


def render_tool_log(results: Sequence[ActionResult], limit: int = 25) -> str:
    """Render the most recent ``limit`` results; empty string when there are none."""
    if limit <= 0 or not results:
        return ""
    lines = [render_tool_log_entry(r) for r in list(results)[-limit:]]
    return TOOL_LOG_HEADER + "\n" + "\n".join(lines) + "\n\n"


def render_history(history: Sequence[ConversationMessage], user_text: str) -> str:
    """Render prior turns, dropping a trailing user turn that repeats ``user_text``."""
    turns = list(history)
    if turns and turns[-1].role == "user" and turns[-1].text.strip() == user_text.strip():
        turns = turns[:-1]
    if not turns:
        return ""
    lines = [f"{'Assistant' if m.role == 'assistant' else 'User'}: {m.text}" for m in turns]
    return "Conversation so far:\n" + "\n".join(lines) + "\n\n"


def meta_instructions(user_text: str, signals: WorkspaceSignals) -> str:
    lowered = user_text.lower()
    meta = SCAFFOLD_META if any(k in lowered for k in SCAFFOLD_KEYWORDS) else ""
    if signals.has_projects and signals.needs_install:
        meta += INSTALL_META
    return meta


def build_prompt(
    user_text: str,
    *,
    agent_block: str = "",
    snapshot: Optional[WorkspaceSnapshot] = None,
    tool_log: Sequence[ActionResult] = (),
    history: Sequence[ConversationMessage] = (),
    tool_log_entries: int = 25,
    system_prompt: str = SYSTEM_PROMPT,
) -> str:
    """
    Compose the full prompt for one model turn.

    Args:
        user_text: The user's message (already trimmed).
        agent_block: Persona block, empty when no persona is active.
        snapshot: Workspace snapshot; its signals drive the meta instructions.
        tool_log: Results of previously executed actions, oldest first.
        history: Prior conversation turns, oldest first.
        tool_log_entries: How many of the most recent results to include.
        system_prompt: Base instructions.

    Returns:
        The prompt text.
    """
    snapshot = snapshot or WorkspaceSnapshot()
    workspace_block = snapshot.text + "\n" if snapshot.text else ""
    return (
        f"{system_prompt}\n\n"
        f"{agent_block}"
        f"{workspace_block}"
        f"{render_tool_log(tool_log, tool_log_entries)}"
        f"{render_history(history, user_text)}"
        f"User message:\n{user_text}"
        f"{meta_instructions(user_text, snapshot.signals)}"
    )
