"""Action execution.

 - ``ActionExecutor`` resolves each action's canonical type through an
   ``ActionHandlerRegistry`` and runs the handler with an ``ExecutionContext``.
 - Handlers validate their typed payload before touching the workspace.
 - Failures are reported as results, never raised to the caller.
"""

from .base import ActionHandler, ActionHandlerRegistry, ExecutionContext
from .executor import ActionExecutor, build_default_registry

__all__ = [
    "ActionExecutor",
    "ActionHandler",
    "ActionHandlerRegistry",
    "ExecutionContext",
    "build_default_registry",
]
