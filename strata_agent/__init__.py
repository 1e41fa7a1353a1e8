"""strata-agent: execution core of an AI coding agent.

Turns tool-call blocks emitted by a language model into filtered, executed
actions against a workspace, and keeps the conversation grounded with a cached
workspace snapshot and a log of recent tool results.
"""

__version__ = "0.1.0"
