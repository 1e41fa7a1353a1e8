"""Error types for the strata-agent execution core.

A small hierarchy of exceptions. Per-action failures are converted into
``failed`` results by the executor; the errors below either signal fatal
preconditions or upstream model failures that reach the session caller.
"""

from __future__ import annotations

from typing import Optional


class StrataError(Exception):
    """Base error for all strata-agent exceptions."""


class MissingCredentialError(StrataError):
    """Raised when the model-service credential cannot be resolved."""


class WorkspaceNotOpenError(StrataError):
    """Raised when a workspace-relative operation runs without a workspace root."""

    def __init__(self, message: str = "No workspace folder is open.") -> None:
        super().__init__(message)


class UnsupportedActionError(StrataError):
    """Raised when an action type has no registered handler."""

    def __init__(self, action_type: str) -> None:
        super().__init__(f"Unsupported action type: {action_type}")
        self.action_type = action_type


class ModelServiceError(StrataError):
    """Raised for unsuccessful model-service calls.

    The HTTP status code is kept so the retrier can classify the failure and is
    also part of the message, matching how upstream SDK errors read.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        text = f"{status_code} {message}" if status_code is not None else message
        super().__init__(text)
        self.status_code = status_code


class EmptyModelResponseError(ModelServiceError):
    """Raised when the model keeps returning blank text after all retries."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Model returned empty response after {attempts} attempts")
        self.attempts = attempts


class InvalidActionPayloadError(StrataError):
    """Raised when an action lacks a required field or carries an invalid one."""
