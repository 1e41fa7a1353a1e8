"""Model service transport and retry policy."""

from .client import (
    GeminiClient,
    InlineData,
    ModelClient,
    ModelRequest,
    ModelResponse,
    guess_mime_type,
    parse_generate_content,
)
from .retry import ModelCallRetrier, is_transient_error

__all__ = [
    "GeminiClient",
    "InlineData",
    "ModelCallRetrier",
    "ModelClient",
    "ModelRequest",
    "ModelResponse",
    "guess_mime_type",
    "is_transient_error",
    "parse_generate_content",
]
