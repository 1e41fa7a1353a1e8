"""Model service transport.

``ModelClient`` is the boundary the rest of the package depends on: one async
``generate_content`` call taking a ``ModelRequest`` and returning the response
text plus any inline images. ``GeminiClient`` implements it against the Gemini
``generateContent`` REST endpoint using httpx.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import Field

from strata_agent.core.logging_config import get_logger
from strata_agent.errors import ModelServiceError
from strata_agent.schemas.base import BaseSchema, FrozenSchema

logger = get_logger(__name__)

MAX_INLINE_ATTACHMENT_BYTES = 20 * 1024 * 1024

_MIME_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".txt": "text/plain",
    ".md": "text/markdown",
}


def guess_mime_type(path: str | Path) -> Optional[str]:
    return _MIME_TYPES.get(Path(path).suffix.lower())


class InlineData(FrozenSchema):
    """Binary payload carried inline as base64."""

    mime_type: str
    data: str

    def decode(self) -> bytes:
        return base64.b64decode(self.data)

    @classmethod
    def from_path(cls, path: Path, *, max_bytes: int = MAX_INLINE_ATTACHMENT_BYTES) -> "InlineData":
        """
        Load a file as an inline attachment.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file exceeds ``max_bytes``.
        """
        size = path.stat().st_size
        if size > max_bytes:
            raise ValueError(f"Attachment too large ({size} bytes, max {max_bytes})")
        mime_type = guess_mime_type(path) or "application/octet-stream"
        return cls(mime_type=mime_type, data=base64.b64encode(path.read_bytes()).decode("ascii"))


class ModelRequest(BaseSchema):
    model: str
    prompt: str
    attachment: Optional[InlineData] = None
    response_modalities: Optional[List[str]] = None


class ModelResponse(BaseSchema):
    text: str = ""
    images: List[InlineData] = Field(default_factory=list)
    total_tokens: Optional[int] = None


class ModelClient(Protocol):
    async def generate_content(self, request: ModelRequest) -> ModelResponse:
        """
        Send one request to the model service.

        Raises:
            ModelServiceError: If the service rejects the request.
        """
        ...


def parse_generate_content(payload: Dict[str, Any]) -> ModelResponse:
    """Collect text and inline images from the first candidate."""
    total_tokens = (payload.get("usageMetadata") or {}).get("totalTokenCount")
    candidates = payload.get("candidates") or []
    if not candidates:
        return ModelResponse(total_tokens=total_tokens)
    parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
    texts: List[str] = []
    images: List[InlineData] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            images.append(
                InlineData(mime_type=inline.get("mimeType") or inline.get("mime_type") or "image/png", data=inline["data"])
            )
        elif isinstance(part.get("text"), str):
            texts.append(part["text"])
    return ModelResponse(text="".join(texts), images=images, total_tokens=total_tokens)


class GeminiClient:
    """Async client for the Gemini ``generateContent`` endpoint.

    Args:
        api_key: Model-service credential sent as ``x-goog-api-key``.
        base_url: REST API base, e.g. ``https://generativelanguage.googleapis.com/v1beta``.
        timeout: Request timeout in seconds.
        client: Optional preconfigured ``httpx.AsyncClient``; the caller then owns it.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 300.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _build_body(self, request: ModelRequest) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{"text": request.prompt}]
        if request.attachment is not None:
            parts.append({"inlineData": {"mimeType": request.attachment.mime_type, "data": request.attachment.data}})
        body: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if request.response_modalities:
            body["generationConfig"] = {"responseModalities": list(request.response_modalities)}
        return body

    async def generate_content(self, request: ModelRequest) -> ModelResponse:
        url = f"{self.base_url}/models/{request.model}:generateContent"
        logger.debug(f"POST {url} (prompt {len(request.prompt)} chars, attachment={request.attachment is not None})")
        try:
            response = await self._client.post(
                url,
                json=self._build_body(request),
                headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise ModelServiceError(f"Model request failed: {e}") from e

        if response.status_code >= 400:
            raise ModelServiceError(self._error_message(response), status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise ModelServiceError(f"Model returned invalid JSON: {e}") from e
        return parse_generate_content(payload if isinstance(payload, dict) else {})

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            return response.text[:500] or response.reason_phrase
        status = error.get("status")
        message = error.get("message") or response.reason_phrase
        return f"{status}: {message}" if status else message

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
