"""``fetchUrl`` handler."""

from __future__ import annotations

import httpx

from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import Action, ActionResult, ActionType

from .base import ActionHandler, ExecutionContext, failure, success
from .definitions import UrlInput

logger = get_logger(__name__)


class FetchUrlHandler(ActionHandler[UrlInput]):
    """GET a URL and return the start of its body.

    Redirects are followed. Non-2xx responses and transport errors become
    failed results.
    """

    payload_model = UrlInput

    @property
    def name(self) -> ActionType:
        return ActionType.fetch_url

    async def handle(self, ctx: ExecutionContext, action: Action, payload: UrlInput) -> ActionResult:
        limit = ctx.settings.fetch_max_chars
        try:
            if ctx.http_client is not None:
                response = await ctx.http_client.get(payload.url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=ctx.settings.request_timeout_seconds) as client:
                    response = await client.get(payload.url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.error(f"Fetch of {payload.url} failed: {e}")
            return failure(action, f"{e.__class__.__name__}: {e}")

        if not response.is_success:
            logger.error(f"Fetch of {payload.url} returned {response.status_code}")
            return failure(action, f"Status {response.status_code}")

        logger.info(f"Fetched {payload.url} ({len(response.text)} chars)")
        return success(action, output_tail=response.text[:limit])
