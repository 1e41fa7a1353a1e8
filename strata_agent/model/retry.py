"""
Retry wrapper for model calls.

The model service intermittently answers with overload or rate-limit errors,
and sometimes with an empty body under load. Both are retried with exponential
backoff plus jitter; every other error propagates on the first attempt.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional

from strata_agent.core.logging_config import get_logger
from strata_agent.core.monitoring import log_llm_call
from strata_agent.errors import EmptyModelResponseError, ModelServiceError

from .client import ModelClient, ModelRequest, ModelResponse

logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 503})
TRANSIENT_MARKERS = ("429", "503", "overloaded", "UNAVAILABLE", "RESOURCE_EXHAUSTED", "rate limit")


def is_transient_error(error: BaseException) -> bool:
    """Whether an error looks like overload or rate limiting."""
    if isinstance(error, ModelServiceError) and error.status_code in TRANSIENT_STATUS_CODES:
        return True
    message = str(error)
    return any(marker in message for marker in TRANSIENT_MARKERS)


class ModelCallRetrier:
    """
    Call a ``ModelClient`` with retries.

    Args:
        client: Transport to call.
        base_delay: Seconds multiplied by ``2**attempt`` for the backoff.
        jitter: Upper bound of the uniform random delay added to each backoff.
        sleep: Awaitable sleep, injectable for tests.
        rand: Returns a float in [0, 1), injectable for tests.
    """

    def __init__(
        self,
        client: ModelClient,
        *,
        base_delay: float = 1.0,
        jitter: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self._client = client
        self._base_delay = base_delay
        self._jitter = jitter
        self._sleep = sleep
        self._rand = rand
        self.retry_count = 0

    def backoff_delay(self, attempt: int) -> float:
        return (2**attempt) * self._base_delay + self._rand() * self._jitter

    async def call(self, request: ModelRequest, max_retries: int = 3) -> ModelResponse:
        """
        Send ``request``, retrying empty responses and transient errors.

        Up to ``max_retries + 1`` attempts are made.

        Raises:
            EmptyModelResponseError: If every attempt returned blank text.
            Exception: The last transient error, or any non-transient error as
                soon as it occurs.
        """
        self.retry_count = 0
        last_error: Optional[BaseException] = None
        for attempt in range(max_retries + 1):
            try:
                response = await self._client.generate_content(request)
            except Exception as e:
                last_error = e
                if not is_transient_error(e) or attempt >= max_retries:
                    raise
                delay = self.backoff_delay(attempt)
                logger.info(
                    f"Model call failed with transient error ({e}); retrying in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                await self._pause(delay)
                continue

            if response.text.strip() or response.images:
                log_llm_call(request.model, response.total_tokens, retries=self.retry_count)
                return response

            if attempt < max_retries:
                delay = self.backoff_delay(attempt)
                logger.info(f"Model returned empty response; retrying in {delay:.2f}s (attempt {attempt + 1}/{max_retries})")
                await self._pause(delay)

        logger.error(f"Model returned empty response after {max_retries + 1} attempts (last error: {last_error})")
        raise EmptyModelResponseError(max_retries + 1)

    async def _pause(self, delay: float) -> None:
        self.retry_count += 1
        await self._sleep(delay)
