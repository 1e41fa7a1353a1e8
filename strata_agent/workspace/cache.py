"""TTL cache for the workspace snapshot.

The snapshot is expensive to compute (a filesystem walk plus file reads) and is
needed on every model turn, so it is memoized for a short window. The cache is
a single ``(value, built_at)`` slot owned by the session.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from strata_agent.core.logging_config import get_logger
from strata_agent.schemas.domain import WorkspaceSnapshot

from .context import WorkspaceContextBuilder

logger = get_logger(__name__)


@dataclass(frozen=True)
class _CacheSlot:
    value: WorkspaceSnapshot
    built_at: float


class WorkspaceContextCache:
    """Cache for the workspace snapshot.

    Attributes:
        ttl: Seconds a built snapshot stays fresh.
    """

    def __init__(
        self,
        builder: WorkspaceContextBuilder,
        *,
        ttl: float = 8.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            builder: Computes a fresh snapshot.
            ttl: Freshness window in seconds.
            clock: Monotonic time source, injectable for tests.
        """
        self._builder = builder
        self.ttl = ttl
        self._clock = clock
        self._slot: Optional[_CacheSlot] = None
        self._lock = asyncio.Lock()

    async def get(self) -> WorkspaceSnapshot:
        """Return the cached snapshot, rebuilding it when stale or absent."""
        async with self._lock:
            now = self._clock()
            slot = self._slot
            if slot is not None and (now - slot.built_at) < self.ttl:
                return slot.value
            value = await asyncio.to_thread(self._builder.build)
            self._slot = _CacheSlot(value=value, built_at=self._clock())
            logger.debug("Workspace snapshot cache refreshed")
            return value

    def clear(self) -> None:
        """Drop the cached snapshot so the next ``get`` rebuilds it."""
        self._slot = None

    @property
    def is_warm(self) -> bool:
        return self._slot is not None
