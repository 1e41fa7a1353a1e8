"""
Live process output.

``TailBuffer`` keeps a bounded trailing capture of a process's combined output,
used for results and prompts rather than full capture. ``OutputChannel`` is the
typed stream the runner publishes to; the presentation layer subscribes to it
to render a terminal view.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

from strata_agent.core.logging_config import get_logger

logger = get_logger(__name__)


class TailBuffer:
    """
    Bounded text buffer with a UTF-8 byte budget; the oldest bytes are dropped first.

    A multi-byte character cut by the budget is dropped whole, so the text can
    be a few bytes under ``max_bytes`` but never over it.
    """

    def __init__(self, max_bytes: int = 6000) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self._max_bytes = max_bytes
        self._text = ""

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def text(self) -> str:
        return self._text

    def append(self, chunk: str) -> None:
        self._text += chunk
        # no char encodes to more than 4 bytes
        if len(self._text) * 4 <= self._max_bytes:
            return
        data = self._text.encode("utf-8")
        if len(data) > self._max_bytes:
            self._text = data[-self._max_bytes :].decode("utf-8", errors="ignore")

    def __len__(self) -> int:
        """Size in bytes."""
        return len(self._text.encode("utf-8"))


class OutputStream(str, Enum):
    stdout = "stdout"
    stderr = "stderr"
    system = "system"


@dataclass(frozen=True)
class OutputChunk:
    text: str
    stream: OutputStream = OutputStream.system
    pid: int | None = None


Subscriber = Callable[[OutputChunk], None]


class OutputChannel:
    """
    Publish/subscribe channel for process output and runner notices.

    Subscribers are called synchronously in subscription order. A subscriber
    that raises is logged and does not prevent delivery to the others, nor does
    it affect the process being observed.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber and return a callable that removes it."""
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def publish(self, chunk: OutputChunk) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(chunk)
            except Exception:
                logger.exception("Output subscriber failed")

    def write(self, text: str, stream: OutputStream = OutputStream.system) -> None:
        self.publish(OutputChunk(text=text, stream=stream))
