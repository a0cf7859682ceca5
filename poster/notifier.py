"""
In-process push notifications for dashboard listeners.
"""
import inspect
import logging
from typing import Any, Callable, Dict, List

from .utils import now_iso

logger = logging.getLogger(__name__)

EVENT_PREFIX = "automation:"

EVENTS = (
    "started",
    "paused",
    "resumed",
    "stopped",
    "completed",
    "processing",
    "item-completed",
    "item-failed",
    "error",
)

Listener = Callable[[str, Dict[str, Any]], Any]


class Notifier:
    """Fans events out to registered listeners (sync or async callables)."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def emit(self, event: str, **fields) -> Dict[str, Any]:
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")
        name = EVENT_PREFIX + event
        payload = {"timestamp": now_iso(), **fields}
        for listener in list(self._listeners):
            try:
                result = listener(name, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Listener failed for {name}: {e}")
        return payload
