"""
Activity sinks.

This module provides the ActivitySink abstraction the runtime emits
activity events into, plus in-memory and callback implementations.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from ..logging import StructuredLogger, get_logger
from .types import ActivityAction, ActivityEvent, ActivityType


class ActivitySink(ABC):
    """Fire-and-forget destination for activity events."""

    @abstractmethod
    async def emit(self, event: ActivityEvent) -> None:
        """Deliver one event."""
        ...

    async def close(self) -> None:
        """Release resources held by the sink."""
        return None


class NullActivitySink(ActivitySink):
    """Discards every event."""

    async def emit(self, event: ActivityEvent) -> None:
        return None


class InMemoryActivitySink(ActivitySink):
    """Keeps a bounded history of events.

    Suitable for testing and for polling endpoints in single-process
    deployments.
    """

    def __init__(self, max_events: int = 1000):
        self._events: list[ActivityEvent] = []
        self._max_events = max_events
        self._lock = asyncio.Lock()

    async def emit(self, event: ActivityEvent) -> None:
        async with self._lock:
            self._events.append(event)
            if len(self._events) > self._max_events:
                del self._events[: len(self._events) - self._max_events]

    async def events(
        self,
        *,
        workspace_id: str | None = None,
        action: ActivityAction | None = None,
        type: ActivityType | None = None,
    ) -> list[ActivityEvent]:
        async with self._lock:
            return [
                e for e in self._events
                if (workspace_id is None or e.workspace_id == workspace_id)
                and (action is None or e.action == action)
                and (type is None or e.type == type)
            ]

    async def clear(self) -> None:
        async with self._lock:
            self._events.clear()


class CallbackActivitySink(ActivitySink):
    """Forwards events to a sync or async callable (e.g. an SSE broadcaster)."""

    def __init__(self, callback: Callable[[ActivityEvent], Awaitable[Any] | Any]):
        self._callback = callback

    async def emit(self, event: ActivityEvent) -> None:
        result = self._callback(event)
        if inspect.isawaitable(result):
            await result


async def emit_safely(
    sink: ActivitySink | None,
    event: ActivityEvent,
    logger: StructuredLogger | None = None,
) -> None:
    """Emit an event without letting sink failures reach the caller.

    Activity is advisory, so a broken broadcaster is logged and ignored.
    """
    if sink is None:
        return
    try:
        await sink.emit(event)
    except Exception as e:
        (logger or get_logger()).warning(
            "Activity sink failed",
            action=event.action.value,
            error_type=type(e).__name__,
            error_message=str(e),
        )


__all__ = [
    "ActivitySink",
    "NullActivitySink",
    "InMemoryActivitySink",
    "CallbackActivitySink",
    "emit_safely",
]
