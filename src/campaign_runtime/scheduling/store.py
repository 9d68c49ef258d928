"""
Scheduled step store implementations.

This module provides the ScheduledStepStore interface and an in-memory
implementation. A campaign's schedule is always written as a whole with
``replace_for_campaign``; individual entries are then updated as the
execution gate moves them through their lifecycle.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass

from .types import ScheduledStatus, ScheduledStep


@dataclass
class ScheduledFilter:
    """Filter criteria for listing scheduled steps."""
    campaign_id: str | None = None
    contact_id: str | None = None
    workspace_id: str | None = None
    status: ScheduledStatus | set[ScheduledStatus] | None = None
    limit: int = 1000
    offset: int = 0

    def matches(self, entry: ScheduledStep) -> bool:
        """Check if an entry matches this filter."""
        if self.campaign_id and entry.campaign_id != self.campaign_id:
            return False
        if self.contact_id and entry.contact_id != self.contact_id:
            return False
        if self.workspace_id and entry.workspace_id != self.workspace_id:
            return False
        if self.status:
            if isinstance(self.status, set):
                if entry.status not in self.status:
                    return False
            elif entry.status != self.status:
                return False
        return True


def due_order(entry: ScheduledStep) -> tuple[int, float, int]:
    """Sort key for due entries: priority, then time, then step position."""
    return (entry.priority, entry.scheduled_at, entry.step_index)


def check_unique(entries: list[ScheduledStep]) -> None:
    """Raise ValueError if two entries share a (campaign, step, contact) key."""
    seen: set[tuple[str, str, str]] = set()
    for entry in entries:
        if entry.key in seen:
            raise ValueError(f"Duplicate scheduled step for {entry.key}")
        seen.add(entry.key)


class ScheduledStepStore(ABC):
    """Abstract interface for scheduled step persistence."""

    @abstractmethod
    async def replace_for_campaign(
        self,
        campaign_id: str,
        entries: list[ScheduledStep],
    ) -> list[ScheduledStep]:
        """Atomically discard the campaign's schedule and store ``entries``."""
        ...

    @abstractmethod
    async def get(self, scheduled_id: str) -> ScheduledStep | None:
        ...

    @abstractmethod
    async def update(self, entry: ScheduledStep) -> ScheduledStep:
        """Update an existing entry."""
        ...

    @abstractmethod
    async def list(self, filter: ScheduledFilter | None = None) -> list[ScheduledStep]:
        """List entries matching the filter, in due order."""
        ...

    @abstractmethod
    async def list_due(
        self,
        now: float,
        *,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> list[ScheduledStep]:
        """List pending/approved entries with scheduled_at <= now, in due order."""
        ...

    @abstractmethod
    async def count_by_status(self, campaign_id: str) -> dict[str, int]:
        ...


class InMemoryScheduledStepStore(ScheduledStepStore):
    """In-memory scheduled step store.

    Suitable for testing and single-process deployments.
    """

    def __init__(self):
        self._entries: dict[str, ScheduledStep] = {}
        self._lock = asyncio.Lock()

    async def replace_for_campaign(
        self,
        campaign_id: str,
        entries: list[ScheduledStep],
    ) -> list[ScheduledStep]:
        check_unique(entries)
        for entry in entries:
            if entry.campaign_id != campaign_id:
                raise ValueError(
                    f"Scheduled step {entry.scheduled_id} belongs to campaign {entry.campaign_id!r}"
                )
        async with self._lock:
            self._entries = {
                sid: e for sid, e in self._entries.items() if e.campaign_id != campaign_id
            }
            for entry in entries:
                self._entries[entry.scheduled_id] = entry
            return list(entries)

    async def get(self, scheduled_id: str) -> ScheduledStep | None:
        async with self._lock:
            return self._entries.get(scheduled_id)

    async def update(self, entry: ScheduledStep) -> ScheduledStep:
        async with self._lock:
            if entry.scheduled_id not in self._entries:
                raise ValueError(f"Scheduled step {entry.scheduled_id} not found")
            self._entries[entry.scheduled_id] = entry
            return entry

    async def list(self, filter: ScheduledFilter | None = None) -> list[ScheduledStep]:
        async with self._lock:
            entries = sorted(self._entries.values(), key=due_order)

            if filter:
                entries = [e for e in entries if filter.matches(e)]
                entries = entries[filter.offset:filter.offset + filter.limit]

            return entries

    async def list_due(
        self,
        now: float,
        *,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> list[ScheduledStep]:
        async with self._lock:
            due = [
                e for e in self._entries.values()
                if e.status.is_due_candidate
                and e.scheduled_at <= now
                and (workspace_id is None or e.workspace_id == workspace_id)
            ]
            due.sort(key=due_order)
            return due[:limit]

    async def count_by_status(self, campaign_id: str) -> dict[str, int]:
        async with self._lock:
            counts = Counter(
                e.status.value for e in self._entries.values() if e.campaign_id == campaign_id
            )
            return dict(counts)


__all__ = [
    "ScheduledFilter",
    "ScheduledStepStore",
    "InMemoryScheduledStepStore",
    "due_order",
    "check_unique",
]
