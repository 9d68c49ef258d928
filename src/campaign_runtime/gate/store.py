"""
Execution gate stores.

This module provides the stores the execution gate depends on, all keyed
by workspace so several gate instances can share one backend:
- ApprovalStore: approval items
- PauseStore: paused contacts
- LearningStore: override learning signals
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod

from .types import ApprovalItem, ApprovalStatus, LearningSignal


# =============================================================================
# Approvals
# =============================================================================


class ApprovalStore(ABC):
    """Abstract interface for approval item persistence."""

    @abstractmethod
    async def create(self, item: ApprovalItem) -> ApprovalItem:
        ...

    @abstractmethod
    async def get(self, approval_id: str, workspace_id: str | None = None) -> ApprovalItem | None:
        """Get an item; when ``workspace_id`` is given it must match."""
        ...

    @abstractmethod
    async def update(self, item: ApprovalItem) -> ApprovalItem:
        ...

    @abstractmethod
    async def get_for_step(self, scheduled_step_id: str) -> ApprovalItem | None:
        """Most recent item for a scheduled step."""
        ...

    @abstractmethod
    async def list_pending(self, workspace_id: str | None = None) -> list[ApprovalItem]:
        ...

    @abstractmethod
    async def list_expired(self, now: float) -> list[ApprovalItem]:
        """Pending items whose expiry has passed."""
        ...


class InMemoryApprovalStore(ApprovalStore):
    """In-memory approval store.

    Suitable for testing and single-process deployments.
    """

    def __init__(self):
        self._items: dict[str, ApprovalItem] = {}
        self._lock = asyncio.Lock()

    async def create(self, item: ApprovalItem) -> ApprovalItem:
        async with self._lock:
            if item.approval_id in self._items:
                raise ValueError(f"Approval {item.approval_id} already exists")
            self._items[item.approval_id] = item
            return item

    async def get(self, approval_id: str, workspace_id: str | None = None) -> ApprovalItem | None:
        async with self._lock:
            item = self._items.get(approval_id)
            if item and workspace_id is not None and item.workspace_id != workspace_id:
                return None
            return item

    async def update(self, item: ApprovalItem) -> ApprovalItem:
        async with self._lock:
            if item.approval_id not in self._items:
                raise ValueError(f"Approval {item.approval_id} not found")
            self._items[item.approval_id] = item
            return item

    async def get_for_step(self, scheduled_step_id: str) -> ApprovalItem | None:
        async with self._lock:
            matches = [i for i in self._items.values() if i.scheduled_step_id == scheduled_step_id]
            if not matches:
                return None
            return max(matches, key=lambda i: i.created_at)

    async def list_pending(self, workspace_id: str | None = None) -> list[ApprovalItem]:
        async with self._lock:
            return [
                i for i in self._items.values()
                if i.status == ApprovalStatus.PENDING
                and (workspace_id is None or i.workspace_id == workspace_id)
            ]

    async def list_expired(self, now: float) -> list[ApprovalItem]:
        async with self._lock:
            return [
                i for i in self._items.values()
                if i.status == ApprovalStatus.PENDING and i.is_expired(now)
            ]


# =============================================================================
# Paused contacts
# =============================================================================


class PauseStore(ABC):
    """Abstract interface for the paused-contact set."""

    @abstractmethod
    async def pause(self, workspace_id: str | None, contact_id: str, reason: str | None = None) -> None:
        ...

    @abstractmethod
    async def resume(self, workspace_id: str | None, contact_id: str) -> bool:
        """Resume a contact. Returns False if it was not paused."""
        ...

    @abstractmethod
    async def is_paused(self, workspace_id: str | None, contact_id: str) -> bool:
        ...

    @abstractmethod
    async def list_paused(self, workspace_id: str | None) -> list[str]:
        ...


class InMemoryPauseStore(PauseStore):
    """In-memory paused-contact set."""

    def __init__(self):
        self._paused: dict[tuple[str | None, str], tuple[float, str | None]] = {}
        self._lock = asyncio.Lock()

    async def pause(self, workspace_id: str | None, contact_id: str, reason: str | None = None) -> None:
        async with self._lock:
            self._paused[(workspace_id, contact_id)] = (time.time(), reason)

    async def resume(self, workspace_id: str | None, contact_id: str) -> bool:
        async with self._lock:
            return self._paused.pop((workspace_id, contact_id), None) is not None

    async def is_paused(self, workspace_id: str | None, contact_id: str) -> bool:
        async with self._lock:
            return (workspace_id, contact_id) in self._paused

    async def list_paused(self, workspace_id: str | None) -> list[str]:
        async with self._lock:
            return [cid for (ws, cid) in self._paused if ws == workspace_id]


# =============================================================================
# Learning signals
# =============================================================================


class LearningStore(ABC):
    """Abstract interface for override learning signals."""

    @abstractmethod
    async def record(self, signal: LearningSignal) -> LearningSignal:
        """Upsert by (workspace_id, key); repeated signals bump ``count``."""
        ...

    @abstractmethod
    async def get(self, workspace_id: str | None, key: str) -> LearningSignal | None:
        ...


class InMemoryLearningStore(LearningStore):
    """In-memory learning signal store."""

    def __init__(self):
        self._signals: dict[tuple[str | None, str], LearningSignal] = {}
        self._lock = asyncio.Lock()

    async def record(self, signal: LearningSignal) -> LearningSignal:
        async with self._lock:
            key = (signal.workspace_id, signal.key)
            existing = self._signals.get(key)
            if existing is not None:
                signal.count = existing.count + 1
            self._signals[key] = signal
            return signal

    async def get(self, workspace_id: str | None, key: str) -> LearningSignal | None:
        async with self._lock:
            return self._signals.get((workspace_id, key))


__all__ = [
    "ApprovalStore",
    "InMemoryApprovalStore",
    "PauseStore",
    "InMemoryPauseStore",
    "LearningStore",
    "InMemoryLearningStore",
]
