"""
Campaign store implementations.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from .types import Campaign


class CampaignStore(ABC):
    """Abstract interface for campaign persistence."""

    @abstractmethod
    async def create(self, campaign: Campaign) -> Campaign:
        ...

    @abstractmethod
    async def get(self, campaign_id: str) -> Campaign | None:
        ...

    @abstractmethod
    async def update(self, campaign: Campaign) -> Campaign:
        ...

    @abstractmethod
    async def find_by_workflow(
        self,
        workflow_id: str,
        workspace_id: str | None = None,
    ) -> Campaign | None:
        """Find the campaign whose settings point back at ``workflow_id``."""
        ...


class InMemoryCampaignStore(CampaignStore):
    """In-memory campaign store.

    Suitable for testing and single-process deployments.
    """

    def __init__(self):
        self._campaigns: dict[str, Campaign] = {}
        self._lock = asyncio.Lock()

    async def create(self, campaign: Campaign) -> Campaign:
        async with self._lock:
            if campaign.id in self._campaigns:
                raise ValueError(f"Campaign {campaign.id} already exists")
            self._campaigns[campaign.id] = campaign
            return campaign

    async def get(self, campaign_id: str) -> Campaign | None:
        async with self._lock:
            return self._campaigns.get(campaign_id)

    async def update(self, campaign: Campaign) -> Campaign:
        async with self._lock:
            if campaign.id not in self._campaigns:
                raise ValueError(f"Campaign {campaign.id} not found")
            self._campaigns[campaign.id] = campaign
            return campaign

    async def find_by_workflow(
        self,
        workflow_id: str,
        workspace_id: str | None = None,
    ) -> Campaign | None:
        async with self._lock:
            matches = [
                c for c in self._campaigns.values()
                if c.workflow_id == workflow_id
                and (workspace_id is None or c.workspace_id == workspace_id)
            ]
            if not matches:
                return None
            return min(matches, key=lambda c: c.created_at)


__all__ = ["CampaignStore", "InMemoryCampaignStore"]
