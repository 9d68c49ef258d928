"""
Campaign step store implementations.

Steps are only ever written as a whole set per campaign, so the store
exposes an atomic ``replace_for_campaign`` instead of per-row updates.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from .types import CampaignStep


class StepStore(ABC):
    """Abstract interface for compiled step persistence."""

    @abstractmethod
    async def replace_for_campaign(
        self,
        campaign_id: str,
        steps: list[CampaignStep],
    ) -> list[CampaignStep]:
        """Atomically discard every step of the campaign and store ``steps``."""
        ...

    @abstractmethod
    async def list_for_campaign(self, campaign_id: str) -> list[CampaignStep]:
        """List a campaign's steps ordered by order_index."""
        ...

    @abstractmethod
    async def get(self, step_id: str) -> CampaignStep | None:
        ...


class InMemoryStepStore(StepStore):
    """In-memory step store.

    Suitable for testing and single-process deployments.
    """

    def __init__(self):
        self._by_campaign: dict[str, list[CampaignStep]] = {}
        self._lock = asyncio.Lock()

    async def replace_for_campaign(
        self,
        campaign_id: str,
        steps: list[CampaignStep],
    ) -> list[CampaignStep]:
        for step in steps:
            if step.campaign_id != campaign_id:
                raise ValueError(
                    f"Step {step.step_id} belongs to campaign {step.campaign_id!r}, not {campaign_id!r}"
                )
        async with self._lock:
            self._by_campaign[campaign_id] = sorted(steps, key=lambda s: s.order_index)
            return list(self._by_campaign[campaign_id])

    async def list_for_campaign(self, campaign_id: str) -> list[CampaignStep]:
        async with self._lock:
            return list(self._by_campaign.get(campaign_id, []))

    async def get(self, step_id: str) -> CampaignStep | None:
        async with self._lock:
            for steps in self._by_campaign.values():
                for step in steps:
                    if step.step_id == step_id:
                        return step
            return None


__all__ = ["StepStore", "InMemoryStepStore"]
