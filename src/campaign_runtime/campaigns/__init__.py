"""
Campaign records and persistence.
"""

from .store import CampaignStore, InMemoryCampaignStore
from .types import Campaign, CampaignStatus, CampaignType

__all__ = [
    "Campaign",
    "CampaignStatus",
    "CampaignType",
    "CampaignStore",
    "InMemoryCampaignStore",
]
