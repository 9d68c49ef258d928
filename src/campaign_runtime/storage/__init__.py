"""
Storage adapters for campaign runtime.

This module provides persistent storage implementations for:
- Campaigns (PostgresCampaignStore)
- Compiled steps (PostgresStepStore)
- Scheduled steps (PostgresScheduledStepStore)
- Approvals, paused contacts and learning signals
"""

from .factory import StoreBundle, create_pool, create_stores
from .postgres import (
    ASYNCPG_AVAILABLE,
    PostgresApprovalStore,
    PostgresCampaignStore,
    PostgresLearningStore,
    PostgresPauseStore,
    PostgresScheduledStepStore,
    PostgresStepStore,
)

__all__ = [
    "ASYNCPG_AVAILABLE",
    "StoreBundle",
    "create_pool",
    "create_stores",
    "PostgresCampaignStore",
    "PostgresStepStore",
    "PostgresScheduledStepStore",
    "PostgresApprovalStore",
    "PostgresPauseStore",
    "PostgresLearningStore",
]
