"""
Store construction from StorageConfig.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..campaigns.store import CampaignStore, InMemoryCampaignStore
from ..config.storage import StorageConfig
from ..gate.store import (
    ApprovalStore,
    InMemoryApprovalStore,
    InMemoryLearningStore,
    InMemoryPauseStore,
    LearningStore,
    PauseStore,
)
from ..scheduling.store import InMemoryScheduledStepStore, ScheduledStepStore
from ..steps.store import InMemoryStepStore, StepStore
from .postgres import (
    PostgresApprovalStore,
    PostgresCampaignStore,
    PostgresLearningStore,
    PostgresPauseStore,
    PostgresScheduledStepStore,
    PostgresStepStore,
    _require_asyncpg,
    asyncpg,
)


@dataclass
class StoreBundle:
    """Every store the runtime needs, sharing one backend."""
    campaigns: CampaignStore = field(default_factory=InMemoryCampaignStore)
    steps: StepStore = field(default_factory=InMemoryStepStore)
    scheduled: ScheduledStepStore = field(default_factory=InMemoryScheduledStepStore)
    approvals: ApprovalStore = field(default_factory=InMemoryApprovalStore)
    pauses: PauseStore = field(default_factory=InMemoryPauseStore)
    learning: LearningStore = field(default_factory=InMemoryLearningStore)
    pool: Any = None  # asyncpg.Pool

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None


async def create_pool(config: StorageConfig) -> Any:
    """Open an asyncpg pool for the configured DSN."""
    _require_asyncpg()
    return await asyncpg.create_pool(
        dsn=config.pg_dsn,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
    )


async def create_stores(config: StorageConfig | None = None, *, pool: Any = None) -> StoreBundle:
    """Build the stores for ``config.backend``.

    For the postgres backend a pool is opened unless one is passed in;
    tables are named ``{table_prefix}{name}``.
    """
    config = config or StorageConfig()
    if config.backend == "memory":
        return StoreBundle()

    pool = pool or await create_pool(config)
    prefix = config.table_prefix
    return StoreBundle(
        campaigns=PostgresCampaignStore(pool, f"{prefix}campaigns"),
        steps=PostgresStepStore(pool, f"{prefix}steps"),
        scheduled=PostgresScheduledStepStore(pool, f"{prefix}scheduled_steps"),
        approvals=PostgresApprovalStore(pool, f"{prefix}approvals"),
        pauses=PostgresPauseStore(pool, f"{prefix}paused_contacts"),
        learning=PostgresLearningStore(pool, f"{prefix}learning_signals"),
        pool=pool,
    )


__all__ = ["StoreBundle", "create_pool", "create_stores"]
