"""
PostgreSQL storage adapters for campaign runtime.

This module provides persistent storage implementations using PostgreSQL:
- PostgresCampaignStore: Campaign records
- PostgresStepStore: Compiled campaign steps
- PostgresScheduledStepStore: Per-contact scheduled steps
- PostgresApprovalStore: Approval items
- PostgresPauseStore: Paused contacts
- PostgresLearningStore: Override learning signals

Requires asyncpg to be installed: pip install asyncpg
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from datetime import datetime, timezone
from typing import Any

try:
    import asyncpg
    ASYNCPG_AVAILABLE = True
except ImportError:
    asyncpg = None  # type: ignore
    ASYNCPG_AVAILABLE = False

from ..campaigns.store import CampaignStore
from ..campaigns.types import Campaign, CampaignStatus, CampaignType
from ..gate.store import ApprovalStore, LearningStore, PauseStore
from ..gate.types import ApprovalItem, ApprovalStatus, LearningSignal
from ..scheduling.store import ScheduledFilter, ScheduledStepStore, check_unique
from ..scheduling.types import ScheduledStatus, ScheduledStep
from ..steps.store import StepStore
from ..steps.types import CampaignStep, DelayUnit


def _require_asyncpg() -> None:
    """Raise ImportError if asyncpg is not available."""
    if not ASYNCPG_AVAILABLE:
        raise ImportError(
            "PostgreSQL storage requires asyncpg. "
            "Install with: pip install asyncpg"
        )


def _sanitize_table_name(name: str) -> str:
    """Ensure the table name is safe for SQL interpolation."""
    if not name:
        raise ValueError("table_name cannot be empty")
    if not re.fullmatch(r"[a-zA-Z0-9_]+", name):
        raise ValueError(f"Invalid table name: {name!r}")
    return name


def _to_timestamptz(value: Any) -> Any:
    """Convert epoch seconds floats into timezone-aware datetimes for TIMESTAMPTZ columns."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    return value


def _from_timestamptz(value: Any) -> Any:
    if value is not None and hasattr(value, "timestamp"):
        return value.timestamp()
    return value


def _json_field(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    return value if isinstance(value, dict) else json.loads(value)


class _PostgresTable:
    """Lazy DDL shared by every store."""

    TABLE_NAME = ""
    DDL = ""

    def __init__(
        self,
        pool: Any,  # asyncpg.Pool
        table_name: str | None = None,
    ):
        _require_asyncpg()
        self._pool = pool
        self._table = _sanitize_table_name(table_name or self.TABLE_NAME)
        self._ensured = False
        self._lock = asyncio.Lock()

    async def _ensure_table(self) -> None:
        """Create the table if it doesn't exist."""
        async with self._lock:
            if self._ensured:
                return

            ddl = self.DDL.format(table=self._table)
            async with self._pool.acquire() as conn:
                for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                    await conn.execute(stmt)

            self._ensured = True

    def _insert_sql(self, row: dict[str, Any]) -> str:
        columns = list(row.keys())
        placeholders = [f"${i+1}" for i in range(len(columns))]
        return f'''
        INSERT INTO "{self._table}" ({", ".join(columns)})
        VALUES ({", ".join(placeholders)})
        '''

    def _update_sql(self, row: dict[str, Any], key: str) -> tuple[str, list[Any]]:
        update_cols = [k for k in row.keys() if k != key]
        set_clause = ", ".join([f"{col} = ${i+2}" for i, col in enumerate(update_cols)])
        q = f'UPDATE "{self._table}" SET {set_clause} WHERE {key} = $1'
        return q, [row[key]] + [row[col] for col in update_cols]


# =============================================================================
# PostgresCampaignStore
# =============================================================================


class PostgresCampaignStore(_PostgresTable, CampaignStore):
    """PostgreSQL implementation of CampaignStore.

    ``workflow_id`` is denormalized out of settings so the back-reference
    lookup can use an index.
    """

    TABLE_NAME = "campaign_campaigns"
    DDL = '''
    CREATE TABLE IF NOT EXISTS "{table}" (
        id TEXT PRIMARY KEY,
        workspace_id TEXT,
        created_by TEXT,
        name TEXT NOT NULL DEFAULT '',
        description TEXT,
        campaign_type TEXT NOT NULL DEFAULT 'workflow',
        status TEXT NOT NULL DEFAULT 'draft',
        workflow_id TEXT,
        settings JSONB DEFAULT '{{}}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS "{table}_workflow_id_idx" ON "{table}" (workflow_id, workspace_id)
    '''

    def _campaign_to_row(self, campaign: Campaign) -> dict[str, Any]:
        return {
            "id": campaign.id,
            "workspace_id": campaign.workspace_id,
            "created_by": campaign.created_by,
            "name": campaign.name,
            "description": campaign.description,
            "campaign_type": campaign.campaign_type.value,
            "status": campaign.status.value,
            "workflow_id": campaign.workflow_id,
            "settings": json.dumps(campaign.settings),
            "created_at": _to_timestamptz(campaign.created_at),
            "updated_at": _to_timestamptz(campaign.updated_at),
        }

    def _row_to_campaign(self, row: Any) -> Campaign:
        return Campaign(
            id=row["id"],
            workspace_id=row["workspace_id"],
            created_by=row["created_by"],
            name=row["name"],
            description=row["description"],
            campaign_type=CampaignType(row["campaign_type"]),
            status=CampaignStatus(row["status"]),
            settings=_json_field(row["settings"]),
            created_at=_from_timestamptz(row["created_at"]),
            updated_at=_from_timestamptz(row["updated_at"]),
        )

    async def create(self, campaign: Campaign) -> Campaign:
        await self._ensure_table()

        row = self._campaign_to_row(campaign)
        async with self._pool.acquire() as conn:
            try:
                await conn.execute(self._insert_sql(row), *row.values())
            except asyncpg.UniqueViolationError:
                raise ValueError(f"Campaign {campaign.id} already exists")

        return campaign

    async def get(self, campaign_id: str) -> Campaign | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE id = $1'
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, campaign_id)
            return self._row_to_campaign(row) if row else None

    async def update(self, campaign: Campaign) -> Campaign:
        await self._ensure_table()

        q, values = self._update_sql(self._campaign_to_row(campaign), "id")
        async with self._pool.acquire() as conn:
            result = await conn.execute(q, *values)
            if result == "UPDATE 0":
                raise ValueError(f"Campaign {campaign.id} not found")

        return campaign

    async def find_by_workflow(
        self,
        workflow_id: str,
        workspace_id: str | None = None,
    ) -> Campaign | None:
        await self._ensure_table()

        if workspace_id is not None:
            q = f'''
            SELECT * FROM "{self._table}"
            WHERE workflow_id = $1 AND workspace_id = $2
            ORDER BY created_at ASC LIMIT 1
            '''
            params: list[Any] = [workflow_id, workspace_id]
        else:
            q = f'SELECT * FROM "{self._table}" WHERE workflow_id = $1 ORDER BY created_at ASC LIMIT 1'
            params = [workflow_id]

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, *params)
            return self._row_to_campaign(row) if row else None


# =============================================================================
# PostgresStepStore
# =============================================================================


class PostgresStepStore(_PostgresTable, StepStore):
    """PostgreSQL implementation of StepStore."""

    TABLE_NAME = "campaign_steps"
    DDL = '''
    CREATE TABLE IF NOT EXISTS "{table}" (
        step_id TEXT PRIMARY KEY,
        campaign_id TEXT NOT NULL,
        channel TEXT NOT NULL,
        label TEXT NOT NULL DEFAULT '',
        subject TEXT,
        content TEXT NOT NULL DEFAULT '',
        delay INTEGER NOT NULL DEFAULT 0,
        delay_unit TEXT NOT NULL DEFAULT 'days',
        order_index INTEGER NOT NULL,
        settings JSONB DEFAULT '{{}}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS "{table}_campaign_id_idx" ON "{table}" (campaign_id, order_index)
    '''

    def _step_to_row(self, step: CampaignStep) -> dict[str, Any]:
        return {
            "step_id": step.step_id,
            "campaign_id": step.campaign_id,
            "channel": step.channel,
            "label": step.label,
            "subject": step.subject,
            "content": step.content,
            "delay": step.delay,
            "delay_unit": step.delay_unit.value,
            "order_index": step.order_index,
            "settings": json.dumps(step.settings),
            "created_at": _to_timestamptz(step.created_at),
        }

    def _row_to_step(self, row: Any) -> CampaignStep:
        return CampaignStep(
            step_id=row["step_id"],
            campaign_id=row["campaign_id"],
            channel=row["channel"],
            label=row["label"],
            subject=row["subject"],
            content=row["content"],
            delay=row["delay"],
            delay_unit=DelayUnit.parse(row["delay_unit"]),
            order_index=row["order_index"],
            settings=_json_field(row["settings"]),
            created_at=_from_timestamptz(row["created_at"]),
        )

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
        await self._ensure_table()

        rows = [self._step_to_row(s) for s in steps]
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(f'DELETE FROM "{self._table}" WHERE campaign_id = $1', campaign_id)
                if rows:
                    await conn.executemany(self._insert_sql(rows[0]), [tuple(r.values()) for r in rows])

        return sorted(steps, key=lambda s: s.order_index)

    async def list_for_campaign(self, campaign_id: str) -> list[CampaignStep]:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE campaign_id = $1 ORDER BY order_index ASC'
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, campaign_id)
            return [self._row_to_step(row) for row in rows]

    async def get(self, step_id: str) -> CampaignStep | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE step_id = $1'
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, step_id)
            return self._row_to_step(row) if row else None


# =============================================================================
# PostgresScheduledStepStore
# =============================================================================


class PostgresScheduledStepStore(_PostgresTable, ScheduledStepStore):
    """PostgreSQL implementation of ScheduledStepStore.

    Table schema:
    - scheduled_id (TEXT PRIMARY KEY)
    - campaign_id, step_id, contact_id (TEXT, UNIQUE together)
    - status, channel (TEXT)
    - scheduled_at, executed_at (DOUBLE PRECISION epoch seconds)
    - priority, step_index, attempts (INTEGER)
    - content (JSONB)
    """

    TABLE_NAME = "campaign_scheduled_steps"
    DDL = '''
    CREATE TABLE IF NOT EXISTS "{table}" (
        scheduled_id TEXT PRIMARY KEY,
        campaign_id TEXT NOT NULL,
        step_id TEXT NOT NULL,
        contact_id TEXT NOT NULL,
        workspace_id TEXT,
        channel TEXT NOT NULL,
        step_index INTEGER NOT NULL DEFAULT 0,
        scheduled_at DOUBLE PRECISION NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        content JSONB DEFAULT '{{}}'::jsonb,
        confidence DOUBLE PRECISION,
        priority INTEGER NOT NULL DEFAULT 50,
        user_override BOOLEAN NOT NULL DEFAULT FALSE,
        override_reason TEXT,
        error TEXT,
        attempts INTEGER NOT NULL DEFAULT 0,
        approval_id TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        executed_at DOUBLE PRECISION,
        UNIQUE (campaign_id, step_id, contact_id)
    );
    CREATE INDEX IF NOT EXISTS "{table}_due_idx" ON "{table}" (status, scheduled_at);
    CREATE INDEX IF NOT EXISTS "{table}_campaign_id_idx" ON "{table}" (campaign_id)
    '''

    _ORDER = "ORDER BY priority ASC, scheduled_at ASC, step_index ASC"

    def _entry_to_row(self, entry: ScheduledStep) -> dict[str, Any]:
        return {
            "scheduled_id": entry.scheduled_id,
            "campaign_id": entry.campaign_id,
            "step_id": entry.step_id,
            "contact_id": entry.contact_id,
            "workspace_id": entry.workspace_id,
            "channel": entry.channel,
            "step_index": entry.step_index,
            "scheduled_at": entry.scheduled_at,
            "status": entry.status.value,
            "content": json.dumps(entry.content),
            "confidence": entry.confidence,
            "priority": entry.priority,
            "user_override": entry.user_override,
            "override_reason": entry.override_reason,
            "error": entry.error,
            "attempts": entry.attempts,
            "approval_id": entry.approval_id,
            "created_at": _to_timestamptz(entry.created_at),
            "updated_at": _to_timestamptz(entry.updated_at),
            "executed_at": entry.executed_at,
        }

    def _row_to_entry(self, row: Any) -> ScheduledStep:
        return ScheduledStep(
            scheduled_id=row["scheduled_id"],
            campaign_id=row["campaign_id"],
            step_id=row["step_id"],
            contact_id=row["contact_id"],
            workspace_id=row["workspace_id"],
            channel=row["channel"],
            step_index=row["step_index"],
            scheduled_at=row["scheduled_at"],
            status=ScheduledStatus(row["status"]),
            content=_json_field(row["content"]),
            confidence=row["confidence"],
            priority=row["priority"],
            user_override=row["user_override"],
            override_reason=row["override_reason"],
            error=row["error"],
            attempts=row["attempts"],
            approval_id=row["approval_id"],
            created_at=_from_timestamptz(row["created_at"]),
            updated_at=_from_timestamptz(row["updated_at"]),
            executed_at=row["executed_at"],
        )

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
        await self._ensure_table()

        rows = [self._entry_to_row(e) for e in entries]
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(f'DELETE FROM "{self._table}" WHERE campaign_id = $1', campaign_id)
                if rows:
                    await conn.executemany(self._insert_sql(rows[0]), [tuple(r.values()) for r in rows])

        return list(entries)

    async def get(self, scheduled_id: str) -> ScheduledStep | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE scheduled_id = $1'
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, scheduled_id)
            return self._row_to_entry(row) if row else None

    async def update(self, entry: ScheduledStep) -> ScheduledStep:
        await self._ensure_table()

        q, values = self._update_sql(self._entry_to_row(entry), "scheduled_id")
        async with self._pool.acquire() as conn:
            result = await conn.execute(q, *values)
            if result == "UPDATE 0":
                raise ValueError(f"Scheduled step {entry.scheduled_id} not found")

        return entry

    async def list(self, filter: ScheduledFilter | None = None) -> list[ScheduledStep]:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}"'
        params: list[Any] = []
        conditions: list[str] = []
        param_idx = 1

        if filter:
            for column in ("campaign_id", "contact_id", "workspace_id"):
                value = getattr(filter, column)
                if value:
                    conditions.append(f"{column} = ${param_idx}")
                    params.append(value)
                    param_idx += 1
            if filter.status:
                statuses = filter.status if isinstance(filter.status, set) else {filter.status}
                placeholders = [f"${param_idx + i}" for i in range(len(statuses))]
                conditions.append(f"status IN ({', '.join(placeholders)})")
                params.extend([s.value for s in statuses])
                param_idx += len(statuses)

        if conditions:
            q += " WHERE " + " AND ".join(conditions)
        q += f" {self._ORDER}"

        if filter:
            q += f" LIMIT ${param_idx} OFFSET ${param_idx + 1}"
            params.extend([filter.limit, filter.offset])

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, *params)
            return [self._row_to_entry(row) for row in rows]

    async def list_due(
        self,
        now: float,
        *,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> list[ScheduledStep]:
        await self._ensure_table()

        params: list[Any] = [
            ScheduledStatus.PENDING.value,
            ScheduledStatus.APPROVED.value,
            now,
        ]
        q = f'SELECT * FROM "{self._table}" WHERE status IN ($1, $2) AND scheduled_at <= $3'
        if workspace_id is not None:
            q += " AND workspace_id = $4"
            params.append(workspace_id)
        q += f" {self._ORDER} LIMIT ${len(params) + 1}"
        params.append(limit)

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, *params)
            return [self._row_to_entry(row) for row in rows]

    async def count_by_status(self, campaign_id: str) -> dict[str, int]:
        await self._ensure_table()

        q = f'SELECT status, COUNT(*) AS n FROM "{self._table}" WHERE campaign_id = $1 GROUP BY status'
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, campaign_id)
            return {row["status"]: row["n"] for row in rows}


# =============================================================================
# PostgresApprovalStore
# =============================================================================


class PostgresApprovalStore(_PostgresTable, ApprovalStore):
    """PostgreSQL implementation of ApprovalStore."""

    TABLE_NAME = "campaign_approvals"
    DDL = '''
    CREATE TABLE IF NOT EXISTS "{table}" (
        approval_id TEXT PRIMARY KEY,
        workspace_id TEXT,
        scheduled_step_id TEXT NOT NULL,
        campaign_id TEXT NOT NULL DEFAULT '',
        contact_id TEXT NOT NULL DEFAULT '',
        channel TEXT NOT NULL DEFAULT '',
        action_type TEXT NOT NULL DEFAULT 'campaign_step',
        confidence DOUBLE PRECISION NOT NULL DEFAULT 0,
        reasoning TEXT NOT NULL DEFAULT '',
        preview_subject TEXT,
        preview_content TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'pending',
        created_at DOUBLE PRECISION NOT NULL,
        expires_at DOUBLE PRECISION,
        resolved_at DOUBLE PRECISION,
        resolved_by TEXT,
        resolution_reason TEXT
    );
    CREATE INDEX IF NOT EXISTS "{table}_step_idx" ON "{table}" (scheduled_step_id);
    CREATE INDEX IF NOT EXISTS "{table}_pending_idx" ON "{table}" (status, workspace_id)
    '''

    async def create(self, item: ApprovalItem) -> ApprovalItem:
        await self._ensure_table()

        row = item.to_dict()
        async with self._pool.acquire() as conn:
            try:
                await conn.execute(self._insert_sql(row), *row.values())
            except asyncpg.UniqueViolationError:
                raise ValueError(f"Approval {item.approval_id} already exists")

        return item

    async def get(self, approval_id: str, workspace_id: str | None = None) -> ApprovalItem | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE approval_id = $1'
        params: list[Any] = [approval_id]
        if workspace_id is not None:
            q += " AND workspace_id = $2"
            params.append(workspace_id)

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, *params)
            return ApprovalItem.from_dict(dict(row)) if row else None

    async def update(self, item: ApprovalItem) -> ApprovalItem:
        await self._ensure_table()

        q, values = self._update_sql(item.to_dict(), "approval_id")
        async with self._pool.acquire() as conn:
            result = await conn.execute(q, *values)
            if result == "UPDATE 0":
                raise ValueError(f"Approval {item.approval_id} not found")

        return item

    async def get_for_step(self, scheduled_step_id: str) -> ApprovalItem | None:
        await self._ensure_table()

        q = f'''
        SELECT * FROM "{self._table}"
        WHERE scheduled_step_id = $1
        ORDER BY created_at DESC LIMIT 1
        '''
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, scheduled_step_id)
            return ApprovalItem.from_dict(dict(row)) if row else None

    async def list_pending(self, workspace_id: str | None = None) -> list[ApprovalItem]:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE status = $1'
        params: list[Any] = [ApprovalStatus.PENDING.value]
        if workspace_id is not None:
            q += " AND workspace_id = $2"
            params.append(workspace_id)
        q += " ORDER BY created_at ASC"

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, *params)
            return [ApprovalItem.from_dict(dict(row)) for row in rows]

    async def list_expired(self, now: float) -> list[ApprovalItem]:
        await self._ensure_table()

        q = f'''
        SELECT * FROM "{self._table}"
        WHERE status = $1 AND expires_at IS NOT NULL AND expires_at < $2
        '''
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, ApprovalStatus.PENDING.value, now)
            return [ApprovalItem.from_dict(dict(row)) for row in rows]


# =============================================================================
# PostgresPauseStore
# =============================================================================


class PostgresPauseStore(_PostgresTable, PauseStore):
    """PostgreSQL implementation of PauseStore."""

    TABLE_NAME = "campaign_paused_contacts"
    DDL = '''
    CREATE TABLE IF NOT EXISTS "{table}" (
        workspace_id TEXT NOT NULL DEFAULT '',
        contact_id TEXT NOT NULL,
        reason TEXT,
        paused_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (workspace_id, contact_id)
    )
    '''

    async def pause(self, workspace_id: str | None, contact_id: str, reason: str | None = None) -> None:
        await self._ensure_table()

        q = f'''
        INSERT INTO "{self._table}" (workspace_id, contact_id, reason, paused_at)
        VALUES ($1, $2, $3, $4)
        ON CONFLICT (workspace_id, contact_id) DO UPDATE SET reason = EXCLUDED.reason, paused_at = EXCLUDED.paused_at
        '''
        async with self._pool.acquire() as conn:
            await conn.execute(q, workspace_id or "", contact_id, reason, _to_timestamptz(time.time()))

    async def resume(self, workspace_id: str | None, contact_id: str) -> bool:
        await self._ensure_table()

        q = f'DELETE FROM "{self._table}" WHERE workspace_id = $1 AND contact_id = $2'
        async with self._pool.acquire() as conn:
            result = await conn.execute(q, workspace_id or "", contact_id)
            return result != "DELETE 0"

    async def is_paused(self, workspace_id: str | None, contact_id: str) -> bool:
        await self._ensure_table()

        q = f'SELECT 1 FROM "{self._table}" WHERE workspace_id = $1 AND contact_id = $2'
        async with self._pool.acquire() as conn:
            return await conn.fetchval(q, workspace_id or "", contact_id) is not None

    async def list_paused(self, workspace_id: str | None) -> list[str]:
        await self._ensure_table()

        q = f'SELECT contact_id FROM "{self._table}" WHERE workspace_id = $1 ORDER BY paused_at ASC'
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, workspace_id or "")
            return [row["contact_id"] for row in rows]


# =============================================================================
# PostgresLearningStore
# =============================================================================


class PostgresLearningStore(_PostgresTable, LearningStore):
    """PostgreSQL implementation of LearningStore."""

    TABLE_NAME = "campaign_learning_signals"
    DDL = '''
    CREATE TABLE IF NOT EXISTS "{table}" (
        workspace_id TEXT NOT NULL DEFAULT '',
        key TEXT NOT NULL,
        reason TEXT NOT NULL,
        count INTEGER NOT NULL DEFAULT 1,
        last_action_id TEXT,
        last_channel TEXT,
        updated_at DOUBLE PRECISION NOT NULL,
        PRIMARY KEY (workspace_id, key)
    )
    '''

    def _row_to_signal(self, row: Any) -> LearningSignal:
        return LearningSignal(
            workspace_id=row["workspace_id"] or None,
            key=row["key"],
            reason=row["reason"],
            count=row["count"],
            last_action_id=row["last_action_id"],
            last_channel=row["last_channel"],
            updated_at=row["updated_at"],
        )

    async def record(self, signal: LearningSignal) -> LearningSignal:
        await self._ensure_table()

        q = f'''
        INSERT INTO "{self._table}" (workspace_id, key, reason, count, last_action_id, last_channel, updated_at)
        VALUES ($1, $2, $3, 1, $4, $5, $6)
        ON CONFLICT (workspace_id, key) DO UPDATE SET
            reason = EXCLUDED.reason,
            count = "{self._table}".count + 1,
            last_action_id = EXCLUDED.last_action_id,
            last_channel = EXCLUDED.last_channel,
            updated_at = EXCLUDED.updated_at
        RETURNING *
        '''
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                q,
                signal.workspace_id or "",
                signal.key,
                signal.reason,
                signal.last_action_id,
                signal.last_channel,
                signal.updated_at,
            )
            return self._row_to_signal(row)

    async def get(self, workspace_id: str | None, key: str) -> LearningSignal | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE workspace_id = $1 AND key = $2'
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, workspace_id or "", key)
            return self._row_to_signal(row) if row else None


__all__ = [
    "ASYNCPG_AVAILABLE",
    "PostgresCampaignStore",
    "PostgresStepStore",
    "PostgresScheduledStepStore",
    "PostgresApprovalStore",
    "PostgresPauseStore",
    "PostgresLearningStore",
]
