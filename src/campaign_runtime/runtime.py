"""
Campaign runtime - the facade over deployment and the execution gate.

This module provides the CampaignRuntime that wires settings, stores,
the compiler, the scheduler, the deployment orchestrator and the
execution gate together behind one API.
"""

from __future__ import annotations

from typing import Any

from .config import Settings
from .deployment import (
    ComplianceChecker,
    ContactSource,
    DeploymentOrchestrator,
    DeploymentResult,
    LiveSearchTrigger,
    WorkflowSource,
)
from .events import ActivitySink, NullActivitySink
from .gate import (
    ApprovalDecision,
    ApprovalItem,
    ExecutionGate,
    OverrideType,
    ProcessSummary,
    StepSender,
)
from .logging import StructuredLogger
from .scheduling import ScheduledStep, StepScheduler
from .steps import CampaignStep
from .storage import StoreBundle, create_stores
from .workflow import GraphCompiler


class CampaignRuntime:
    """The main entry point for deploying and running campaigns.

    Example:
        ```python
        from campaign_runtime import CampaignRuntime, Settings

        runtime = await CampaignRuntime.create(
            workflows=my_workflow_source,
            contacts=my_contact_source,
            settings=Settings.from_env(),
        )

        result = await runtime.deploy("wf_1", ["c_1", "c_2"], actor_id="u_1", workspace_id="ws_1")
        summary = await runtime.process_due(sender)
        ```
    """

    def __init__(
        self,
        orchestrator: DeploymentOrchestrator,
        gate: ExecutionGate,
        stores: StoreBundle,
        *,
        settings: Settings | None = None,
        sink: ActivitySink | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._orchestrator = orchestrator
        self._gate = gate
        self._stores = stores
        self._settings = settings or Settings()
        self._sink = sink or NullActivitySink()
        self._logger = logger

    @classmethod
    async def create(
        cls,
        *,
        workflows: WorkflowSource,
        contacts: ContactSource,
        settings: Settings | None = None,
        stores: StoreBundle | None = None,
        compliance: ComplianceChecker | None = None,
        live_search: LiveSearchTrigger | None = None,
        sink: ActivitySink | None = None,
        logger: StructuredLogger | None = None,
    ) -> CampaignRuntime:
        """Create a runtime with stores built from ``settings.storage``."""
        settings = settings or Settings()
        logger = logger or StructuredLogger(
            name=settings.logging.name,
            level=settings.logging.level,
            json_output=settings.logging.format == "json",
        )
        stores = stores or await create_stores(settings.storage)
        sink = sink or NullActivitySink()

        orchestrator = DeploymentOrchestrator(
            workflows,
            contacts,
            stores.campaigns,
            stores.steps,
            stores.scheduled,
            compiler=GraphCompiler(settings.compiler, logger=logger),
            scheduler=StepScheduler(settings.scheduler, logger=logger),
            compliance=compliance,
            live_search=live_search,
            approvals=stores.approvals,
            sink=sink,
            logger=logger,
        )
        gate = ExecutionGate(
            stores.scheduled,
            stores.approvals,
            stores.pauses,
            stores.learning,
            config=settings.gate,
            sink=sink,
            logger=logger,
        )
        return cls(orchestrator, gate, stores, settings=settings, sink=sink, logger=logger)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def stores(self) -> StoreBundle:
        return self._stores

    @property
    def gate(self) -> ExecutionGate:
        return self._gate

    @property
    def orchestrator(self) -> DeploymentOrchestrator:
        return self._orchestrator

    # === Deployment ===

    async def compile(self, workflow_id: str) -> list[CampaignStep]:
        return await self._orchestrator.compile(workflow_id)

    async def schedule(
        self,
        campaign_id: str,
        contact_ids: list[str],
        *,
        base_time: float | None = None,
    ) -> list[ScheduledStep]:
        return await self._orchestrator.schedule(campaign_id, contact_ids, base_time=base_time)

    async def deploy(
        self,
        workflow_id: str,
        contact_ids: list[str] | None,
        *,
        actor_id: str | None = None,
        workspace_id: str | None = None,
        base_time: float | None = None,
    ) -> DeploymentResult:
        return await self._orchestrator.deploy(
            workflow_id, contact_ids, actor_id, workspace_id, base_time=base_time
        )

    async def execution_status(self, campaign_id: str) -> dict[str, Any]:
        return await self._orchestrator.execution_status(campaign_id)

    # === Execution gate ===

    async def resolve(
        self,
        action_id: str,
        decision: ApprovalDecision | str,
        reason: str | None = None,
        *,
        workspace_id: str | None = None,
        resolved_by: str | None = None,
    ) -> ScheduledStep:
        return await self._gate.resolve(
            action_id, decision, reason, workspace_id=workspace_id, resolved_by=resolved_by
        )

    async def override(
        self,
        action_id: str,
        override_type: OverrideType | str,
        reason: str | None = None,
        *,
        learn: bool = False,
        workspace_id: str | None = None,
    ) -> ScheduledStep:
        return await self._gate.override(
            action_id, override_type, reason, learn=learn, workspace_id=workspace_id
        )

    async def pause(self, contact_id: str, *, workspace_id: str | None = None, reason: str | None = None) -> None:
        await self._gate.pause(contact_id, workspace_id=workspace_id, reason=reason)

    async def resume(self, contact_id: str, *, workspace_id: str | None = None) -> list[ScheduledStep]:
        return await self._gate.resume(contact_id, workspace_id=workspace_id)

    async def retry(self, scheduled_id: str, *, workspace_id: str | None = None) -> ScheduledStep:
        return await self._gate.retry(scheduled_id, workspace_id=workspace_id)

    async def update_confidence(
        self,
        scheduled_id: str,
        confidence: float,
        *,
        workspace_id: str | None = None,
    ) -> ScheduledStep:
        return await self._gate.update_confidence(scheduled_id, confidence, workspace_id=workspace_id)

    async def process_due(
        self,
        sender: StepSender,
        *,
        now: float | None = None,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> ProcessSummary:
        """Expire stale approvals, then gate and send every due step."""
        await self._gate.expire_approvals(now)
        return await self._gate.process_due(sender, now=now, workspace_id=workspace_id, limit=limit)

    async def approval_queue(self, workspace_id: str | None = None) -> list[tuple[ApprovalItem, ScheduledStep]]:
        return await self._gate.queue(workspace_id)

    async def close(self) -> None:
        """Close the activity sink and any database pool."""
        await self._sink.close()
        await self._stores.close()


__all__ = ["CampaignRuntime"]
