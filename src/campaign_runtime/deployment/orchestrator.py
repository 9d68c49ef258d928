"""
Deployment orchestrator.

This module drives a workflow from authored graph to scheduled campaign:
resolve or create the campaign, detect live-search entry nodes, run the
compliance pre-check, compile and schedule, and report progress to the
activity sink.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Any

from ..campaigns.store import CampaignStore
from ..campaigns.types import Campaign, CampaignStatus, CampaignType
from ..context import DeploymentContext
from ..errors import (
    CampaignNotFound,
    CampaignRuntimeError,
    ComplianceRejected,
    EmptyWorkflow,
    LiveSearchFailed,
    NoContactsFound,
    NoContactsProvided,
    NoStepsToSchedule,
)
from ..events import ActivityAction, ActivityEvent, ActivitySink, ActivityType, emit_safely
from ..gate.store import ApprovalStore
from ..hashing import steps_fingerprint
from ..logging import StructuredLogger, get_logger, timed
from ..scheduling.scheduler import StepScheduler
from ..scheduling.store import ScheduledStepStore
from ..scheduling.types import Contact, ScheduledStep
from ..steps.store import StepStore
from ..steps.types import CampaignStep
from ..workflow.compiler import GraphCompiler, find_entry_node
from ..workflow.types import Workflow, WorkflowEdge, WorkflowNode
from .types import (
    ComplianceChecker,
    ContactSource,
    DeploymentResult,
    LiveSearchConfig,
    LiveSearchTrigger,
    WorkflowSource,
)


class DeploymentOrchestrator:
    """Top-level driver for compile, schedule and deploy.

    Every step is sequential and stops at the first failure. Side effects
    made before the failure (for example a freshly created campaign) are
    kept; deploying the same workflow again reuses that campaign.
    """

    def __init__(
        self,
        workflows: WorkflowSource,
        contacts: ContactSource,
        campaigns: CampaignStore,
        steps: StepStore,
        scheduled: ScheduledStepStore,
        *,
        compiler: GraphCompiler | None = None,
        scheduler: StepScheduler | None = None,
        compliance: ComplianceChecker | None = None,
        live_search: LiveSearchTrigger | None = None,
        approvals: ApprovalStore | None = None,
        sink: ActivitySink | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._workflows = workflows
        self._contacts = contacts
        self._campaigns = campaigns
        self._steps = steps
        self._scheduled = scheduled
        self._logger = logger or get_logger()
        self._compiler = compiler or GraphCompiler(logger=self._logger)
        self._scheduler = scheduler or StepScheduler(logger=self._logger)
        self._compliance = compliance
        self._live_search = live_search
        self._approvals = approvals
        self._sink = sink

    # === Campaign resolution ===

    async def resolve_campaign(
        self,
        workflow: Workflow,
        ctx: DeploymentContext,
        *,
        is_live_search: bool = False,
    ) -> Campaign:
        """Find the workflow's campaign through its back-reference, or create it.

        An existing campaign whose live-search flag no longer matches the
        entry node is switched to the matching campaign type.
        """
        campaign = await self._campaigns.find_by_workflow(workflow.id, ctx.workspace_id)
        if campaign is not None:
            if campaign.is_live_search != is_live_search:
                campaign = await self._campaigns.update(
                    replace(
                        campaign,
                        campaign_type=CampaignType.LINKEDIN_SEARCH if is_live_search else CampaignType.WORKFLOW,
                        settings={**campaign.settings, "is_live_search": is_live_search},
                        updated_at=time.time(),
                    )
                )
                self._logger.info(
                    "Switched campaign type",
                    campaign_id=campaign.id,
                    campaign_type=campaign.campaign_type.value,
                )
            return campaign

        campaign = Campaign(
            workspace_id=ctx.workspace_id,
            created_by=ctx.actor_id,
            name=workflow.name or f"Workflow {workflow.id}",
            description=workflow.description,
            campaign_type=CampaignType.LINKEDIN_SEARCH if is_live_search else CampaignType.WORKFLOW,
            status=CampaignStatus.ACTIVE if is_live_search else CampaignStatus.DRAFT,
            settings={"workflow_id": workflow.id, "is_live_search": is_live_search},
        )
        campaign = await self._campaigns.create(campaign)
        self._logger.info("Created campaign for workflow", campaign_id=campaign.id, workflow_id=workflow.id)
        return campaign

    async def _load_graph(self, workflow_id: str) -> tuple[Workflow, list[WorkflowNode], list[WorkflowEdge]]:
        workflow = await self._workflows.fetch_workflow(workflow_id) or Workflow(id=workflow_id)
        nodes = await self._workflows.fetch_nodes(workflow_id)
        edges = await self._workflows.fetch_edges(workflow_id)
        return workflow, nodes, edges

    # === Compile ===

    async def compile(
        self,
        workflow_id: str,
        ctx: DeploymentContext | None = None,
    ) -> list[CampaignStep]:
        """Compile a workflow and replace its campaign's steps.

        Raises:
            EmptyWorkflow: If the workflow has no nodes
        """
        ctx = (ctx or DeploymentContext()).with_workflow(workflow_id)
        workflow, nodes, edges = await self._load_graph(workflow_id)
        if not nodes:
            raise EmptyWorkflow(context=ctx.error_context("compile"))

        entry = find_entry_node(nodes, edges)
        campaign = await self.resolve_campaign(
            workflow, ctx, is_live_search=bool(entry and entry.is_live_search)
        )
        return await self._compile_into(campaign, nodes, edges, ctx.with_campaign(campaign.id))

    async def _compile_into(
        self,
        campaign: Campaign,
        nodes: list[WorkflowNode],
        edges: list[WorkflowEdge],
        ctx: DeploymentContext,
    ) -> list[CampaignStep]:
        steps = self._compiler.compile(nodes, edges, campaign.id, workflow_id=ctx.workflow_id)
        return await self._store_steps(campaign.id, steps)

    async def _store_steps(self, campaign_id: str, steps: list[CampaignStep]) -> list[CampaignStep]:
        previous = await self._steps.list_for_campaign(campaign_id)
        stored = await self._steps.replace_for_campaign(campaign_id, steps)
        self._logger.info(
            "Stored compiled steps",
            campaign_id=campaign_id,
            step_count=len(stored),
            fingerprint=steps_fingerprint(stored),
            changed=not previous or steps_fingerprint(previous) != steps_fingerprint(stored),
        )
        return stored

    # === Schedule ===

    async def schedule(
        self,
        campaign_id: str,
        contact_ids: list[str],
        *,
        base_time: float | None = None,
        ctx: DeploymentContext | None = None,
    ) -> list[ScheduledStep]:
        """Schedule a compiled campaign for contacts and activate it.

        Raises:
            CampaignNotFound: If the campaign does not exist
            NoStepsToSchedule: If the campaign has no compiled steps
            NoContactsFound: If none of the contact ids resolve
        """
        ctx = (ctx or DeploymentContext()).with_campaign(campaign_id)
        campaign = await self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id, context=ctx.error_context("schedule"))

        steps = await self._steps.list_for_campaign(campaign_id)
        if not steps:
            raise NoStepsToSchedule(context=ctx.error_context("schedule"))

        contacts = await self._contacts.fetch_contacts(list(contact_ids)) if contact_ids else []
        if not contacts:
            raise NoContactsFound(context=ctx.error_context("schedule"))

        return await self._schedule_into(campaign, steps, contacts, base_time)

    async def _schedule_into(
        self,
        campaign: Campaign,
        steps: list[CampaignStep],
        contacts: list[Contact],
        base_time: float | None,
    ) -> list[ScheduledStep]:
        entries = self._scheduler.schedule(
            steps,
            contacts,
            campaign_id=campaign.id,
            base_time=base_time,
            workspace_id=campaign.workspace_id,
        )
        await self._retire_approvals(campaign, "Schedule replaced")
        stored = await self._scheduled.replace_for_campaign(campaign.id, entries)
        if campaign.status != CampaignStatus.ACTIVE:
            await self._campaigns.update(campaign.with_status(CampaignStatus.ACTIVE))
        return stored

    async def _retire_approvals(self, campaign: Campaign, reason: str) -> int:
        """Reject the campaign's pending approval items before its schedule is replaced."""
        if self._approvals is None:
            return 0
        pending = [
            i for i in await self._approvals.list_pending(campaign.workspace_id)
            if i.campaign_id == campaign.id
        ]
        for item in pending:
            await self._approvals.update(item.reject(reason))
        if pending:
            self._logger.info("Retired pending approvals", campaign_id=campaign.id, count=len(pending))
        return len(pending)

    # === Deploy ===

    async def deploy(
        self,
        workflow_id: str,
        contact_ids: list[str] | None,
        actor_id: str | None = None,
        workspace_id: str | None = None,
        *,
        base_time: float | None = None,
    ) -> DeploymentResult:
        """Deploy a workflow as a campaign.

        Raises:
            EmptyWorkflow, NoContactsProvided, NoContactsFound,
            ComplianceRejected, LiveSearchFailed
        """
        ctx = DeploymentContext(workspace_id=workspace_id, actor_id=actor_id, workflow_id=workflow_id)

        with self._logger.trace_context(trace_id=ctx.trace_id, operation="deploy", **ctx.log_fields()):
            await self._progress(ctx, ActivityType.STARTED, 10, "Deploying workflow")
            try:
                with timed() as timer:
                    result = await self._deploy(ctx, list(contact_ids or []), base_time)
            except ComplianceRejected:
                raise
            except CampaignRuntimeError as e:
                self._logger.log_error(e, "Workflow deployment failed")
                await emit_safely(
                    self._sink,
                    ActivityEvent.from_context(
                        ctx,
                        ActivityType.FAILED,
                        ActivityAction.WORKFLOW_DEPLOY_FAILED,
                        progress=100,
                        message=e.message,
                        data={"error": e.to_dict()},
                    ),
                    self._logger,
                )
                raise

            self._logger.info(
                "Workflow deployed",
                campaign_id=result.campaign_id,
                scheduled_count=result.scheduled_count,
                is_live_search=result.is_live_search,
                duration_ms=timer.elapsed_ms,
            )
            await emit_safely(
                self._sink,
                ActivityEvent.from_context(
                    ctx.with_campaign(result.campaign_id),
                    ActivityType.COMPLETED,
                    ActivityAction.WORKFLOW_DEPLOYED,
                    progress=100,
                    message="Workflow deployed",
                    data=result.to_dict(),
                ),
                self._logger,
            )
            return result

    async def _deploy(
        self,
        ctx: DeploymentContext,
        contact_ids: list[str],
        base_time: float | None,
    ) -> DeploymentResult:
        workflow, nodes, edges = await self._load_graph(ctx.workflow_id or "")
        entry = find_entry_node(nodes, edges)
        is_live = bool(entry and entry.is_live_search)

        campaign = await self.resolve_campaign(workflow, ctx, is_live_search=is_live)
        ctx = ctx.with_campaign(campaign.id)

        if is_live:
            return await self._deploy_live_search(campaign, entry, ctx)

        if not contact_ids:
            raise NoContactsProvided(context=ctx.error_context("deploy"))
        if not nodes:
            raise EmptyWorkflow(context=ctx.error_context("deploy"))

        contacts = await self._contacts.fetch_contacts(contact_ids)
        if not contacts:
            raise NoContactsFound(context=ctx.error_context("deploy"))

        steps = self._compiler.compile(nodes, edges, campaign.id, workflow_id=ctx.workflow_id)
        await self._progress(ctx, ActivityType.PROGRESS, 30, "Running compliance check")

        excluded: list[str] = []
        warnings: list[str] = []
        if self._compliance is not None:
            report = await self._compliance.check(ctx.actor_id, ctx.workflow_id or "", contacts, steps)
            warnings = list(report.warnings)
            if not report.can_proceed:
                self._logger.warning(
                    "Compliance check rejected deployment",
                    issue_count=len(report.issues),
                    codes=[i.code for i in report.issues],
                )
                await emit_safely(
                    self._sink,
                    ActivityEvent.from_context(
                        ctx,
                        ActivityType.FAILED,
                        ActivityAction.COMPLIANCE_FAILED,
                        progress=100,
                        message="Compliance check failed",
                        data=report.to_dict(),
                    ),
                    self._logger,
                )
                raise ComplianceRejected(
                    issues=report.issues,
                    warnings=report.warnings,
                    context=ctx.error_context("compliance"),
                )
            opted_out = report.opted_out_contacts
            if opted_out:
                excluded = sorted(c.id for c in contacts if c.id in opted_out)
                contacts = [c for c in contacts if c.id not in opted_out]
                if not contacts:
                    raise NoContactsFound(
                        "Every contact has opted out",
                        context=ctx.error_context("compliance"),
                    )

        steps = await self._store_steps(campaign.id, steps)
        entries = await self._schedule_into(campaign, steps, contacts, base_time)

        return DeploymentResult(
            campaign_id=campaign.id,
            scheduled_count=len(entries),
            is_live_search=False,
            step_count=len(steps),
            excluded_contacts=excluded,
            warnings=warnings,
        )

    async def _deploy_live_search(
        self,
        campaign: Campaign,
        entry: WorkflowNode,
        ctx: DeploymentContext,
    ) -> DeploymentResult:
        if self._live_search is None:
            raise LiveSearchFailed("No live search trigger is configured", context=ctx.error_context("live_search"))

        config = LiveSearchConfig.from_node(entry)
        outcome = await self._live_search.trigger(config, ctx)
        if not outcome.success:
            raise LiveSearchFailed(
                outcome.error or "Live search could not be started",
                context=ctx.error_context("live_search"),
            )

        # Live-search campaigns never hold per-contact steps
        await self._steps.replace_for_campaign(campaign.id, [])
        await self._retire_approvals(campaign, "Schedule replaced")
        await self._scheduled.replace_for_campaign(campaign.id, [])
        if campaign.status != CampaignStatus.ACTIVE:
            await self._campaigns.update(campaign.with_status(CampaignStatus.ACTIVE))

        await emit_safely(
            self._sink,
            ActivityEvent.from_context(
                ctx,
                ActivityType.PROGRESS,
                ActivityAction.LIVE_SEARCH_STARTED,
                message="Live search started",
                data={"search": config.to_dict(), "job_id": outcome.job_id},
            ),
            self._logger,
        )
        return DeploymentResult(campaign_id=campaign.id, scheduled_count=0, is_live_search=True)

    # === Status ===

    async def execution_status(self, campaign_id: str) -> dict[str, Any]:
        """Counts of a campaign's scheduled steps by status."""
        campaign = await self._campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id)

        counts = await self._scheduled.count_by_status(campaign_id)
        pending_approval = 0
        if self._approvals is not None:
            pending_approval = sum(
                1 for i in await self._approvals.list_pending(campaign.workspace_id)
                if i.campaign_id == campaign_id
            )
        return {
            "campaign_id": campaign_id,
            "campaign_status": campaign.status.value,
            "is_live_search": campaign.is_live_search,
            "total": sum(counts.values()),
            "by_status": counts,
            "pending_approval": pending_approval,
            "checked_at": time.time(),
        }

    async def _progress(
        self,
        ctx: DeploymentContext,
        type: ActivityType,
        progress: int,
        message: str,
    ) -> None:
        await emit_safely(
            self._sink,
            ActivityEvent.from_context(
                ctx,
                type,
                ActivityAction.WORKFLOW_DEPLOY,
                progress=progress,
                message=message,
            ),
            self._logger,
        )


__all__ = ["DeploymentOrchestrator"]
