"""
Execution gate.

This module provides the ExecutionGate, the state machine every scheduled
step passes through before it is sent:
- Evaluating steps against the approval policy
- Creating and resolving approval items
- Human overrides (skip / prioritize) with optional learning signals
- Per-contact pause and resume
- Executing due steps through a channel sender, with explicit retry
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from ..config.pipeline import GateConfig
from ..errors import ActionNotFound, ErrorContext, InvalidTransition, StepNotFound
from ..events import ActivityAction, ActivityEvent, ActivitySink, ActivityType, emit_safely
from ..logging import StructuredLogger, get_logger
from ..scheduling.store import ScheduledFilter, ScheduledStepStore, due_order
from ..scheduling.types import TOP_PRIORITY, ScheduledStatus, ScheduledStep
from .policy import ApprovalPolicy
from .store import (
    ApprovalStore,
    InMemoryApprovalStore,
    InMemoryLearningStore,
    InMemoryPauseStore,
    LearningStore,
    PauseStore,
)
from .types import (
    ApprovalDecision,
    ApprovalItem,
    ApprovalStatus,
    AutonomyLevel,
    GateDecision,
    GateResult,
    LearningSignal,
    OverrideType,
    ProcessSummary,
    SendResult,
    StepSender,
)

PRIORITIZE_REASON = "User prioritized this action"
NO_REASON = "No reason provided"


class ExecutionGate:
    """Decides whether scheduled steps run, wait for approval, or are skipped.

    ``action_id`` arguments accept either an approval item id or a
    scheduled step id.

    Example:
        ```python
        gate = ExecutionGate(scheduled_store)
        summary = await gate.process_due(sender, now=time.time())
        await gate.approve(summary_item.approval_id)
        ```
    """

    def __init__(
        self,
        scheduled_store: ScheduledStepStore,
        approval_store: ApprovalStore | None = None,
        pause_store: PauseStore | None = None,
        learning_store: LearningStore | None = None,
        *,
        config: GateConfig | None = None,
        sink: ActivitySink | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._steps = scheduled_store
        self._approvals = approval_store or InMemoryApprovalStore()
        self._pauses = pause_store or InMemoryPauseStore()
        self._learning = learning_store or InMemoryLearningStore()
        self._config = config or GateConfig()
        self._policy = ApprovalPolicy(self._config)
        self._sink = sink
        self._logger = logger or get_logger()
        self._claim_lock = asyncio.Lock()

    @property
    def config(self) -> GateConfig:
        return self._config

    @property
    def policy(self) -> ApprovalPolicy:
        return self._policy

    # === Evaluation ===

    async def evaluate(
        self,
        entry: ScheduledStep,
        autonomy_level: AutonomyLevel | str | None = None,
    ) -> GateResult:
        """Decide what should happen to a step, without changing anything."""
        confidence = self._policy.confidence_of(entry)

        if not entry.status.is_due_candidate:
            return GateResult(GateDecision.NOOP, confidence, f"Step is {entry.status.value}")

        if await self._pauses.is_paused(entry.workspace_id, entry.contact_id):
            return GateResult(GateDecision.HOLD, confidence, "Contact is paused")

        if entry.status == ScheduledStatus.APPROVED:
            return GateResult(GateDecision.EXECUTE, confidence, "Approved")

        if entry.approval_id:
            item = await self._approvals.get(entry.approval_id)
            if item is not None:
                if item.status == ApprovalStatus.PENDING:
                    return GateResult(
                        GateDecision.REQUIRE_APPROVAL, confidence, item.reasoning, approval=item
                    )
                if item.status == ApprovalStatus.APPROVED:
                    return GateResult(GateDecision.EXECUTE, confidence, "Approved", approval=item)

        return self._policy.evaluate(entry, autonomy_level)

    async def submit(
        self,
        entry: ScheduledStep,
        *,
        now: float | None = None,
        autonomy_level: AutonomyLevel | str | None = None,
    ) -> GateResult:
        """Evaluate a step and create an approval item when one is needed."""
        result = await self.evaluate(entry, autonomy_level)
        if not result.requires_approval or result.approval is not None:
            return result

        now = time.time() if now is None else now
        item = ApprovalItem(
            workspace_id=entry.workspace_id,
            scheduled_step_id=entry.scheduled_id,
            campaign_id=entry.campaign_id,
            contact_id=entry.contact_id,
            channel=entry.channel,
            confidence=result.confidence,
            reasoning=result.reason or "",
            preview_subject=entry.content.get("subject"),
            preview_content=(entry.content.get("body") or "")[: self._config.preview_max_chars],
            created_at=now,
            expires_at=now + self._config.approval_ttl_seconds,
        )
        await self._approvals.create(item)
        await self._steps.update(entry.with_updates(approval_id=item.approval_id))

        self._logger.info(
            "Step queued for approval",
            scheduled_id=entry.scheduled_id,
            approval_id=item.approval_id,
            confidence=result.confidence,
            reason=result.reason,
        )
        await self._emit(
            entry,
            ActivityAction.APPROVAL_REQUIRED,
            message=result.reason,
            data={"approval_id": item.approval_id, "confidence": result.confidence},
        )
        result.approval = item
        return result

    # === Approval resolution ===

    async def resolve(
        self,
        action_id: str,
        decision: ApprovalDecision | str,
        reason: str | None = None,
        *,
        workspace_id: str | None = None,
        resolved_by: str | None = None,
        now: float | None = None,
    ) -> ScheduledStep:
        """Approve or reject a queued step."""
        decision = ApprovalDecision(decision)
        if decision == ApprovalDecision.APPROVE:
            return await self.approve(
                action_id, workspace_id=workspace_id, resolved_by=resolved_by, now=now
            )
        return await self.reject(
            action_id, reason, workspace_id=workspace_id, resolved_by=resolved_by, now=now
        )

    async def approve(
        self,
        action_id: str,
        *,
        workspace_id: str | None = None,
        resolved_by: str | None = None,
        now: float | None = None,
    ) -> ScheduledStep:
        """Approve a step.

        While the contact is paused the approval is recorded but the step
        stays pending; it becomes approved on resume.
        """
        item, entry = await self._locate(action_id, workspace_id)
        if not entry.can_transition_to(ScheduledStatus.APPROVED):
            raise InvalidTransition(entry.status.value, ScheduledStatus.APPROVED.value)

        now = time.time() if now is None else now
        if item is None or item.status != ApprovalStatus.PENDING:
            if item is not None and item.status != ApprovalStatus.EXPIRED:
                raise InvalidTransition(item.status.value, ApprovalStatus.APPROVED.value)
            # Direct approval of a step that never needed one
            item = ApprovalItem(
                workspace_id=entry.workspace_id,
                scheduled_step_id=entry.scheduled_id,
                campaign_id=entry.campaign_id,
                contact_id=entry.contact_id,
                channel=entry.channel,
                confidence=self._policy.confidence_of(entry),
                reasoning="Approved directly",
                created_at=now,
            )
            await self._approvals.create(item)

        item = await self._approvals.update(item.approve(resolved_by=resolved_by, now=now))

        if await self._pauses.is_paused(entry.workspace_id, entry.contact_id):
            entry = await self._steps.update(entry.with_updates(approval_id=item.approval_id))
            self._logger.info(
                "Approval recorded for paused contact",
                scheduled_id=entry.scheduled_id,
                contact_id=entry.contact_id,
            )
        else:
            entry = await self._steps.update(
                entry.transition_to(ScheduledStatus.APPROVED, approval_id=item.approval_id)
            )

        await self._emit(entry, ActivityAction.STEP_APPROVED, data={"approval_id": item.approval_id})
        return entry

    async def reject(
        self,
        action_id: str,
        reason: str | None = None,
        *,
        workspace_id: str | None = None,
        resolved_by: str | None = None,
        now: float | None = None,
    ) -> ScheduledStep:
        """Reject a step; the step becomes rejected with ``reason`` recorded."""
        item, entry = await self._locate(action_id, workspace_id)
        if not entry.can_transition_to(ScheduledStatus.REJECTED):
            raise InvalidTransition(entry.status.value, ScheduledStatus.REJECTED.value)

        if item is not None and item.status == ApprovalStatus.PENDING:
            await self._approvals.update(item.reject(reason, resolved_by=resolved_by, now=now))

        entry = await self._steps.update(
            entry.transition_to(ScheduledStatus.REJECTED, override_reason=reason)
        )
        await self._emit(entry, ActivityAction.STEP_REJECTED, message=reason)
        return entry

    # === Overrides ===

    async def override(
        self,
        action_id: str,
        override_type: OverrideType | str,
        reason: str | None = None,
        *,
        learn: bool = False,
        workspace_id: str | None = None,
        now: float | None = None,
    ) -> ScheduledStep:
        """Apply a human override.

        - skip: the step is cancelled with the reason recorded
        - prioritize: the step moves to the top of the queue and runs
          within ``prioritize_delay_seconds``; its status is unchanged
        """
        override_type = OverrideType(override_type)
        item, entry = await self._locate(action_id, workspace_id)
        now = time.time() if now is None else now

        if override_type == OverrideType.SKIP:
            if not entry.can_transition_to(ScheduledStatus.CANCELLED):
                raise InvalidTransition(entry.status.value, ScheduledStatus.CANCELLED.value)
            if item is not None and item.status == ApprovalStatus.PENDING:
                await self._approvals.update(item.reject(reason or "Skipped by user override", now=now))
            entry = await self._steps.update(
                entry.transition_to(
                    ScheduledStatus.CANCELLED,
                    user_override=True,
                    override_reason=reason,
                )
            )
            await self._emit(entry, ActivityAction.STEP_SKIPPED, message=reason)
        else:
            if entry.status.is_terminal or entry.status == ScheduledStatus.EXECUTING:
                raise InvalidTransition(entry.status.value, "prioritized")
            entry = await self._steps.update(
                entry.with_updates(
                    scheduled_at=min(entry.scheduled_at, now + self._config.prioritize_delay_seconds),
                    priority=TOP_PRIORITY,
                    user_override=True,
                    override_reason=reason or PRIORITIZE_REASON,
                )
            )
            await self._emit(entry, ActivityAction.STEP_PRIORITIZED, message=entry.override_reason)

        if learn:
            await self._learning.record(
                LearningSignal(
                    workspace_id=entry.workspace_id,
                    key=f"override_{override_type.value}",
                    reason=reason or NO_REASON,
                    last_action_id=action_id,
                    last_channel=entry.channel,
                    updated_at=now,
                )
            )
        return entry

    # === Pause / resume ===

    async def pause(self, contact_id: str, *, workspace_id: str | None = None, reason: str | None = None) -> None:
        """Stop every step for a contact from moving toward execution."""
        await self._pauses.pause(workspace_id, contact_id, reason)
        self._logger.info("Contact paused", contact_id=contact_id, workspace_id=workspace_id)
        await emit_safely(
            self._sink,
            ActivityEvent(
                type=ActivityType.PROGRESS,
                action=ActivityAction.CONTACT_PAUSED,
                workspace_id=workspace_id,
                message=reason,
                data={"contact_id": contact_id},
            ),
            self._logger,
        )

    async def resume(self, contact_id: str, *, workspace_id: str | None = None) -> list[ScheduledStep]:
        """Resume a contact and apply approvals granted while it was paused.

        Returns the steps that became approved.
        """
        await self._pauses.resume(workspace_id, contact_id)

        released: list[ScheduledStep] = []
        pending = await self._steps.list(
            ScheduledFilter(
                contact_id=contact_id,
                workspace_id=workspace_id,
                status=ScheduledStatus.PENDING,
            )
        )
        for entry in pending:
            if not entry.approval_id:
                continue
            item = await self._approvals.get(entry.approval_id)
            if item is not None and item.status == ApprovalStatus.APPROVED:
                released.append(
                    await self._steps.update(entry.transition_to(ScheduledStatus.APPROVED))
                )

        self._logger.info(
            "Contact resumed",
            contact_id=contact_id,
            workspace_id=workspace_id,
            released=len(released),
        )
        await emit_safely(
            self._sink,
            ActivityEvent(
                type=ActivityType.PROGRESS,
                action=ActivityAction.CONTACT_RESUMED,
                workspace_id=workspace_id,
                data={"contact_id": contact_id, "released": len(released)},
            ),
            self._logger,
        )
        return released

    async def is_paused(self, contact_id: str, *, workspace_id: str | None = None) -> bool:
        return await self._pauses.is_paused(workspace_id, contact_id)

    # === Execution ===

    async def execute(
        self,
        scheduled_id: str,
        sender: StepSender,
        *,
        workspace_id: str | None = None,
        now: float | None = None,
    ) -> ScheduledStep:
        """Send one step now if the gate allows it.

        A step the gate does not clear is returned unchanged (an approval
        item is created if one is needed).
        """
        entry = await self._get_entry(scheduled_id, workspace_id)
        result = await self.submit(entry, now=now)
        if result.decision != GateDecision.EXECUTE:
            return await self._get_entry(scheduled_id, workspace_id)
        return await self._run(scheduled_id, sender)

    async def process_due(
        self,
        sender: StepSender,
        *,
        now: float | None = None,
        workspace_id: str | None = None,
        limit: int = 100,
    ) -> ProcessSummary:
        """Gate and send every step that is due at ``now``."""
        now = time.time() if now is None else now
        summary = ProcessSummary()

        for entry in await self._steps.list_due(now, workspace_id=workspace_id, limit=limit):
            summary.total += 1
            result = await self.submit(entry, now=now)

            if result.decision == GateDecision.HOLD:
                summary.held_paused += 1
            elif result.decision == GateDecision.REQUIRE_APPROVAL:
                summary.pending_approval += 1
            elif result.decision == GateDecision.EXECUTE:
                done = await self._run(entry.scheduled_id, sender)
                if done.status == ScheduledStatus.COMPLETED:
                    summary.executed += 1
                elif done.status == ScheduledStatus.FAILED:
                    summary.failed += 1

        if summary.total:
            self._logger.info("Processed due steps", **summary.to_dict())
        return summary

    async def retry(self, scheduled_id: str, *, workspace_id: str | None = None) -> ScheduledStep:
        """Reset a failed step to pending so it re-enters the gate."""
        entry = await self._get_entry(scheduled_id, workspace_id)
        entry = await self._steps.update(entry.reset_for_retry())
        await self._emit(entry, ActivityAction.STEP_RETRIED, data={"attempts": entry.attempts})
        return entry

    async def _run(self, scheduled_id: str, sender: StepSender) -> ScheduledStep:
        async with self._claim_lock:
            entry = await self._get_entry(scheduled_id)
            if not entry.can_transition_to(ScheduledStatus.EXECUTING):
                return entry
            if await self._pauses.is_paused(entry.workspace_id, entry.contact_id):
                return entry
            entry = await self._steps.update(entry.transition_to(ScheduledStatus.EXECUTING))

        await self._emit(entry, ActivityAction.STEP_EXECUTING, type=ActivityType.STARTED)

        try:
            outcome = await sender.send(entry)
        except Exception as e:
            self._logger.log_error(e, "Step send failed", scheduled_id=entry.scheduled_id)
            outcome = SendResult(success=False, error=str(e) or type(e).__name__)

        if outcome is not None and not outcome.success:
            entry = await self._steps.update(
                entry.transition_to(ScheduledStatus.FAILED, error=outcome.error or "Send failed")
            )
            await self._emit(entry, ActivityAction.STEP_FAILED, type=ActivityType.FAILED, message=entry.error)
        else:
            entry = await self._steps.update(entry.transition_to(ScheduledStatus.COMPLETED))
            await self._emit(entry, ActivityAction.STEP_COMPLETED, type=ActivityType.COMPLETED)
        return entry

    # === Queue maintenance ===

    async def queue(self, workspace_id: str | None = None) -> list[tuple[ApprovalItem, ScheduledStep]]:
        """Pending approvals with their steps, by priority then scheduled time."""
        rows: list[tuple[ApprovalItem, ScheduledStep]] = []
        for item in await self._approvals.list_pending(workspace_id):
            entry = await self._steps.get(item.scheduled_step_id)
            if entry is not None:
                rows.append((item, entry))
        rows.sort(key=lambda row: due_order(row[1]))
        return rows

    async def expire_approvals(self, now: float | None = None) -> list[ApprovalItem]:
        """Expire stale approval items and cancel their still-pending steps.

        Items for paused contacts are left pending until the contact resumes.
        """
        now = time.time() if now is None else now
        expired: list[ApprovalItem] = []
        for item in await self._approvals.list_expired(now):
            if await self._pauses.is_paused(item.workspace_id, item.contact_id):
                continue
            item = await self._approvals.update(item.expire(now))
            expired.append(item)
            entry = await self._steps.get(item.scheduled_step_id)
            if entry is not None and entry.status == ScheduledStatus.PENDING:
                entry = await self._steps.update(
                    entry.transition_to(ScheduledStatus.CANCELLED, override_reason="Approval expired")
                )
                await self._emit(entry, ActivityAction.STEP_SKIPPED, message="Approval expired")
        return expired

    async def update_confidence(
        self,
        scheduled_id: str,
        confidence: float,
        *,
        workspace_id: str | None = None,
    ) -> ScheduledStep:
        """Overwrite a step's confidence (e.g. after re-analysis)."""
        if not 0.0 <= confidence <= 1.0:
            raise ValueError("confidence must be between 0.0 and 1.0")
        entry = await self._get_entry(scheduled_id, workspace_id)
        return await self._steps.update(entry.with_updates(confidence=confidence))

    # === Helpers ===

    async def _get_entry(self, scheduled_id: str, workspace_id: str | None = None) -> ScheduledStep:
        entry = await self._steps.get(scheduled_id)
        if entry is None or (workspace_id is not None and entry.workspace_id != workspace_id):
            raise StepNotFound(
                scheduled_id,
                context=ErrorContext(workspace_id=workspace_id, operation="gate"),
            )
        return entry

    async def _locate(
        self,
        action_id: str,
        workspace_id: str | None,
    ) -> tuple[ApprovalItem | None, ScheduledStep]:
        item = await self._approvals.get(action_id, workspace_id)
        if item is not None:
            entry = await self._steps.get(item.scheduled_step_id)
            if entry is None:
                raise StepNotFound(item.scheduled_step_id)
            return item, entry

        entry = await self._steps.get(action_id)
        if entry is None or (workspace_id is not None and entry.workspace_id != workspace_id):
            raise ActionNotFound(
                action_id,
                context=ErrorContext(workspace_id=workspace_id, operation="resolve"),
            )
        item = await self._approvals.get_for_step(entry.scheduled_id)
        return item, entry

    async def _emit(
        self,
        entry: ScheduledStep,
        action: ActivityAction,
        *,
        type: ActivityType = ActivityType.PROGRESS,
        message: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        await emit_safely(
            self._sink,
            ActivityEvent(
                type=type,
                action=action,
                workspace_id=entry.workspace_id,
                campaign_id=entry.campaign_id,
                message=message,
                data={
                    "scheduled_id": entry.scheduled_id,
                    "contact_id": entry.contact_id,
                    "channel": entry.channel,
                    "status": entry.status.value,
                    **(data or {}),
                },
            ),
            self._logger,
        )


__all__ = ["ExecutionGate", "PRIORITIZE_REASON", "NO_REASON"]
