"""
Execution gate types.

This module defines the records the execution gate works with:
- AutonomyLevel: how much the system may do without a human
- ApprovalItem: a deferred step waiting for a human decision
- GateDecision / GateResult: the outcome of evaluating one scheduled step
- OverrideType: human overrides on a queued step
- LearningSignal: override feedback recorded per workspace
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..scheduling.types import ScheduledStep


class AutonomyLevel(str, Enum):
    """System autonomy levels."""
    MANUAL_APPROVAL = "manual_approval"
    SEMI_AUTONOMOUS = "semi_autonomous"
    FULLY_AUTONOMOUS = "fully_autonomous"

    @classmethod
    def parse(cls, value: Any) -> AutonomyLevel | None:
        """Parse a stored level; None for anything unrecognized."""
        if isinstance(value, AutonomyLevel):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class ApprovalStatus(str, Enum):
    """Approval item lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self != ApprovalStatus.PENDING


class ApprovalDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class OverrideType(str, Enum):
    SKIP = "skip"
    PRIORITIZE = "prioritize"


class GateDecision(str, Enum):
    """What the gate decided for a scheduled step."""
    EXECUTE = "execute"                    # Proceed without approval
    REQUIRE_APPROVAL = "require_approval"  # Wait for a human
    HOLD = "hold"                          # Contact is paused
    NOOP = "noop"                          # Step is not in a gateable state


@dataclass
class GateResult:
    """Result of evaluating a scheduled step against the gate."""
    decision: GateDecision
    confidence: float
    reason: str | None = None
    approval: ApprovalItem | None = None

    @property
    def requires_approval(self) -> bool:
        return self.decision == GateDecision.REQUIRE_APPROVAL


@dataclass
class ApprovalItem:
    """A scheduled step deferred for human approval."""
    approval_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    workspace_id: str | None = None
    scheduled_step_id: str = ""
    campaign_id: str = ""
    contact_id: str = ""
    channel: str = ""
    action_type: str = "campaign_step"

    confidence: float = 0.0
    reasoning: str = ""
    preview_subject: str | None = None
    preview_content: str = ""

    status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: float = field(default_factory=time.time)
    expires_at: float | None = None
    resolved_at: float | None = None
    resolved_by: str | None = None
    resolution_reason: str | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (time.time() if now is None else now) > self.expires_at

    def _resolved(
        self,
        status: ApprovalStatus,
        reason: str | None,
        resolved_by: str | None,
        now: float | None,
    ) -> ApprovalItem:
        if self.status != ApprovalStatus.PENDING:
            raise ValueError(f"Approval {self.approval_id} is not pending: {self.status.value}")
        return replace(
            self,
            status=status,
            resolved_at=time.time() if now is None else now,
            resolved_by=resolved_by,
            resolution_reason=reason,
        )

    def approve(self, *, resolved_by: str | None = None, now: float | None = None) -> ApprovalItem:
        return self._resolved(ApprovalStatus.APPROVED, None, resolved_by, now)

    def reject(
        self,
        reason: str | None = None,
        *,
        resolved_by: str | None = None,
        now: float | None = None,
    ) -> ApprovalItem:
        return self._resolved(ApprovalStatus.REJECTED, reason, resolved_by, now)

    def expire(self, now: float | None = None) -> ApprovalItem:
        return self._resolved(ApprovalStatus.EXPIRED, "expired", None, now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "approval_id": self.approval_id,
            "workspace_id": self.workspace_id,
            "scheduled_step_id": self.scheduled_step_id,
            "campaign_id": self.campaign_id,
            "contact_id": self.contact_id,
            "channel": self.channel,
            "action_type": self.action_type,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "preview_subject": self.preview_subject,
            "preview_content": self.preview_content,
            "status": self.status.value,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "resolved_at": self.resolved_at,
            "resolved_by": self.resolved_by,
            "resolution_reason": self.resolution_reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApprovalItem:
        return cls(
            approval_id=data.get("approval_id", str(uuid.uuid4())),
            workspace_id=data.get("workspace_id"),
            scheduled_step_id=data.get("scheduled_step_id", ""),
            campaign_id=data.get("campaign_id", ""),
            contact_id=data.get("contact_id", ""),
            channel=data.get("channel", ""),
            action_type=data.get("action_type", "campaign_step"),
            confidence=float(data.get("confidence", 0.0)),
            reasoning=data.get("reasoning", ""),
            preview_subject=data.get("preview_subject"),
            preview_content=data.get("preview_content", ""),
            status=ApprovalStatus(data.get("status", "pending")),
            created_at=data.get("created_at", time.time()),
            expires_at=data.get("expires_at"),
            resolved_at=data.get("resolved_at"),
            resolved_by=data.get("resolved_by"),
            resolution_reason=data.get("resolution_reason"),
        )


@dataclass
class LearningSignal:
    """Override feedback, keyed by (workspace_id, key)."""
    workspace_id: str | None
    key: str
    reason: str
    count: int = 1
    last_action_id: str | None = None
    last_channel: str | None = None
    updated_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workspace_id": self.workspace_id,
            "key": self.key,
            "reason": self.reason,
            "count": self.count,
            "last_action_id": self.last_action_id,
            "last_channel": self.last_channel,
            "updated_at": self.updated_at,
        }


@dataclass
class SendResult:
    """What a channel sender reports back for one step."""
    success: bool = True
    error: str | None = None
    external_id: str | None = None


@runtime_checkable
class StepSender(Protocol):
    """Channel transport that performs a scheduled step."""

    async def send(self, entry: ScheduledStep) -> SendResult:
        ...


@dataclass
class ProcessSummary:
    """Outcome of one due-step sweep."""
    total: int = 0
    executed: int = 0
    pending_approval: int = 0
    failed: int = 0
    held_paused: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "executed": self.executed,
            "pending_approval": self.pending_approval,
            "failed": self.failed,
            "held_paused": self.held_paused,
        }


__all__ = [
    "AutonomyLevel",
    "ApprovalStatus",
    "ApprovalDecision",
    "OverrideType",
    "GateDecision",
    "GateResult",
    "ApprovalItem",
    "LearningSignal",
    "SendResult",
    "StepSender",
    "ProcessSummary",
]
