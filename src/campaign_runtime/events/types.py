"""
Activity event types.

Activity events are the advisory telemetry the runtime hands to an
external broadcaster (SSE, long-poll, webhook). They are never part of the
correctness contract of a deployment.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActivityType(str, Enum):
    """Activity phases shown to a workspace."""
    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"
    IDLE = "idle"


class ActivityAction(str, Enum):
    """What the activity is about."""

    # Deployment
    WORKFLOW_DEPLOY = "workflow_deploy"
    WORKFLOW_DEPLOYED = "workflow_deployed"
    WORKFLOW_DEPLOY_FAILED = "workflow_deploy_failed"
    COMPLIANCE_FAILED = "compliance_failed"
    LIVE_SEARCH_STARTED = "live_search_started"

    # Execution gate
    APPROVAL_REQUIRED = "approval_required"
    STEP_APPROVED = "step_approved"
    STEP_REJECTED = "step_rejected"
    STEP_SKIPPED = "step_skipped"
    STEP_PRIORITIZED = "step_prioritized"
    STEP_EXECUTING = "step_executing"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    STEP_RETRIED = "step_retried"
    CONTACT_PAUSED = "contact_paused"
    CONTACT_RESUMED = "contact_resumed"


@dataclass
class ActivityEvent:
    """A single activity record.

    ``progress`` is a percentage (0-100) for deployment events and None
    for gate events.
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    type: ActivityType = ActivityType.PROGRESS
    action: ActivityAction = ActivityAction.WORKFLOW_DEPLOY
    timestamp: float = field(default_factory=time.time)

    # Correlation
    workspace_id: str | None = None
    actor_id: str | None = None
    workflow_id: str | None = None
    campaign_id: str | None = None
    trace_id: str | None = None

    progress: int | None = None
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "event_id": self.event_id,
            "type": self.type.value,
            "action": self.action.value,
            "timestamp": self.timestamp,
            "workspace_id": self.workspace_id,
            "actor_id": self.actor_id,
            "workflow_id": self.workflow_id,
            "campaign_id": self.campaign_id,
            "trace_id": self.trace_id,
            "progress": self.progress,
            "message": self.message,
            "data": dict(self.data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityEvent:
        """Deserialize from dictionary."""
        return cls(
            event_id=data.get("event_id", str(uuid.uuid4())),
            type=ActivityType(data.get("type", "progress")),
            action=ActivityAction(data["action"]),
            timestamp=data.get("timestamp", time.time()),
            workspace_id=data.get("workspace_id"),
            actor_id=data.get("actor_id"),
            workflow_id=data.get("workflow_id"),
            campaign_id=data.get("campaign_id"),
            trace_id=data.get("trace_id"),
            progress=data.get("progress"),
            message=data.get("message"),
            data=dict(data.get("data") or {}),
        )

    @classmethod
    def from_context(
        cls,
        ctx: Any,  # DeploymentContext
        type: ActivityType,
        action: ActivityAction,
        *,
        progress: int | None = None,
        message: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> ActivityEvent:
        """Create an event carrying a DeploymentContext's correlation ids."""
        return cls(
            type=type,
            action=action,
            workspace_id=ctx.workspace_id,
            actor_id=ctx.actor_id,
            workflow_id=ctx.workflow_id,
            campaign_id=ctx.campaign_id,
            trace_id=ctx.trace_id,
            progress=progress,
            message=message,
            data=data or {},
        )


__all__ = ["ActivityType", "ActivityAction", "ActivityEvent"]
