"""
Deployment context for campaign runtime.

The DeploymentContext flows through deploy/compile/schedule calls, carrying
the acting user, the workspace boundary and tracing information.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import ErrorContext


@dataclass(frozen=True)
class DeploymentContext:
    """Identity and tracing for one runtime operation.

    - workspace_id: tenant boundary; every store lookup is scoped by it
    - actor_id: user or service that initiated the operation
    - workflow_id / campaign_id: filled in as the operation resolves them
    """
    workspace_id: str | None = None
    actor_id: str | None = None
    workflow_id: str | None = None
    campaign_id: str | None = None

    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    def with_campaign(self, campaign_id: str) -> DeploymentContext:
        return replace(self, campaign_id=campaign_id)

    def with_workflow(self, workflow_id: str) -> DeploymentContext:
        return replace(self, workflow_id=workflow_id)

    def error_context(self, operation: str | None = None) -> ErrorContext:
        """Build an ErrorContext carrying this context's correlation ids."""
        return ErrorContext(
            workflow_id=self.workflow_id,
            campaign_id=self.campaign_id,
            workspace_id=self.workspace_id,
            trace_id=self.trace_id,
            operation=operation,
        )

    def log_fields(self) -> dict[str, Any]:
        return {
            k: v
            for k, v in {
                "workspace_id": self.workspace_id,
                "actor_id": self.actor_id,
                "workflow_id": self.workflow_id,
                "campaign_id": self.campaign_id,
            }.items()
            if v is not None
        }


__all__ = ["DeploymentContext"]
