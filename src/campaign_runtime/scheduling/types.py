"""
Scheduled step types.

This module defines the per-contact ScheduledStep record, its status
lifecycle, and the Contact record used for personalization.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import InvalidTransition


class ScheduledStatus(str, Enum):
    """Scheduled step lifecycle states.

    State transitions:
    - PENDING -> APPROVED (approval granted)
    - PENDING -> EXECUTING (autonomous execution)
    - PENDING | APPROVED -> REJECTED (approval refused)
    - PENDING | APPROVED -> CANCELLED (skipped by override)
    - APPROVED -> EXECUTING
    - EXECUTING -> COMPLETED | FAILED
    - FAILED -> PENDING only through an explicit retry
    """
    PENDING = "pending"
    APPROVED = "approved"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in {
            ScheduledStatus.COMPLETED,
            ScheduledStatus.FAILED,
            ScheduledStatus.REJECTED,
            ScheduledStatus.CANCELLED,
        }

    @property
    def is_due_candidate(self) -> bool:
        """States a due-step sweep picks up."""
        return self in {ScheduledStatus.PENDING, ScheduledStatus.APPROVED}


VALID_TRANSITIONS: dict[ScheduledStatus, set[ScheduledStatus]] = {
    ScheduledStatus.PENDING: {
        ScheduledStatus.APPROVED,
        ScheduledStatus.EXECUTING,
        ScheduledStatus.REJECTED,
        ScheduledStatus.CANCELLED,
    },
    ScheduledStatus.APPROVED: {
        ScheduledStatus.EXECUTING,
        ScheduledStatus.REJECTED,
        ScheduledStatus.CANCELLED,
    },
    ScheduledStatus.EXECUTING: {
        ScheduledStatus.COMPLETED,
        ScheduledStatus.FAILED,
    },
    # Terminal states have no valid transitions; retry is handled separately
    ScheduledStatus.COMPLETED: set(),
    ScheduledStatus.FAILED: set(),
    ScheduledStatus.REJECTED: set(),
    ScheduledStatus.CANCELLED: set(),
}

DEFAULT_PRIORITY = 50
TOP_PRIORITY = 0


@dataclass
class Contact:
    """A contact a campaign is scheduled for."""
    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    company: str | None = None
    title: str | None = None
    linkedin_url: str | None = None
    phone: str | None = None
    # Extra fields are available as personalization tokens
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Contact:
        known = {"id", "first_name", "last_name", "email", "company", "title", "linkedin_url", "phone", "extra"}
        return cls(
            id=str(data["id"]),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            company=data.get("company"),
            title=data.get("title"),
            linkedin_url=data.get("linkedin_url"),
            phone=data.get("phone"),
            extra={**{k: v for k, v in data.items() if k not in known}, **(data.get("extra") or {})},
        )


@dataclass
class ScheduledStep:
    """One step bound to one contact at one absolute time.

    Unique per (campaign_id, step_id, contact_id).
    """
    scheduled_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    campaign_id: str = ""
    step_id: str = ""
    contact_id: str = ""
    workspace_id: str | None = None

    channel: str = ""
    step_index: int = 0
    scheduled_at: float = field(default_factory=time.time)

    status: ScheduledStatus = ScheduledStatus.PENDING
    content: dict[str, Any] = field(default_factory=dict)
    confidence: float | None = None
    priority: int = DEFAULT_PRIORITY

    # Human override / execution outcome
    user_override: bool = False
    override_reason: str | None = None
    error: str | None = None
    attempts: int = 0
    approval_id: str | None = None

    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    executed_at: float | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.campaign_id, self.step_id, self.contact_id)

    def can_transition_to(self, new_status: ScheduledStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: ScheduledStatus, **changes: Any) -> ScheduledStep:
        """Create a new ScheduledStep with updated status.

        Raises:
            InvalidTransition: If the transition is not allowed
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransition(self.status.value, new_status.value)

        now = time.time()
        if new_status == ScheduledStatus.EXECUTING:
            changes.setdefault("attempts", self.attempts + 1)
        if new_status.is_terminal:
            changes.setdefault("executed_at", now)
        changes.setdefault("content", dict(self.content))
        return replace(self, status=new_status, updated_at=now, **changes)

    def reset_for_retry(self) -> ScheduledStep:
        """Put a failed step back to pending so it re-enters the gate."""
        if self.status != ScheduledStatus.FAILED:
            raise InvalidTransition(self.status.value, ScheduledStatus.PENDING.value)
        return replace(
            self,
            status=ScheduledStatus.PENDING,
            error=None,
            executed_at=None,
            approval_id=None,
            updated_at=time.time(),
            content=dict(self.content),
        )

    def with_updates(self, **changes: Any) -> ScheduledStep:
        """Create a copy with non-status fields changed."""
        if "status" in changes:
            raise ValueError("use transition_to() to change status")
        changes.setdefault("content", dict(self.content))
        return replace(self, updated_at=time.time(), **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "scheduled_id": self.scheduled_id,
            "campaign_id": self.campaign_id,
            "step_id": self.step_id,
            "contact_id": self.contact_id,
            "workspace_id": self.workspace_id,
            "channel": self.channel,
            "step_index": self.step_index,
            "scheduled_at": self.scheduled_at,
            "status": self.status.value,
            "content": dict(self.content),
            "confidence": self.confidence,
            "priority": self.priority,
            "user_override": self.user_override,
            "override_reason": self.override_reason,
            "error": self.error,
            "attempts": self.attempts,
            "approval_id": self.approval_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "executed_at": self.executed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledStep:
        """Deserialize from dictionary."""
        return cls(
            scheduled_id=data.get("scheduled_id", str(uuid.uuid4())),
            campaign_id=data.get("campaign_id", ""),
            step_id=data.get("step_id", ""),
            contact_id=data.get("contact_id", ""),
            workspace_id=data.get("workspace_id"),
            channel=data.get("channel", ""),
            step_index=data.get("step_index", 0),
            scheduled_at=data.get("scheduled_at", time.time()),
            status=ScheduledStatus(data.get("status", "pending")),
            content=dict(data.get("content") or {}),
            confidence=data.get("confidence"),
            priority=data.get("priority", DEFAULT_PRIORITY),
            user_override=bool(data.get("user_override", False)),
            override_reason=data.get("override_reason"),
            error=data.get("error"),
            attempts=data.get("attempts", 0),
            approval_id=data.get("approval_id"),
            created_at=data.get("created_at", time.time()),
            updated_at=data.get("updated_at", time.time()),
            executed_at=data.get("executed_at"),
        )


__all__ = [
    "ScheduledStatus",
    "VALID_TRANSITIONS",
    "DEFAULT_PRIORITY",
    "TOP_PRIORITY",
    "Contact",
    "ScheduledStep",
]
