"""
Campaign types.

A Campaign is the deployable representation of a workflow plus its run
state. A workflow maps to at most one campaign through the
``settings["workflow_id"]`` back-reference.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class CampaignStatus(str, Enum):
    """Campaign run states."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class CampaignType(str, Enum):
    WORKFLOW = "workflow"
    LINKEDIN_SEARCH = "linkedin_search"


@dataclass
class Campaign:
    """Persistent campaign record."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    workspace_id: str | None = None
    created_by: str | None = None

    name: str = ""
    description: str | None = None
    campaign_type: CampaignType = CampaignType.WORKFLOW
    status: CampaignStatus = CampaignStatus.DRAFT

    # workflow_id back-reference and the live-search flag
    settings: dict[str, Any] = field(default_factory=dict)

    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def workflow_id(self) -> str | None:
        return self.settings.get("workflow_id")

    @property
    def is_live_search(self) -> bool:
        return bool(self.settings.get("is_live_search", False))

    def with_status(self, status: CampaignStatus) -> Campaign:
        """Create a copy with a new status."""
        return replace(self, status=status, settings=dict(self.settings), updated_at=time.time())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "created_by": self.created_by,
            "name": self.name,
            "description": self.description,
            "campaign_type": self.campaign_type.value,
            "status": self.status.value,
            "settings": dict(self.settings),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Campaign:
        return cls(
            id=data.get("id", str(uuid.uuid4())),
            workspace_id=data.get("workspace_id"),
            created_by=data.get("created_by"),
            name=data.get("name", ""),
            description=data.get("description"),
            campaign_type=CampaignType(data.get("campaign_type", "workflow")),
            status=CampaignStatus(data.get("status", "draft")),
            settings=dict(data.get("settings") or {}),
            created_at=data.get("created_at", time.time()),
            updated_at=data.get("updated_at", time.time()),
        )


__all__ = ["CampaignStatus", "CampaignType", "Campaign"]
