"""
Workflow graph types.

This module defines the authored graph that the compiler consumes:
- NodeKind: well-known node types
- WorkflowNode / WorkflowEdge: the stored graph
- Workflow: the owning record (name/description for new campaigns)
- CHANNEL_MAP: effective node type -> outreach channel tag
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    """Node types the compiler understands.

    Other type strings are allowed and pass through as their own channel.
    """
    TRIGGER = "trigger"
    CONDITION = "condition"
    WAIT = "wait"
    EMAIL = "email"
    SMS = "sms"
    PHONE = "phone"
    WHATSAPP = "whatsapp"
    WEBHOOK = "webhook"
    LINKEDIN_CONNECT = "linkedin_connect"
    LINKEDIN_MESSAGE = "linkedin_message"
    LINKEDIN_SEARCH = "linkedin_search"


# Triggers and conditions shape the graph but never become steps
NON_ACTIONABLE_TYPES = frozenset({NodeKind.TRIGGER.value, NodeKind.CONDITION.value})
LIVE_SEARCH_TYPES = frozenset({NodeKind.LINKEDIN_SEARCH.value})

CHANNEL_MAP: dict[str, str] = {
    "email": "email",
    "linkedin_connect": "linkedin_connection",
    "linkedin_message": "linkedin_message",
    "linkedin_search": "linkedin_search",
    "sms": "sms",
    "phone": "phone",
    "whatsapp": "whatsapp",
    "wait": "wait",
    "condition": "condition",
    "trigger": "trigger",
    "webhook": "webhook",
}


def resolve_effective_type(node_type: str, config: dict[str, Any] | None) -> str:
    """Resolve the type a node really has.

    Some node kinds are persisted under a generic ``node_type`` with the
    real kind stored as ``config["originalType"]``; that value wins.
    """
    if config:
        original = config.get("originalType")
        if isinstance(original, str) and original:
            return original
    return node_type


def channel_for(effective_type: str) -> str:
    return CHANNEL_MAP.get(effective_type, effective_type)


@dataclass
class WorkflowNode:
    """A node of an authored workflow graph.

    ``effective_type`` is resolved once at construction and is what every
    consumer (filtering, channel mapping, live-search detection) reads.
    """
    id: str
    node_type: str
    workflow_id: str | None = None
    label: str | None = None
    position_y: float = 0.0
    config: dict[str, Any] = field(default_factory=dict)

    effective_type: str = field(init=False)

    def __post_init__(self):
        if self.config is None:
            self.config = {}
        self.effective_type = resolve_effective_type(self.node_type, self.config)

    @property
    def original_type(self) -> str | None:
        return self.config.get("originalType")

    @property
    def is_actionable(self) -> bool:
        return self.effective_type not in NON_ACTIONABLE_TYPES

    @property
    def is_wait(self) -> bool:
        return self.effective_type == NodeKind.WAIT.value

    @property
    def is_live_search(self) -> bool:
        return self.effective_type in LIVE_SEARCH_TYPES

    @property
    def channel(self) -> str:
        return channel_for(self.effective_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "node_type": self.node_type,
            "effective_type": self.effective_type,
            "label": self.label,
            "position_y": self.position_y,
            "config": dict(self.config),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowNode:
        """Build a node from a stored row (snake_case or camelCase keys)."""
        position = data.get("position_y", data.get("positionY", 0.0))
        return cls(
            id=data["id"],
            node_type=data.get("node_type", data.get("nodeType", "")),
            workflow_id=data.get("workflow_id", data.get("workflowId")),
            label=data.get("label"),
            position_y=float(position or 0.0),
            config=dict(data.get("config") or {}),
        )


@dataclass
class WorkflowEdge:
    """A directed edge between two workflow nodes."""
    id: str
    source_node_id: str
    target_node_id: str
    workflow_id: str | None = None
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "source_node_id": self.source_node_id,
            "target_node_id": self.target_node_id,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowEdge:
        return cls(
            id=data["id"],
            source_node_id=data.get("source_node_id", data.get("sourceNodeId", "")),
            target_node_id=data.get("target_node_id", data.get("targetNodeId", "")),
            workflow_id=data.get("workflow_id", data.get("workflowId")),
            label=data.get("label"),
        )


@dataclass
class Workflow:
    """The authored workflow record that owns a node/edge graph."""
    id: str
    name: str = ""
    description: str | None = None
    workspace_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = [
    "NodeKind",
    "NON_ACTIONABLE_TYPES",
    "LIVE_SEARCH_TYPES",
    "CHANNEL_MAP",
    "resolve_effective_type",
    "channel_for",
    "WorkflowNode",
    "WorkflowEdge",
    "Workflow",
]
