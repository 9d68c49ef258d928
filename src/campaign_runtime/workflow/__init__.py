"""
Workflow graphs and the graph compiler.
"""

from .compiler import GraphCompiler, find_entry_node
from .types import (
    CHANNEL_MAP,
    NodeKind,
    Workflow,
    WorkflowEdge,
    WorkflowNode,
    channel_for,
    resolve_effective_type,
)

__all__ = [
    "GraphCompiler",
    "find_entry_node",
    "NodeKind",
    "CHANNEL_MAP",
    "Workflow",
    "WorkflowNode",
    "WorkflowEdge",
    "channel_for",
    "resolve_effective_type",
]
