"""
Execution gate: approval policy, approvals, overrides, pause/resume.
"""

from .gate import ExecutionGate
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

__all__ = [
    # Gate
    "ExecutionGate",
    "ApprovalPolicy",
    # Types
    "AutonomyLevel",
    "ApprovalStatus",
    "ApprovalDecision",
    "ApprovalItem",
    "OverrideType",
    "GateDecision",
    "GateResult",
    "LearningSignal",
    "SendResult",
    "StepSender",
    "ProcessSummary",
    # Stores
    "ApprovalStore",
    "InMemoryApprovalStore",
    "PauseStore",
    "InMemoryPauseStore",
    "LearningStore",
    "InMemoryLearningStore",
]
