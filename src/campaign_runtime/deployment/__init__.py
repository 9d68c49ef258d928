"""
Workflow deployment: orchestrator, compliance and live-search hooks.
"""

from .orchestrator import DeploymentOrchestrator
from .types import (
    OPTED_OUT_CONTACTS,
    ComplianceChecker,
    ComplianceIssue,
    ComplianceReport,
    ContactSource,
    DeploymentResult,
    IssueSeverity,
    LiveSearchConfig,
    LiveSearchResult,
    LiveSearchTrigger,
    WorkflowSource,
)

__all__ = [
    "DeploymentOrchestrator",
    "DeploymentResult",
    # Compliance
    "OPTED_OUT_CONTACTS",
    "IssueSeverity",
    "ComplianceIssue",
    "ComplianceReport",
    "ComplianceChecker",
    # Live search
    "LiveSearchConfig",
    "LiveSearchResult",
    "LiveSearchTrigger",
    # Sources
    "WorkflowSource",
    "ContactSource",
]
