"""
Deployment types and collaborator interfaces.

The orchestrator talks to the outside world only through these protocols:
- WorkflowSource: authored workflow graphs
- ContactSource: contact records
- ComplianceChecker: pre-flight compliance review
- LiveSearchTrigger: continuous discovery for live-search workflows
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from ..context import DeploymentContext
from ..scheduling.types import Contact
from ..steps.types import CampaignStep
from ..workflow.types import Workflow, WorkflowEdge, WorkflowNode

OPTED_OUT_CONTACTS = "OPTED_OUT_CONTACTS"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ComplianceIssue:
    """One finding of a compliance check."""
    code: str
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    affected_contacts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "affected_contacts": list(self.affected_contacts),
        }


@dataclass
class ComplianceReport:
    """Result of a compliance check.

    ``can_proceed`` is False when any error other than opted-out contacts
    was found; opted-out contacts are dropped from the deployment instead.
    """
    issues: list[ComplianceIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    can_proceed: bool = True

    @property
    def passed(self) -> bool:
        return not any(i.severity == IssueSeverity.ERROR for i in self.issues)

    @property
    def blocking_issues(self) -> list[ComplianceIssue]:
        return [
            i for i in self.issues
            if i.severity == IssueSeverity.ERROR and i.code != OPTED_OUT_CONTACTS
        ]

    @property
    def opted_out_contacts(self) -> set[str]:
        return {
            cid
            for i in self.issues
            if i.code == OPTED_OUT_CONTACTS
            for cid in i.affected_contacts
        }

    @classmethod
    def from_issues(
        cls,
        issues: list[ComplianceIssue],
        warnings: list[str] | None = None,
    ) -> ComplianceReport:
        report = cls(issues=list(issues), warnings=list(warnings or []))
        report.can_proceed = not report.blocking_issues
        return report

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "can_proceed": self.can_proceed,
            "issues": [i.to_dict() for i in self.issues],
            "warnings": list(self.warnings),
        }


@dataclass
class LiveSearchConfig:
    """Search parameters for a live-search deployment."""
    keywords: str = ""
    job_title: str = ""
    company: str = ""
    location: str = ""
    industry: str = ""
    max_results: int = 50
    connection_degree: str = "2nd"

    @classmethod
    def from_node(cls, node: WorkflowNode) -> LiveSearchConfig:
        """Read the search configuration embedded in an entry node."""
        config = node.config.get("config") or node.config
        max_results = config.get("maxResults") or config.get("targetCount") or 50
        try:
            max_results = int(max_results)
        except (TypeError, ValueError):
            max_results = 50
        return cls(
            keywords=config.get("keywords") or config.get("searchKeywords") or "",
            job_title=config.get("jobTitle") or config.get("title") or "",
            company=config.get("company") or "",
            location=config.get("location") or "",
            industry=config.get("industry") or "",
            max_results=max_results,
            connection_degree=config.get("connectionDegree") or "2nd",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "keywords": self.keywords,
            "jobTitle": self.job_title,
            "company": self.company,
            "location": self.location,
            "industry": self.industry,
            "maxResults": self.max_results,
            "connectionDegree": self.connection_degree,
        }


@dataclass
class LiveSearchResult:
    success: bool
    error: str | None = None
    job_id: str | None = None


@dataclass
class DeploymentResult:
    """What a deployment produced."""
    campaign_id: str
    scheduled_count: int = 0
    is_live_search: bool = False
    step_count: int = 0
    excluded_contacts: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "campaign_id": self.campaign_id,
            "scheduled_count": self.scheduled_count,
            "is_live_search": self.is_live_search,
            "step_count": self.step_count,
            "excluded_contacts": list(self.excluded_contacts),
            "warnings": list(self.warnings),
        }


# === Collaborator protocols ===


@runtime_checkable
class WorkflowSource(Protocol):
    async def fetch_workflow(self, workflow_id: str) -> Workflow | None:
        ...

    async def fetch_nodes(self, workflow_id: str) -> list[WorkflowNode]:
        ...

    async def fetch_edges(self, workflow_id: str) -> list[WorkflowEdge]:
        ...


@runtime_checkable
class ContactSource(Protocol):
    async def fetch_contacts(self, contact_ids: list[str]) -> list[Contact]:
        ...


@runtime_checkable
class ComplianceChecker(Protocol):
    async def check(
        self,
        actor_id: str | None,
        workflow_id: str,
        contacts: list[Contact],
        steps: list[CampaignStep],
    ) -> ComplianceReport:
        ...


@runtime_checkable
class LiveSearchTrigger(Protocol):
    async def trigger(self, config: LiveSearchConfig, ctx: DeploymentContext) -> LiveSearchResult:
        ...


__all__ = [
    "OPTED_OUT_CONTACTS",
    "IssueSeverity",
    "ComplianceIssue",
    "ComplianceReport",
    "LiveSearchConfig",
    "LiveSearchResult",
    "DeploymentResult",
    "WorkflowSource",
    "ContactSource",
    "ComplianceChecker",
    "LiveSearchTrigger",
]
