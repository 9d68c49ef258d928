"""
Shared test fixtures and fakes for campaign-runtime tests.

This module provides:
- Node/edge/contact factories
- Fake workflow, contact, compliance and live-search collaborators
- A recording channel sender
- In-memory store, gate and orchestrator fixtures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from campaign_runtime.config import CompilerConfig, GateConfig, SchedulerConfig
from campaign_runtime.context import DeploymentContext
from campaign_runtime.deployment import (
    ComplianceIssue,
    ComplianceReport,
    DeploymentOrchestrator,
    LiveSearchConfig,
    LiveSearchResult,
)
from campaign_runtime.events import InMemoryActivitySink
from campaign_runtime.gate import ExecutionGate, SendResult
from campaign_runtime.logging import StructuredLogger
from campaign_runtime.scheduling import Contact, ScheduledStep, StepScheduler
from campaign_runtime.storage import StoreBundle
from campaign_runtime.steps import CampaignStep
from campaign_runtime.workflow import GraphCompiler, Workflow, WorkflowEdge, WorkflowNode

BASE_TIME = 1_700_000_000.0
DAY = 86_400.0


# =============================================================================
# Factories
# =============================================================================


def make_node(
    id: str,
    node_type: str,
    position_y: float = 0.0,
    label: str | None = None,
    **config: Any,
) -> WorkflowNode:
    """Create a WorkflowNode with the given config keys."""
    return WorkflowNode(
        id=id,
        node_type=node_type,
        workflow_id="wf_1",
        label=label,
        position_y=position_y,
        config=config,
    )


def make_edge(source: str, target: str) -> WorkflowEdge:
    return WorkflowEdge(
        id=f"{source}->{target}",
        source_node_id=source,
        target_node_id=target,
        workflow_id="wf_1",
    )


def make_contact(id: str = "c_1", **kwargs: Any) -> Contact:
    defaults = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": f"{id}@example.com",
        "company": "Analytical Engines",
        "title": "Engineer",
    }
    defaults.update(kwargs)
    return Contact(id=id, **defaults)


def make_entry(**kwargs: Any) -> ScheduledStep:
    defaults: dict[str, Any] = {
        "campaign_id": "camp_1",
        "step_id": "step_1",
        "contact_id": "c_1",
        "workspace_id": "ws_1",
        "channel": "email",
        "scheduled_at": BASE_TIME,
        "content": {"subject": "Hi", "body": "Hello Ada"},
        "confidence": 0.9,
    }
    defaults.update(kwargs)
    return ScheduledStep(**defaults)


def linear_graph() -> tuple[list[WorkflowNode], list[WorkflowEdge]]:
    """trigger -> email -> wait(2d) -> linkedin_connect(delay 1)."""
    nodes = [
        make_node("t", "trigger", 0),
        make_node("e", "email", 100, label="Intro", subject="Hi {{first_name}}", content="Hello {{first_name}} at {{company}}"),
        make_node("w", "wait", 200, delay=2),
        make_node("l", "linkedin_connect", 300, delay=1, content="Let's connect, {{name}}"),
    ]
    edges = [make_edge("t", "e"), make_edge("e", "w"), make_edge("w", "l")]
    return nodes, edges


# =============================================================================
# Fakes
# =============================================================================


class FakeWorkflowSource:
    """Workflow source backed by dicts."""

    def __init__(self):
        self.workflows: dict[str, Workflow] = {}
        self.nodes: dict[str, list[WorkflowNode]] = {}
        self.edges: dict[str, list[WorkflowEdge]] = {}

    def add(
        self,
        workflow_id: str,
        nodes: list[WorkflowNode],
        edges: list[WorkflowEdge],
        name: str = "Outreach",
    ) -> None:
        self.workflows[workflow_id] = Workflow(id=workflow_id, name=name, description="Test workflow")
        self.nodes[workflow_id] = list(nodes)
        self.edges[workflow_id] = list(edges)

    async def fetch_workflow(self, workflow_id: str) -> Workflow | None:
        return self.workflows.get(workflow_id)

    async def fetch_nodes(self, workflow_id: str) -> list[WorkflowNode]:
        return list(self.nodes.get(workflow_id, []))

    async def fetch_edges(self, workflow_id: str) -> list[WorkflowEdge]:
        return list(self.edges.get(workflow_id, []))


class FakeContactSource:
    """Contact source that returns only the ids it knows."""

    def __init__(self, contacts: list[Contact] | None = None):
        self.contacts = {c.id: c for c in contacts or []}

    async def fetch_contacts(self, contact_ids: list[str]) -> list[Contact]:
        return [self.contacts[cid] for cid in contact_ids if cid in self.contacts]


@dataclass
class FakeCompliance:
    """Compliance checker returning a fixed report and recording its calls."""
    report: ComplianceReport = field(default_factory=ComplianceReport)
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def check(
        self,
        actor_id: str | None,
        workflow_id: str,
        contacts: list[Contact],
        steps: list[CampaignStep],
    ) -> ComplianceReport:
        self.calls.append(
            {
                "actor_id": actor_id,
                "workflow_id": workflow_id,
                "contact_ids": [c.id for c in contacts],
                "step_count": len(steps),
            }
        )
        return self.report

    @classmethod
    def rejecting(cls, code: str = "MISSING_UNSUBSCRIBE", message: str = "No unsubscribe link") -> FakeCompliance:
        return cls(report=ComplianceReport.from_issues([ComplianceIssue(code=code, message=message)]))


@dataclass
class FakeLiveSearch:
    """Live-search trigger that records the configs it was given."""
    result: LiveSearchResult = field(default_factory=lambda: LiveSearchResult(success=True, job_id="job_1"))
    calls: list[LiveSearchConfig] = field(default_factory=list)

    async def trigger(self, config: LiveSearchConfig, ctx: DeploymentContext) -> LiveSearchResult:
        self.calls.append(config)
        return self.result


class RecordingSender:
    """Channel sender that records sends and fails on request."""

    def __init__(self, fail: set[str] | None = None, raise_on: set[str] | None = None):
        self.sent: list[ScheduledStep] = []
        self.fail = set(fail or ())
        self.raise_on = set(raise_on or ())

    async def send(self, entry: ScheduledStep) -> SendResult:
        if entry.scheduled_id in self.raise_on:
            raise ConnectionError("provider unreachable")
        self.sent.append(entry)
        if entry.scheduled_id in self.fail:
            return SendResult(success=False, error="bounced")
        return SendResult(success=True, external_id=f"msg_{len(self.sent)}")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger("campaign_runtime.tests", level="DEBUG")


@pytest.fixture
def stores() -> StoreBundle:
    return StoreBundle()


@pytest.fixture
def sink() -> InMemoryActivitySink:
    return InMemoryActivitySink()


@pytest.fixture
def workflows() -> FakeWorkflowSource:
    source = FakeWorkflowSource()
    nodes, edges = linear_graph()
    source.add("wf_1", nodes, edges)
    return source


@pytest.fixture
def contacts() -> FakeContactSource:
    return FakeContactSource(
        [
            make_contact("c_1"),
            make_contact("c_2", first_name="Grace", last_name="Hopper", company="Navy"),
            make_contact("c_3", first_name="Alan", last_name="Turing", company=None),
        ]
    )


@pytest.fixture
def compliance() -> FakeCompliance:
    return FakeCompliance()


@pytest.fixture
def live_search() -> FakeLiveSearch:
    return FakeLiveSearch()


@pytest.fixture
def orchestrator(workflows, contacts, stores, compliance, live_search, sink, logger) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        workflows,
        contacts,
        stores.campaigns,
        stores.steps,
        stores.scheduled,
        compiler=GraphCompiler(CompilerConfig(), logger=logger),
        scheduler=StepScheduler(SchedulerConfig(), logger=logger),
        compliance=compliance,
        live_search=live_search,
        approvals=stores.approvals,
        sink=sink,
        logger=logger,
    )


@pytest.fixture
def gate_config() -> GateConfig:
    return GateConfig(autonomy_level="fully_autonomous", approval_threshold=0.8)


@pytest.fixture
def gate(stores, sink, logger, gate_config) -> ExecutionGate:
    return ExecutionGate(
        stores.scheduled,
        stores.approvals,
        stores.pauses,
        stores.learning,
        config=gate_config,
        sink=sink,
        logger=logger,
    )


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()
