"""
Campaign Runtime - Workflow deployment and execution gating for outreach campaigns.

This package turns authored workflow graphs into per-contact campaigns:
- Graph compilation into an ordered, delay-annotated step list
- Per-contact scheduling with cumulative delays and {{token}} personalization
- Deployment orchestration with compliance checks and live-search detection
- An execution gate with autonomy levels, approvals, overrides and pause/resume

Example:
    ```python
    from campaign_runtime import CampaignRuntime, Settings

    runtime = await CampaignRuntime.create(
        workflows=workflow_source,
        contacts=contact_source,
        settings=Settings.from_env(),
    )

    # Deploy a workflow to three contacts
    result = await runtime.deploy(
        "wf_1",
        ["c_1", "c_2", "c_3"],
        actor_id="user-456",
        workspace_id="ws-123",
    )

    # Periodically gate and send whatever is due
    summary = await runtime.process_due(sender)
    ```
"""

from .campaigns import (
    Campaign,
    CampaignStatus,
    CampaignStore,
    CampaignType,
    InMemoryCampaignStore,
)
from .config import (
    CompilerConfig,
    GateConfig,
    LoggingConfig,
    SchedulerConfig,
    Settings,
    StorageConfig,
    configure,
    get_settings,
    load_env,
)
from .context import DeploymentContext
from .deployment import (
    ComplianceChecker,
    ComplianceIssue,
    ComplianceReport,
    ContactSource,
    DeploymentOrchestrator,
    DeploymentResult,
    IssueSeverity,
    LiveSearchConfig,
    LiveSearchResult,
    LiveSearchTrigger,
    WorkflowSource,
)
from .errors import (
    ActionNotFound,
    CampaignNotFound,
    CampaignRuntimeError,
    ComplianceRejected,
    ConfigError,
    EmptyWorkflow,
    ErrorCode,
    ErrorContext,
    InvalidTransition,
    LiveSearchFailed,
    NoContactsFound,
    NoContactsProvided,
    NoStepsToSchedule,
    StepNotFound,
    WorkflowCycleError,
)
from .events import (
    ActivityAction,
    ActivityEvent,
    ActivitySink,
    ActivityType,
    CallbackActivitySink,
    InMemoryActivitySink,
    NullActivitySink,
)
from .gate import (
    ApprovalDecision,
    ApprovalItem,
    ApprovalPolicy,
    ApprovalStatus,
    AutonomyLevel,
    ExecutionGate,
    GateDecision,
    GateResult,
    OverrideType,
    ProcessSummary,
    SendResult,
    StepSender,
)
from .logging import StructuredLogger, configure_logging, get_logger
from .runtime import CampaignRuntime
from .scheduling import (
    Contact,
    InMemoryScheduledStepStore,
    ScheduledStatus,
    ScheduledStep,
    ScheduledStepStore,
    StepScheduler,
    personalize,
)
from .steps import CampaignStep, DelayUnit, InMemoryStepStore, StepStore
from .storage import StoreBundle, create_stores
from .workflow import GraphCompiler, Workflow, WorkflowEdge, WorkflowNode

__version__ = "0.1.0"

__all__ = [
    # Runtime
    "CampaignRuntime",
    "DeploymentContext",
    # Workflow
    "Workflow",
    "WorkflowNode",
    "WorkflowEdge",
    "GraphCompiler",
    # Steps
    "CampaignStep",
    "DelayUnit",
    "StepStore",
    "InMemoryStepStore",
    # Scheduling
    "Contact",
    "ScheduledStatus",
    "ScheduledStep",
    "ScheduledStepStore",
    "InMemoryScheduledStepStore",
    "StepScheduler",
    "personalize",
    # Campaigns
    "Campaign",
    "CampaignStatus",
    "CampaignType",
    "CampaignStore",
    "InMemoryCampaignStore",
    # Deployment
    "DeploymentOrchestrator",
    "DeploymentResult",
    "ComplianceChecker",
    "ComplianceIssue",
    "ComplianceReport",
    "IssueSeverity",
    "ContactSource",
    "WorkflowSource",
    "LiveSearchConfig",
    "LiveSearchResult",
    "LiveSearchTrigger",
    # Gate
    "ExecutionGate",
    "ApprovalPolicy",
    "AutonomyLevel",
    "ApprovalStatus",
    "ApprovalDecision",
    "ApprovalItem",
    "OverrideType",
    "GateDecision",
    "GateResult",
    "SendResult",
    "StepSender",
    "ProcessSummary",
    # Events
    "ActivityType",
    "ActivityAction",
    "ActivityEvent",
    "ActivitySink",
    "NullActivitySink",
    "InMemoryActivitySink",
    "CallbackActivitySink",
    # Storage
    "StoreBundle",
    "create_stores",
    # Config
    "Settings",
    "CompilerConfig",
    "SchedulerConfig",
    "GateConfig",
    "LoggingConfig",
    "StorageConfig",
    "get_settings",
    "configure",
    "load_env",
    # Logging
    "StructuredLogger",
    "get_logger",
    "configure_logging",
    # Errors
    "ErrorCode",
    "ErrorContext",
    "CampaignRuntimeError",
    "EmptyWorkflow",
    "WorkflowCycleError",
    "NoStepsToSchedule",
    "NoContactsFound",
    "NoContactsProvided",
    "ComplianceRejected",
    "LiveSearchFailed",
    "CampaignNotFound",
    "StepNotFound",
    "ActionNotFound",
    "InvalidTransition",
    "ConfigError",
]
