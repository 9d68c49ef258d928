"""
Error taxonomy for campaign-runtime.

This module provides the exception hierarchy raised by the compiler,
scheduler, execution gate and deployment orchestrator:
- Error codes for programmatic handling
- Structured context (workflow, campaign, trace) for debugging
- Compliance issues carried on rejection
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the campaign runtime."""

    # Workflow / compilation errors (1xxx)
    WORKFLOW_ERROR = "ERR_1000"
    EMPTY_WORKFLOW = "ERR_1001"
    WORKFLOW_CYCLE = "ERR_1002"

    # Scheduling errors (2xxx)
    SCHEDULING_ERROR = "ERR_2000"
    NO_STEPS_TO_SCHEDULE = "ERR_2001"
    NO_CONTACTS_FOUND = "ERR_2002"
    NO_CONTACTS_PROVIDED = "ERR_2003"

    # Deployment errors (3xxx)
    DEPLOYMENT_ERROR = "ERR_3000"
    COMPLIANCE_REJECTED = "ERR_3001"
    LIVE_SEARCH_FAILED = "ERR_3002"

    # Lookup errors (4xxx)
    NOT_FOUND = "ERR_4000"
    CAMPAIGN_NOT_FOUND = "ERR_4001"
    STEP_NOT_FOUND = "ERR_4002"
    ACTION_NOT_FOUND = "ERR_4003"

    # Execution gate errors (5xxx)
    GATE_ERROR = "ERR_5000"
    INVALID_TRANSITION = "ERR_5001"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    workflow_id: str | None = None
    campaign_id: str | None = None
    workspace_id: str | None = None
    trace_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "campaign_id": self.campaign_id,
            "workspace_id": self.workspace_id,
            "trace_id": self.trace_id,
            "operation": self.operation,
            **self.extra,
        }


class CampaignRuntimeError(Exception):
    """
    Base exception for all campaign runtime errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the caller may retry the operation as-is
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.campaign_id:
            parts.append(f"(campaign_id={self.context.campaign_id})")
        elif self.context.workflow_id:
            parts.append(f"(workflow_id={self.context.workflow_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Workflow Errors
# =============================================================================


class WorkflowError(CampaignRuntimeError):
    """Base class for workflow compilation errors."""

    code = ErrorCode.WORKFLOW_ERROR


class EmptyWorkflow(WorkflowError):
    """The workflow has no nodes to compile."""

    code = ErrorCode.EMPTY_WORKFLOW

    def __init__(self, message: str = "Workflow has no nodes", **kwargs):
        super().__init__(message, **kwargs)


class WorkflowCycleError(WorkflowError):
    """The workflow graph contains a cycle and strict ordering was requested."""

    code = ErrorCode.WORKFLOW_CYCLE

    def __init__(
        self,
        message: str = "Workflow graph contains a cycle",
        *,
        unresolved: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.unresolved = list(unresolved or [])


# =============================================================================
# Scheduling Errors
# =============================================================================


class SchedulingError(CampaignRuntimeError):
    """Base class for scheduling errors."""

    code = ErrorCode.SCHEDULING_ERROR


class NoStepsToSchedule(SchedulingError):
    code = ErrorCode.NO_STEPS_TO_SCHEDULE

    def __init__(self, message: str = "Campaign has no steps to schedule", **kwargs):
        super().__init__(message, **kwargs)


class NoContactsFound(SchedulingError):
    code = ErrorCode.NO_CONTACTS_FOUND

    def __init__(self, message: str = "No contacts found for the given ids", **kwargs):
        super().__init__(message, **kwargs)


class NoContactsProvided(SchedulingError):
    code = ErrorCode.NO_CONTACTS_PROVIDED

    def __init__(self, message: str = "At least one contact is required to deploy", **kwargs):
        super().__init__(message, **kwargs)


# =============================================================================
# Deployment Errors
# =============================================================================


class DeploymentError(CampaignRuntimeError):
    """Base class for deployment errors."""

    code = ErrorCode.DEPLOYMENT_ERROR


class ComplianceRejected(DeploymentError):
    """The compliance pre-check refused the deployment.

    The structured issues reported by the checker are kept on ``issues``.
    """

    code = ErrorCode.COMPLIANCE_REJECTED

    def __init__(
        self,
        message: str = "Compliance check failed",
        *,
        issues: list[Any] | None = None,
        warnings: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.issues = list(issues or [])
        self.warnings = list(warnings or [])

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["issues"] = [i.to_dict() if hasattr(i, "to_dict") else i for i in self.issues]
        d["warnings"] = list(self.warnings)
        return d


class LiveSearchFailed(DeploymentError):
    """The live-search discovery action could not be started."""

    code = ErrorCode.LIVE_SEARCH_FAILED
    retryable = True


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(CampaignRuntimeError):
    """Base class for missing records."""

    code = ErrorCode.NOT_FOUND


class CampaignNotFound(NotFoundError):
    code = ErrorCode.CAMPAIGN_NOT_FOUND

    def __init__(self, campaign_id: str, **kwargs):
        super().__init__(f"Campaign {campaign_id} not found", **kwargs)
        self.campaign_id = campaign_id


class StepNotFound(NotFoundError):
    code = ErrorCode.STEP_NOT_FOUND

    def __init__(self, step_id: str, **kwargs):
        super().__init__(f"Step {step_id} not found", **kwargs)
        self.step_id = step_id


class ActionNotFound(NotFoundError):
    code = ErrorCode.ACTION_NOT_FOUND

    def __init__(self, action_id: str, **kwargs):
        super().__init__(f"Action {action_id} not found", **kwargs)
        self.action_id = action_id


# =============================================================================
# Gate / Config Errors
# =============================================================================


class InvalidTransition(CampaignRuntimeError):
    """A scheduled step was asked to move to a state it cannot reach."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, current: str, target: str, **kwargs):
        super().__init__(f"Invalid transition: {current} -> {target}", **kwargs)
        self.current = current
        self.target = target


class ConfigError(CampaignRuntimeError):
    code = ErrorCode.CONFIG_ERROR


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "CampaignRuntimeError",
    # Workflow
    "WorkflowError",
    "EmptyWorkflow",
    "WorkflowCycleError",
    # Scheduling
    "SchedulingError",
    "NoStepsToSchedule",
    "NoContactsFound",
    "NoContactsProvided",
    # Deployment
    "DeploymentError",
    "ComplianceRejected",
    "LiveSearchFailed",
    # Lookup
    "NotFoundError",
    "CampaignNotFound",
    "StepNotFound",
    "ActionNotFound",
    # Gate / config
    "InvalidTransition",
    "ConfigError",
]
