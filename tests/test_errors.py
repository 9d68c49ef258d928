"""
Tests for the error taxonomy.
"""
import pytest

from campaign_runtime.deployment import ComplianceIssue
from campaign_runtime.errors import (
    ActionNotFound,
    CampaignNotFound,
    CampaignRuntimeError,
    ComplianceRejected,
    DeploymentError,
    EmptyWorkflow,
    ErrorCode,
    ErrorContext,
    InvalidTransition,
    LiveSearchFailed,
    NoContactsFound,
    NoContactsProvided,
    NoStepsToSchedule,
    NotFoundError,
    SchedulingError,
    StepNotFound,
    WorkflowCycleError,
    WorkflowError,
)


class TestErrorCodes:
    """Test error code enumeration."""

    def test_error_codes_are_strings(self):
        assert all(e.value.startswith("ERR_") for e in ErrorCode)

    def test_error_codes_unique(self):
        values = [e.value for e in ErrorCode]
        assert len(values) == len(set(values))


class TestErrorContext:
    """Test error context."""

    def test_to_dict(self):
        ctx = ErrorContext(workflow_id="wf_1", campaign_id="camp_1", extra={"node": "n1"})

        d = ctx.to_dict()

        assert d["workflow_id"] == "wf_1"
        assert d["campaign_id"] == "camp_1"
        assert d["node"] == "n1"


class TestErrorHierarchy:
    """Test the exception classes."""

    @pytest.mark.parametrize(
        "error, base, code",
        [
            (EmptyWorkflow(), WorkflowError, ErrorCode.EMPTY_WORKFLOW),
            (WorkflowCycleError(), WorkflowError, ErrorCode.WORKFLOW_CYCLE),
            (NoStepsToSchedule(), SchedulingError, ErrorCode.NO_STEPS_TO_SCHEDULE),
            (NoContactsFound(), SchedulingError, ErrorCode.NO_CONTACTS_FOUND),
            (NoContactsProvided(), SchedulingError, ErrorCode.NO_CONTACTS_PROVIDED),
            (ComplianceRejected(), DeploymentError, ErrorCode.COMPLIANCE_REJECTED),
            (CampaignNotFound("c1"), NotFoundError, ErrorCode.CAMPAIGN_NOT_FOUND),
            (StepNotFound("s1"), NotFoundError, ErrorCode.STEP_NOT_FOUND),
            (ActionNotFound("a1"), NotFoundError, ErrorCode.ACTION_NOT_FOUND),
        ],
    )
    def test_codes_and_bases(self, error, base, code):
        assert isinstance(error, base)
        assert isinstance(error, CampaignRuntimeError)
        assert error.code == code
        assert error.retryable is False

    def test_str_includes_code_and_context(self):
        error = EmptyWorkflow(context=ErrorContext(workflow_id="wf_9"))

        assert str(error) == "[ERR_1001] Workflow has no nodes (workflow_id=wf_9)"

    def test_not_found_keeps_id(self):
        assert CampaignNotFound("camp_1").campaign_id == "camp_1"
        assert ActionNotFound("a_1").action_id == "a_1"
        assert "s_1" in StepNotFound("s_1").message

    def test_live_search_is_retryable(self):
        assert LiveSearchFailed("quota").retryable is True

    def test_invalid_transition(self):
        error = InvalidTransition("completed", "approved")

        assert error.current == "completed"
        assert error.target == "approved"
        assert "completed -> approved" in str(error)

    def test_cause_and_override(self):
        cause = KeyError("x")
        error = CampaignRuntimeError("boom", code=ErrorCode.GATE_ERROR, retryable=True, cause=cause)

        d = error.to_dict()

        assert d["code"] == "ERR_5000"
        assert d["retryable"] is True
        assert d["cause"] == "'x'"
        assert d["error_type"] == "CampaignRuntimeError"


class TestComplianceRejected:
    """Test compliance rejection payload."""

    def test_issues_serialized(self):
        error = ComplianceRejected(
            issues=[ComplianceIssue(code="NO_CONSENT", message="Missing consent", affected_contacts=["c_1"])],
            warnings=["Low volume"],
        )

        d = error.to_dict()

        assert d["issues"][0]["code"] == "NO_CONSENT"
        assert d["issues"][0]["affected_contacts"] == ["c_1"]
        assert d["warnings"] == ["Low volume"]
