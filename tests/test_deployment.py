"""
Tests for the deployment orchestrator.
"""
import pytest

from campaign_runtime.campaigns import CampaignStatus, CampaignType
from campaign_runtime.config import GateConfig
from campaign_runtime.deployment import (
    OPTED_OUT_CONTACTS,
    ComplianceIssue,
    ComplianceReport,
    DeploymentOrchestrator,
    IssueSeverity,
    LiveSearchConfig,
    LiveSearchResult,
)
from campaign_runtime.errors import (
    CampaignNotFound,
    ComplianceRejected,
    EmptyWorkflow,
    ErrorCode,
    LiveSearchFailed,
    NoContactsFound,
    NoContactsProvided,
    NoStepsToSchedule,
)
from campaign_runtime.events import ActivityAction, ActivityType
from campaign_runtime.gate import ApprovalStatus, ExecutionGate
from campaign_runtime.scheduling import ScheduledFilter

from conftest import BASE_TIME, DAY, FakeCompliance, linear_graph, make_edge, make_node


def live_search_graph():
    nodes = [
        make_node("s", "action", 0, originalType="linkedin_search", keywords="founder", maxResults=40),
        make_node("m", "linkedin_message", 100, delay=1, content="Hi {{first_name}}"),
    ]
    return nodes, [make_edge("s", "m")]


class TestDeploy:
    """Test the full deploy flow."""

    @pytest.mark.asyncio
    async def test_deploy_schedules_every_contact(self, orchestrator, stores):
        result = await orchestrator.deploy("wf_1", ["c_1", "c_2"], "u_1", "ws_1", base_time=BASE_TIME)

        assert result.is_live_search is False
        assert result.step_count == 3
        assert result.scheduled_count == 6

        campaign = await stores.campaigns.get(result.campaign_id)
        assert campaign.status == CampaignStatus.ACTIVE
        assert campaign.workflow_id == "wf_1"
        assert campaign.name == "Outreach"
        assert campaign.created_by == "u_1"
        assert campaign.workspace_id == "ws_1"

        entries = await stores.scheduled.list(ScheduledFilter(contact_id="c_2"))
        assert [e.scheduled_at for e in entries] == [BASE_TIME, BASE_TIME + 2 * DAY, BASE_TIME + 3 * DAY]
        assert entries[0].content["subject"] == "Hi Grace"
        assert entries[0].content["body"] == "Hello Grace at Navy"
        assert all(e.workspace_id == "ws_1" for e in entries)

    @pytest.mark.asyncio
    async def test_progress_events(self, orchestrator, sink):
        await orchestrator.deploy("wf_1", ["c_1"], "u_1", "ws_1")

        events = await sink.events(workspace_id="ws_1")
        progress = [(e.action, e.progress) for e in events if e.progress is not None]
        assert progress == [
            (ActivityAction.WORKFLOW_DEPLOY, 10),
            (ActivityAction.WORKFLOW_DEPLOY, 30),
            (ActivityAction.WORKFLOW_DEPLOYED, 100),
        ]
        assert events[-1].type == ActivityType.COMPLETED
        assert events[-1].data["scheduled_count"] == 3
        assert len({e.trace_id for e in events}) == 1

    @pytest.mark.asyncio
    async def test_redeploy_reuses_campaign(self, orchestrator, stores):
        first = await orchestrator.deploy("wf_1", ["c_1", "c_2"], "u_1", "ws_1")
        second = await orchestrator.deploy("wf_1", ["c_3"], "u_1", "ws_1")

        assert first.campaign_id == second.campaign_id
        steps = await stores.steps.list_for_campaign(first.campaign_id)
        entries = await stores.scheduled.list(ScheduledFilter(campaign_id=first.campaign_id))
        assert len(steps) == 3
        assert {e.contact_id for e in entries} == {"c_3"}
        assert {e.step_id for e in entries} == {s.step_id for s in steps}

    @pytest.mark.asyncio
    async def test_redeploy_retires_pending_approvals(self, orchestrator, stores, sender, logger):
        """Approval items of a replaced schedule are rejected, not left pending."""
        gate = ExecutionGate(
            stores.scheduled,
            stores.approvals,
            stores.pauses,
            stores.learning,
            config=GateConfig(autonomy_level="manual_approval"),
            logger=logger,
        )
        first = await orchestrator.deploy("wf_1", ["c_1"], "u_1", "ws_1", base_time=BASE_TIME)
        summary = await gate.process_due(sender, now=BASE_TIME + 3 * DAY + 1)
        assert summary.pending_approval == 3
        old_items = await stores.approvals.list_pending("ws_1")

        await orchestrator.deploy("wf_1", ["c_1"], "u_1", "ws_1", base_time=BASE_TIME)

        status = await orchestrator.execution_status(first.campaign_id)
        assert status["pending_approval"] == 0
        assert status["by_status"] == {"pending": 3}
        assert await stores.approvals.list_pending("ws_1") == []
        for item in old_items:
            retired = await stores.approvals.get(item.approval_id)
            assert retired.status == ApprovalStatus.REJECTED
            assert retired.resolution_reason == "Schedule replaced"

    @pytest.mark.asyncio
    async def test_unknown_contacts_skipped(self, orchestrator):
        result = await orchestrator.deploy("wf_1", ["c_1", "ghost"], "u_1", "ws_1")

        assert result.scheduled_count == 3

    @pytest.mark.asyncio
    async def test_no_contacts_provided(self, orchestrator, stores, sink):
        with pytest.raises(NoContactsProvided):
            await orchestrator.deploy("wf_1", [], "u_1", "ws_1")

        # The campaign created before the failure is kept
        campaign = await stores.campaigns.find_by_workflow("wf_1", "ws_1")
        assert campaign is not None
        assert campaign.status == CampaignStatus.DRAFT
        failed = await sink.events(action=ActivityAction.WORKFLOW_DEPLOY_FAILED)
        assert len(failed) == 1
        assert failed[0].data["error"]["code"] == ErrorCode.NO_CONTACTS_PROVIDED.value

    @pytest.mark.asyncio
    async def test_no_contacts_found(self, orchestrator):
        with pytest.raises(NoContactsFound):
            await orchestrator.deploy("wf_1", ["ghost"], "u_1", "ws_1")

    @pytest.mark.asyncio
    async def test_empty_workflow(self, orchestrator, workflows):
        workflows.add("wf_empty", [], [])

        with pytest.raises(EmptyWorkflow):
            await orchestrator.deploy("wf_empty", ["c_1"], "u_1", "ws_1")

    @pytest.mark.asyncio
    async def test_only_triggers(self, orchestrator, workflows):
        workflows.add("wf_t", [make_node("t", "trigger", 0)], [])

        with pytest.raises(NoStepsToSchedule):
            await orchestrator.deploy("wf_t", ["c_1"], "u_1", "ws_1")


class TestCompliance:
    """Test the compliance pre-check."""

    @pytest.mark.asyncio
    async def test_rejection_blocks_deployment(self, workflows, contacts, stores, sink, logger):
        compliance = FakeCompliance.rejecting()
        orchestrator = DeploymentOrchestrator(
            workflows,
            contacts,
            stores.campaigns,
            stores.steps,
            stores.scheduled,
            compliance=compliance,
            sink=sink,
            logger=logger,
        )

        with pytest.raises(ComplianceRejected) as exc_info:
            await orchestrator.deploy("wf_1", ["c_1"], "u_1", "ws_1")

        assert [i.code for i in exc_info.value.issues] == ["MISSING_UNSUBSCRIBE"]
        assert compliance.calls[0]["contact_ids"] == ["c_1"]
        assert compliance.calls[0]["step_count"] == 3

        campaign = await stores.campaigns.find_by_workflow("wf_1", "ws_1")
        assert await stores.steps.list_for_campaign(campaign.id) == []
        assert await stores.scheduled.list(ScheduledFilter(campaign_id=campaign.id)) == []
        assert len(await sink.events(action=ActivityAction.COMPLIANCE_FAILED)) == 1
        assert await sink.events(action=ActivityAction.WORKFLOW_DEPLOY_FAILED) == []

    @pytest.mark.asyncio
    async def test_opted_out_contacts_excluded(self, orchestrator, compliance, stores):
        compliance.report = ComplianceReport.from_issues(
            [
                ComplianceIssue(
                    code=OPTED_OUT_CONTACTS,
                    message="Contacts opted out",
                    affected_contacts=["c_2"],
                ),
                ComplianceIssue(code="LOW_VOLUME", message="Small list", severity=IssueSeverity.WARNING),
            ],
            warnings=["Consider a larger list"],
        )

        result = await orchestrator.deploy("wf_1", ["c_1", "c_2"], "u_1", "ws_1")

        assert result.excluded_contacts == ["c_2"]
        assert result.warnings == ["Consider a larger list"]
        entries = await stores.scheduled.list(ScheduledFilter(campaign_id=result.campaign_id))
        assert {e.contact_id for e in entries} == {"c_1"}

    @pytest.mark.asyncio
    async def test_everyone_opted_out(self, orchestrator, compliance):
        compliance.report = ComplianceReport.from_issues(
            [ComplianceIssue(code=OPTED_OUT_CONTACTS, message="Opted out", affected_contacts=["c_1"])]
        )

        with pytest.raises(NoContactsFound):
            await orchestrator.deploy("wf_1", ["c_1"], "u_1", "ws_1")

    def test_report_from_issues(self):
        report = ComplianceReport.from_issues(
            [
                ComplianceIssue(code=OPTED_OUT_CONTACTS, message="x", affected_contacts=["a"]),
                ComplianceIssue(code="W", message="w", severity=IssueSeverity.WARNING),
            ]
        )

        assert report.can_proceed is True
        assert report.passed is False
        assert report.opted_out_contacts == {"a"}
        assert report.blocking_issues == []


class TestLiveSearch:
    """Test live-search deployments."""

    @pytest.mark.asyncio
    async def test_live_search_deploy(self, orchestrator, workflows, live_search, stores, sink):
        nodes, edges = live_search_graph()
        workflows.add("wf_live", nodes, edges, name="Founders")

        result = await orchestrator.deploy("wf_live", [], "u_1", "ws_1")

        assert result.is_live_search is True
        assert result.scheduled_count == 0
        assert live_search.calls[0].keywords == "founder"
        assert live_search.calls[0].max_results == 40

        campaign = await stores.campaigns.get(result.campaign_id)
        assert campaign.campaign_type == CampaignType.LINKEDIN_SEARCH
        assert campaign.status == CampaignStatus.ACTIVE
        assert campaign.is_live_search
        assert await stores.scheduled.list(ScheduledFilter(campaign_id=campaign.id)) == []
        assert len(await sink.events(action=ActivityAction.LIVE_SEARCH_STARTED)) == 1
        deployed = await sink.events(action=ActivityAction.WORKFLOW_DEPLOYED)
        assert deployed[0].progress == 100

    @pytest.mark.asyncio
    async def test_redeploy_as_live_search(self, orchestrator, workflows, stores):
        """Switching the entry node to a search converts the existing campaign."""
        first = await orchestrator.deploy("wf_1", ["c_1", "c_2"], "u_1", "ws_1")
        assert len(await stores.scheduled.list(ScheduledFilter(campaign_id=first.campaign_id))) == 6

        nodes, edges = live_search_graph()
        workflows.add("wf_1", nodes, edges)
        second = await orchestrator.deploy("wf_1", [], "u_1", "ws_1")

        assert second.campaign_id == first.campaign_id
        assert second.is_live_search is True
        campaign = await stores.campaigns.get(first.campaign_id)
        assert campaign.campaign_type == CampaignType.LINKEDIN_SEARCH
        assert campaign.is_live_search
        assert await stores.scheduled.list(ScheduledFilter(campaign_id=campaign.id)) == []
        assert await stores.steps.list_for_campaign(campaign.id) == []
        status = await orchestrator.execution_status(campaign.id)
        assert status["is_live_search"] is True
        assert status["total"] == 0

    @pytest.mark.asyncio
    async def test_redeploy_live_search_as_workflow(self, orchestrator, workflows, stores):
        nodes, edges = live_search_graph()
        workflows.add("wf_live", nodes, edges)
        first = await orchestrator.deploy("wf_live", [], "u_1", "ws_1")

        regular, regular_edges = linear_graph()
        workflows.add("wf_live", regular, regular_edges)
        second = await orchestrator.deploy("wf_live", ["c_1"], "u_1", "ws_1")

        assert second.campaign_id == first.campaign_id
        campaign = await stores.campaigns.get(first.campaign_id)
        assert campaign.campaign_type == CampaignType.WORKFLOW
        assert campaign.is_live_search is False
        assert second.scheduled_count == 3

    @pytest.mark.asyncio
    async def test_live_search_failure(self, orchestrator, workflows, live_search):
        nodes, edges = live_search_graph()
        workflows.add("wf_live", nodes, edges)
        live_search.result = LiveSearchResult(success=False, error="quota exhausted")

        with pytest.raises(LiveSearchFailed, match="quota exhausted"):
            await orchestrator.deploy("wf_live", [], "u_1", "ws_1")

    @pytest.mark.asyncio
    async def test_live_search_without_trigger(self, workflows, contacts, stores, logger):
        nodes, edges = live_search_graph()
        workflows.add("wf_live", nodes, edges)
        orchestrator = DeploymentOrchestrator(
            workflows, contacts, stores.campaigns, stores.steps, stores.scheduled, logger=logger
        )

        with pytest.raises(LiveSearchFailed):
            await orchestrator.deploy("wf_live", [], "u_1", "ws_1")

    def test_config_from_node(self):
        node = make_node("s", "linkedin_search", 0, config={"searchKeywords": "cto", "title": "CTO", "targetCount": "7"})

        config = LiveSearchConfig.from_node(node)

        assert config.keywords == "cto"
        assert config.job_title == "CTO"
        assert config.max_results == 7
        assert config.to_dict()["connectionDegree"] == "2nd"


class TestCompileAndSchedule:
    """Test compile and schedule as separate operations."""

    @pytest.mark.asyncio
    async def test_compile_creates_draft_campaign(self, orchestrator, stores):
        steps = await orchestrator.compile("wf_1")

        campaign = await stores.campaigns.get(steps[0].campaign_id)
        assert campaign.status == CampaignStatus.DRAFT
        assert [s.node_id for s in steps] == ["e", "w", "l"]

    @pytest.mark.asyncio
    async def test_compile_replaces_steps(self, orchestrator, stores, workflows):
        first = await orchestrator.compile("wf_1")
        workflows.nodes["wf_1"] = workflows.nodes["wf_1"][:2]

        second = await orchestrator.compile("wf_1")

        stored = await stores.steps.list_for_campaign(first[0].campaign_id)
        assert len(second) == 1
        assert [s.step_id for s in stored] == [s.step_id for s in second]

    @pytest.mark.asyncio
    async def test_schedule_activates_campaign(self, orchestrator, stores):
        steps = await orchestrator.compile("wf_1")
        campaign_id = steps[0].campaign_id

        entries = await orchestrator.schedule(campaign_id, ["c_1", "c_2"], base_time=BASE_TIME)

        assert len(entries) == 6
        assert (await stores.campaigns.get(campaign_id)).status == CampaignStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_schedule_replaces_previous(self, orchestrator, stores):
        steps = await orchestrator.compile("wf_1")
        campaign_id = steps[0].campaign_id
        await orchestrator.schedule(campaign_id, ["c_1", "c_2"])

        await orchestrator.schedule(campaign_id, ["c_3"])

        entries = await stores.scheduled.list(ScheduledFilter(campaign_id=campaign_id))
        assert len(entries) == 3
        assert {e.contact_id for e in entries} == {"c_3"}

    @pytest.mark.asyncio
    async def test_schedule_unknown_campaign(self, orchestrator):
        with pytest.raises(CampaignNotFound):
            await orchestrator.schedule("missing", ["c_1"])

    @pytest.mark.asyncio
    async def test_schedule_without_steps(self, orchestrator, workflows, stores):
        workflows.add("wf_t", [make_node("t", "trigger", 0)], [])
        steps = await orchestrator.compile("wf_t")
        assert steps == []
        campaign = await stores.campaigns.find_by_workflow("wf_t")

        with pytest.raises(NoStepsToSchedule):
            await orchestrator.schedule(campaign.id, ["c_1"])

    @pytest.mark.asyncio
    async def test_execution_status(self, orchestrator, gate, sender):
        result = await orchestrator.deploy("wf_1", ["c_1"], "u_1", "ws_1", base_time=BASE_TIME)
        await gate.process_due(sender, now=BASE_TIME + 1)

        status = await orchestrator.execution_status(result.campaign_id)

        assert status["total"] == 3
        assert status["by_status"] == {"completed": 1, "pending": 2}
        assert status["campaign_status"] == "active"
        assert status["pending_approval"] == 0

    @pytest.mark.asyncio
    async def test_execution_status_unknown(self, orchestrator):
        with pytest.raises(CampaignNotFound):
            await orchestrator.execution_status("missing")
