"""
Tests for activity events and sinks.
"""
import pytest

from campaign_runtime.context import DeploymentContext
from campaign_runtime.events import (
    ActivityAction,
    ActivityEvent,
    ActivitySink,
    ActivityType,
    CallbackActivitySink,
    InMemoryActivitySink,
    emit_safely,
)


class BrokenSink(ActivitySink):
    async def emit(self, event):
        raise RuntimeError("broadcaster down")


class TestActivityEvent:
    """Test event construction and serialization."""

    def test_from_context(self):
        ctx = DeploymentContext(workspace_id="ws_1", actor_id="u_1", workflow_id="wf_1")

        event = ActivityEvent.from_context(
            ctx, ActivityType.STARTED, ActivityAction.WORKFLOW_DEPLOY, progress=10, message="Starting"
        )

        assert event.workspace_id == "ws_1"
        assert event.trace_id == ctx.trace_id
        assert event.progress == 10

    def test_dict_round_trip(self):
        event = ActivityEvent(action=ActivityAction.STEP_FAILED, type=ActivityType.FAILED, data={"error": "bounced"})

        restored = ActivityEvent.from_dict(event.to_dict())

        assert restored == event


class TestSinks:
    """Test sink implementations."""

    @pytest.mark.asyncio
    async def test_in_memory_filters_and_bounds(self):
        sink = InMemoryActivitySink(max_events=2)
        await sink.emit(ActivityEvent(action=ActivityAction.STEP_COMPLETED, workspace_id="ws_1"))
        await sink.emit(ActivityEvent(action=ActivityAction.STEP_FAILED, workspace_id="ws_1"))
        await sink.emit(ActivityEvent(action=ActivityAction.STEP_FAILED, workspace_id="ws_2"))

        assert len(await sink.events()) == 2
        assert len(await sink.events(action=ActivityAction.STEP_FAILED)) == 2
        assert len(await sink.events(workspace_id="ws_2")) == 1

        await sink.clear()
        assert await sink.events() == []

    @pytest.mark.asyncio
    async def test_callback_sync_and_async(self):
        received = []

        async def async_callback(event):
            received.append(("async", event.action))

        await CallbackActivitySink(lambda e: received.append(("sync", e.action))).emit(ActivityEvent())
        await CallbackActivitySink(async_callback).emit(ActivityEvent())

        assert received == [
            ("sync", ActivityAction.WORKFLOW_DEPLOY),
            ("async", ActivityAction.WORKFLOW_DEPLOY),
        ]

    @pytest.mark.asyncio
    async def test_emit_safely_swallows_sink_errors(self, logger):
        await emit_safely(BrokenSink(), ActivityEvent(), logger)
        await emit_safely(None, ActivityEvent(), logger)
