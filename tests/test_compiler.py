"""
Tests for the workflow graph compiler.
"""
import logging

import pytest

from campaign_runtime.config import CompilerConfig
from campaign_runtime.errors import EmptyWorkflow, ErrorCode, WorkflowCycleError
from campaign_runtime.hashing import steps_fingerprint
from campaign_runtime.logging import StructuredLogger
from campaign_runtime.steps import DelayUnit
from campaign_runtime.workflow import GraphCompiler, WorkflowNode, find_entry_node

from conftest import linear_graph, make_edge, make_node


@pytest.fixture
def compiler(logger):
    return GraphCompiler(CompilerConfig(), logger=logger)


class TestTopologicalOrder:
    """Test node ordering."""

    def test_edges_define_order(self, compiler):
        """Edges win over position when the graph is acyclic."""
        nodes = [
            make_node("a", "email", 300),
            make_node("b", "sms", 100),
            make_node("c", "phone", 200),
        ]
        edges = [make_edge("a", "b"), make_edge("b", "c")]

        ordered = compiler.topological_order(nodes, edges)

        assert [n.id for n in ordered] == ["a", "b", "c"]

    def test_dangling_edges_ignored(self, compiler):
        """Edges referencing unknown nodes do not block ordering."""
        nodes = [make_node("a", "email", 0), make_node("b", "sms", 10)]
        edges = [make_edge("ghost", "a"), make_edge("a", "b"), make_edge("b", "missing")]

        ordered = compiler.topological_order(nodes, edges)

        assert [n.id for n in ordered] == ["a", "b"]

    def test_cycle_falls_back_to_position(self, compiler):
        """A cycle orders every node by position_y."""
        nodes = [
            make_node("x", "email", 50),
            make_node("y", "sms", 10),
            make_node("z", "phone", 30),
        ]
        edges = [make_edge("x", "y"), make_edge("y", "z"), make_edge("z", "x")]

        ordered = compiler.topological_order(nodes, edges)

        assert [n.id for n in ordered] == ["y", "z", "x"]

    def test_cycle_fallback_is_deterministic(self, compiler):
        """Compiling the same cyclic graph twice gives the same order."""
        nodes = [make_node(str(i), "email", float(10 - i)) for i in range(5)]
        edges = [make_edge("0", "1"), make_edge("1", "0")]

        first = [n.id for n in compiler.topological_order(nodes, edges)]
        second = [n.id for n in compiler.topological_order(list(reversed(nodes)), edges)]

        assert first == second == ["4", "3", "2", "1", "0"]

    def test_cycle_fallback_logs_warning(self, caplog):
        """The fallback is observable as a warning event."""
        logger = StructuredLogger("campaign_runtime.tests.cycle", json_output=True)
        compiler = GraphCompiler(logger=logger)
        nodes = [make_node("a", "email", 0), make_node("b", "sms", 10)]
        edges = [make_edge("a", "b"), make_edge("b", "a")]

        with caplog.at_level(logging.WARNING, logger="campaign_runtime.tests.cycle"):
            compiler.topological_order(nodes, edges, workflow_id="wf_cycle")

        messages = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert any("workflow.cycle_fallback" in m and "wf_cycle" in m for m in messages)

    def test_strict_mode_raises(self, logger):
        """strict_acyclic turns the fallback into an error."""
        compiler = GraphCompiler(CompilerConfig(strict_acyclic=True), logger=logger)
        nodes = [make_node("a", "email", 0), make_node("b", "sms", 10), make_node("c", "sms", 20)]
        edges = [make_edge("a", "b"), make_edge("b", "a")]

        with pytest.raises(WorkflowCycleError) as exc_info:
            compiler.topological_order(nodes, edges)

        assert exc_info.value.code == ErrorCode.WORKFLOW_CYCLE
        assert set(exc_info.value.unresolved) == {"a", "b"}


class TestCompile:
    """Test step compilation."""

    def test_empty_workflow(self, compiler):
        with pytest.raises(EmptyWorkflow):
            compiler.compile([], [], "camp_1")

    def test_filters_trigger_and_condition(self, compiler):
        """Triggers and conditions never become steps; waits do."""
        nodes, edges = linear_graph()
        nodes.append(make_node("cond", "condition", 400))
        edges.append(make_edge("l", "cond"))

        steps = compiler.compile(nodes, edges, "camp_1")

        assert [s.node_id for s in steps] == ["e", "w", "l"]
        assert [s.order_index for s in steps] == [0, 1, 2]
        assert all(s.campaign_id == "camp_1" for s in steps)

    def test_delays(self, compiler):
        """First actionable step has no delay; waits carry their own."""
        nodes, edges = linear_graph()

        steps = compiler.compile(nodes, edges, "camp_1")

        assert [(s.delay, s.delay_unit) for s in steps] == [
            (0, DelayUnit.DAYS),
            (2, DelayUnit.DAYS),
            (1, DelayUnit.DAYS),
        ]

    def test_wait_days_and_defaults(self, compiler):
        """waitDays is read when delay is absent; a bare wait defaults to 1."""
        nodes = [
            make_node("a", "email", 0, delay=9),
            make_node("b", "wait", 10, waitDays=3),
            make_node("c", "wait", 20),
            make_node("d", "sms", 30, delay=4, delayUnit="hours"),
            make_node("e", "sms", 40),
        ]
        edges = [make_edge("a", "b"), make_edge("b", "c"), make_edge("c", "d"), make_edge("d", "e")]

        steps = compiler.compile(nodes, edges, "camp_1")

        assert [s.delay for s in steps] == [0, 3, 1, 4, 1]
        assert steps[3].delay_unit == DelayUnit.HOURS

    def test_first_step_delay_ignored_even_if_set(self, compiler):
        steps = compiler.compile([make_node("a", "email", 0, delay=5)], [], "camp_1")

        assert steps[0].delay == 0

    def test_negative_delays_clamped(self, compiler):
        """A negative delay never moves a step before its predecessor."""
        nodes = [
            make_node("a", "email", 0),
            make_node("b", "email", 10, delay=-3),
            make_node("c", "wait", 20, waitDays="-2"),
        ]

        steps = compiler.compile(nodes, [make_edge("a", "b"), make_edge("b", "c")], "camp_1")

        assert [s.delay for s in steps] == [0, 0, 0]

    def test_channel_mapping(self, compiler):
        nodes = [
            make_node("a", "email", 0),
            make_node("b", "linkedin_connect", 10),
            make_node("c", "linkedin_message", 20),
            make_node("d", "carrier_pigeon", 30),
        ]

        steps = compiler.compile(nodes, [], "camp_1")

        assert [s.channel for s in steps] == [
            "email",
            "linkedin_connection",
            "linkedin_message",
            "carrier_pigeon",
        ]

    def test_original_type_wins(self, compiler):
        """config.originalType overrides the stored node_type."""
        nodes = [
            make_node("a", "action", 0, originalType="sms"),
            make_node("b", "action", 10, originalType="trigger"),
        ]

        steps = compiler.compile(nodes, [], "camp_1")

        assert len(steps) == 1
        assert steps[0].channel == "sms"
        assert steps[0].settings["original_type"] == "sms"

    def test_labels_and_content(self, compiler):
        nodes = [
            make_node("a", "email", 0, content="Body A"),
            make_node("b", "email", 10, template="Template B"),
            make_node("c", "email", 20, messageOptions=[{"content": "Option C"}]),
            make_node("d", "email", 30, label="Named"),
        ]

        steps = compiler.compile(nodes, [], "camp_1")

        assert [s.label for s in steps] == ["Step 1", "Step 2", "Step 3", "Named"]
        assert [s.content for s in steps] == ["Body A", "Template B", "Option C", ""]

    def test_send_window_settings(self, compiler):
        steps = compiler.compile([make_node("a", "email", 0)], [], "camp_1")

        settings = steps[0].settings
        assert settings["send_window_start"] == "09:00"
        assert settings["send_window_end"] == "17:00"
        assert "monday" in settings["active_days"]

    def test_node_send_window_overrides_defaults(self, compiler):
        nodes = [
            make_node("a", "email", 0, sendWindowStart="07:00", sendWindowEnd="11:30", activeDays=["saturday"]),
            make_node("b", "email", 10, sendWindowStart="08:00"),
        ]

        first, second = compiler.compile(nodes, [make_edge("a", "b")], "camp_1")

        assert first.settings["send_window_start"] == "07:00"
        assert first.settings["send_window_end"] == "11:30"
        assert first.settings["active_days"] == ["saturday"]
        assert second.settings["send_window_start"] == "08:00"
        assert second.settings["send_window_end"] == "17:00"
        assert "friday" in second.settings["active_days"]

    def test_linkedin_search_settings(self, compiler):
        nodes = [make_node("s", "linkedin_search", 0, keywords="cto", maxResults="10")]

        steps = compiler.compile(nodes, [], "camp_1")

        search = steps[0].settings["config"]
        assert search["keywords"] == "cto"
        assert search["maxResults"] == 10
        assert search["connectionDegree"] == "2nd"

    def test_recompile_fingerprint_stable(self, compiler):
        """Fresh step ids do not change the fingerprint."""
        nodes, edges = linear_graph()

        first = compiler.compile(nodes, edges, "camp_1")
        second = compiler.compile(nodes, edges, "camp_1")

        assert [s.step_id for s in first] != [s.step_id for s in second]
        assert steps_fingerprint(first) == steps_fingerprint(second)

    def test_fingerprint_changes_with_content(self, compiler):
        nodes, edges = linear_graph()
        before = compiler.compile(nodes, edges, "camp_1")

        nodes[1] = make_node("e", "email", 100, label="Intro", content="Changed")
        after = compiler.compile(nodes, edges, "camp_1")

        assert steps_fingerprint(before) != steps_fingerprint(after)


class TestEntryNode:
    """Test entry node detection."""

    def test_root_with_lowest_position(self):
        nodes = [make_node("b", "email", 5), make_node("a", "trigger", 10), make_node("c", "sms", 0)]
        edges = [make_edge("a", "c")]

        entry = find_entry_node(nodes, edges)

        assert entry.id == "b"

    def test_all_nodes_have_incoming(self):
        nodes = [make_node("a", "email", 20), make_node("b", "sms", 10)]
        edges = [make_edge("a", "b"), make_edge("b", "a")]

        assert find_entry_node(nodes, edges).id == "b"

    def test_empty(self):
        assert find_entry_node([], []) is None

    def test_from_dict_camel_case(self):
        node = WorkflowNode.from_dict(
            {"id": "n1", "nodeType": "action", "positionY": "42", "config": {"originalType": "linkedin_search"}}
        )

        assert node.position_y == 42.0
        assert node.effective_type == "linkedin_search"
        assert node.is_live_search
