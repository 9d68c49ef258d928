"""
Workflow graph compiler.

This module turns an authored node/edge graph into the ordered list of
CampaignSteps a campaign executes:
- Kahn's algorithm over edges whose endpoints both exist
- Positional (position_y) ordering when the graph cannot be fully resolved
- Trigger/condition filtering, channel mapping and delay derivation
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Any

from ..config.pipeline import CompilerConfig
from ..errors import EmptyWorkflow, ErrorContext, WorkflowCycleError
from ..logging import StructuredLogger, get_logger
from ..steps.types import CampaignStep, DelayUnit
from .types import WorkflowEdge, WorkflowNode


def find_entry_node(
    nodes: list[WorkflowNode],
    edges: list[WorkflowEdge],
) -> WorkflowNode | None:
    """Return the node a workflow starts from.

    That is the node with no incoming edges and the lowest position_y. When
    every node has an incoming edge, the lowest position_y overall wins.
    """
    if not nodes:
        return None
    targets = {e.target_node_id for e in edges}
    roots = [n for n in nodes if n.id not in targets]
    candidates = roots or list(nodes)
    return min(candidates, key=lambda n: n.position_y)


def _as_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class GraphCompiler:
    """Compiles workflow graphs into ordered campaign steps.

    The compiler is a pure, synchronous transformation: it never touches
    storage. Callers persist the result with ``StepStore.replace_for_campaign``.

    Example:
        ```python
        compiler = GraphCompiler()
        steps = compiler.compile(nodes, edges, campaign_id="c1")
        ```
    """

    def __init__(
        self,
        config: CompilerConfig | None = None,
        logger: StructuredLogger | None = None,
    ):
        self._config = config or CompilerConfig()
        self._logger = logger or get_logger()

    @property
    def config(self) -> CompilerConfig:
        return self._config

    def topological_order(
        self,
        nodes: list[WorkflowNode],
        edges: list[WorkflowEdge],
        *,
        workflow_id: str | None = None,
    ) -> list[WorkflowNode]:
        """Order nodes so every edge points forward.

        Edges referencing unknown nodes are ignored. If the graph cannot be
        fully resolved (a cycle), all nodes are ordered by position_y instead,
        or WorkflowCycleError is raised when ``strict_acyclic`` is set.
        """
        by_id = {n.id: n for n in nodes}
        in_degree = {n.id: 0 for n in nodes}
        dependents: dict[str, list[str]] = defaultdict(list)

        for edge in edges:
            if edge.source_node_id in by_id and edge.target_node_id in by_id:
                dependents[edge.source_node_id].append(edge.target_node_id)
                in_degree[edge.target_node_id] += 1

        queue = deque(n.id for n in nodes if in_degree[n.id] == 0)
        ordered: list[WorkflowNode] = []

        while queue:
            node_id = queue.popleft()
            ordered.append(by_id[node_id])
            for dep_id in dependents[node_id]:
                in_degree[dep_id] -= 1
                if in_degree[dep_id] == 0:
                    queue.append(dep_id)

        if len(ordered) == len(nodes):
            return ordered

        resolved = {n.id for n in ordered}
        unresolved = [n.id for n in nodes if n.id not in resolved]

        if self._config.strict_acyclic:
            raise WorkflowCycleError(
                f"Workflow graph contains a cycle through {len(unresolved)} node(s)",
                unresolved=unresolved,
                context=ErrorContext(workflow_id=workflow_id, operation="compile"),
            )

        self._logger.event(
            "workflow.cycle_fallback",
            "Workflow graph could not be fully ordered; falling back to position order",
            level=logging.WARNING,
            workflow_id=workflow_id,
            unresolved_count=len(unresolved),
            unresolved=unresolved,
        )
        return sorted(nodes, key=lambda n: n.position_y)

    def compile(
        self,
        nodes: list[WorkflowNode],
        edges: list[WorkflowEdge],
        campaign_id: str,
        *,
        workflow_id: str | None = None,
    ) -> list[CampaignStep]:
        """Compile a graph into a dense, ordered list of campaign steps.

        Raises:
            EmptyWorkflow: If there are no nodes
            WorkflowCycleError: On a cycle when strict_acyclic is enabled
        """
        if not nodes:
            raise EmptyWorkflow(
                context=ErrorContext(
                    workflow_id=workflow_id,
                    campaign_id=campaign_id,
                    operation="compile",
                )
            )

        ordered = self.topological_order(nodes, edges, workflow_id=workflow_id)
        actionable = [n for n in ordered if n.is_actionable]

        steps = [
            self._build_step(node, index, campaign_id)
            for index, node in enumerate(actionable)
        ]

        self._logger.debug(
            "Compiled workflow",
            workflow_id=workflow_id,
            campaign_id=campaign_id,
            node_count=len(nodes),
            step_count=len(steps),
        )
        return steps

    # === Step construction ===

    def _derive_delay(self, node: WorkflowNode, index: int) -> tuple[int, DelayUnit]:
        config = node.config
        unit = DelayUnit.parse(config.get("delayUnit") or self._config.default_delay_unit)

        if node.is_wait:
            delay = config.get("delay")
            if delay is None:
                delay = config.get("waitDays")
            return max(0, _as_int(delay, self._config.default_delay)), unit

        if index == 0:
            return 0, unit
        return max(0, _as_int(config.get("delay"), self._config.default_delay)), unit

    def _build_step(self, node: WorkflowNode, index: int, campaign_id: str) -> CampaignStep:
        config = node.config
        message_options = list(config.get("messageOptions") or [])

        content = config.get("content") or config.get("template")
        if not content and message_options and isinstance(message_options[0], dict):
            content = message_options[0].get("content")

        delay, unit = self._derive_delay(node, index)

        settings: dict[str, Any] = {
            "node_id": node.id,
            "node_type": node.node_type,
            "original_type": node.original_type,
            "send_window_start": config.get("sendWindowStart") or self._config.send_window_start,
            "send_window_end": config.get("sendWindowEnd") or self._config.send_window_end,
            "active_days": list(config.get("activeDays") or self._config.active_days),
            "message_options": message_options,
            "selected_version": config.get("selectedVersion"),
            "search_criteria": config.get("searchCriteria"),
        }
        if node.is_live_search:
            settings["config"] = self._search_settings(config)

        return CampaignStep(
            campaign_id=campaign_id,
            channel=node.channel,
            label=node.label or f"Step {index + 1}",
            subject=config.get("subject"),
            content=content or "",
            delay=delay,
            delay_unit=unit,
            order_index=index,
            settings=settings,
        )

    def _search_settings(self, config: dict[str, Any]) -> dict[str, Any]:
        return {
            "keywords": config.get("keywords") or "",
            "jobTitle": config.get("jobTitle") or "",
            "company": config.get("company") or "",
            "location": config.get("location") or "",
            "industry": config.get("industry") or "",
            "connectionDegree": config.get("connectionDegree") or self._config.search_connection_degree,
            "maxResults": _as_int(config.get("maxResults"), self._config.search_max_results),
        }


__all__ = ["GraphCompiler", "find_entry_node"]
