"""Typed model of PostgreSQL ``EXPLAIN (FORMAT JSON)`` output."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PlanNode:
    """One step of an execution plan. Children are in execution order."""

    node_type: str
    relation_name: str | None = None
    filter: str | None = None
    sort_keys: tuple[str, ...] = ()
    estimated_rows: int = 0
    total_cost: float = 0.0
    children: tuple[PlanNode, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PlanNode:
        """
        Build a node (and its subtree) from one plan object.

        A top-level ``{"Plan": {...}, "Planning Time": ...}`` envelope is
        unwrapped first; recursive children under ``Plans`` are bare nodes.
        """
        node = data.get("Plan", data)
        if not isinstance(node, Mapping):
            raise ValueError("Plan node must be a JSON object")

        sort_keys = node.get("Sort Key") or ()
        if isinstance(sort_keys, str):
            sort_keys = (sort_keys,)

        return cls(
            node_type=node.get("Node Type", "Unknown"),
            relation_name=node.get("Relation Name"),
            filter=node.get("Filter"),
            sort_keys=tuple(sort_keys),
            estimated_rows=int(node.get("Plan Rows") or 0),
            total_cost=float(node.get("Total Cost") or 0.0),
            children=tuple(cls.from_dict(child) for child in node.get("Plans") or ()),
        )

    def walk(self):
        """Yield this node and every descendant, depth-first pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class ExplainOutput:
    """Parsed result of one EXPLAIN call."""

    plan: PlanNode
    planning_time_ms: float = 0.0
    execution_time_ms: float | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def as_plan_node(plan: PlanNode | Mapping[str, Any]) -> PlanNode:
    if isinstance(plan, PlanNode):
        return plan
    return PlanNode.from_dict(plan)


def unwrap_explain_result(plan_data: Any) -> dict[str, Any]:
    """
    Return the single top-level plan object of an EXPLAIN result cell.

    The cell is either already decoded JSON or a JSON string, and is
    normally a one-element list around the object.
    """
    if isinstance(plan_data, (str, bytes)):
        plan_data = json.loads(plan_data)

    if isinstance(plan_data, list):
        if not plan_data:
            raise ValueError("EXPLAIN returned an empty plan")
        plan_data = plan_data[0]

    if not isinstance(plan_data, dict):
        raise ValueError("Unexpected EXPLAIN output format")
    return plan_data


def parse_explain_output(rows: list[dict[str, Any]]) -> ExplainOutput:
    """
    Parse the rows returned by ``EXPLAIN (FORMAT JSON ...)``.

    Raises:
        ValueError: If the rows do not contain a JSON plan
    """
    if not rows:
        raise ValueError("No execution plan returned")

    top = unwrap_explain_result(rows[0].get("QUERY PLAN", rows[0]))
    return ExplainOutput(
        plan=PlanNode.from_dict(top),
        planning_time_ms=float(top.get("Planning Time") or 0.0),
        execution_time_ms=top.get("Execution Time"),
        raw=top,
    )
