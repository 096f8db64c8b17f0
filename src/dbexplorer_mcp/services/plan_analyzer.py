"""Rule-based performance warnings over an execution plan."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .plan_model import PlanNode, as_plan_node

SEQ_SCAN_ROW_THRESHOLD = 10_000
NESTED_LOOP_ROW_THRESHOLD = 50_000
SORT_HASH_COST_THRESHOLD = 10_000


def format_number(value: float) -> str:
    """Render 12000.0 as ``12000`` and 12000.5 as ``12000.5``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _node_warning(node: PlanNode) -> str | None:
    if node.node_type == "Seq Scan" and node.estimated_rows > SEQ_SCAN_ROW_THRESHOLD:
        return (
            f'Sequential scan on "{node.relation_name}" with ~{node.estimated_rows} '
            "estimated rows. Consider adding an index."
        )

    if node.node_type == "Nested Loop" and node.estimated_rows > NESTED_LOOP_ROW_THRESHOLD:
        return (
            f"Nested Loop join producing ~{node.estimated_rows} rows. "
            "This may be slow – consider restructuring the query or adding indexes."
        )

    if node.node_type in ("Sort", "Hash") and node.total_cost > SORT_HASH_COST_THRESHOLD:
        return (
            f"High-cost {node.node_type} operation (cost: {format_number(node.total_cost)}). "
            "May benefit from more work_mem or query restructuring."
        )

    return None


def extract_warnings(plan: PlanNode | Mapping[str, Any]) -> list[str]:
    """
    Collect performance warnings for a plan, in depth-first pre-order.

    Args:
        plan: A PlanNode, or a raw plan object (``{"Plan": ...}`` envelopes
            are unwrapped)

    Returns:
        One message per matching node; empty when nothing stands out
    """
    warnings = []
    for node in as_plan_node(plan).walk():
        message = _node_warning(node)
        if message:
            warnings.append(message)
    return warnings
