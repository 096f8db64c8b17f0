"""
Index suggestions derived from an execution plan.

Columns are pulled out of the plan's filter and sort-key text with regular
expressions, which only approximates real expression parsing. When the text
does not reduce to plain column names the rule emits nothing rather than
guessing. Suggestions are not checked against existing indexes and the same
table/columns may be suggested once per plan node that reaches it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .plan_model import PlanNode, as_plan_node, parse_explain_output
from .sql_driver import SqlDriver
from .sql_safety import validate_read_only

logger = logging.getLogger(__name__)

SEQ_SCAN_MIN_ROWS = 1_000
SEQ_SCAN_MEDIUM_ROWS = 10_000
SEQ_SCAN_HIGH_ROWS = 100_000
SORT_MIN_ROWS = 5_000
SORT_HIGH_ROWS = 50_000

# "(col = ", "(col > ", "(col <> " ...
_FILTER_COLUMN = re.compile(r"\((\w+)\s*[=<>!]+")
_QUALIFIER = re.compile(r".*\.")
_DIRECTION = re.compile(r" (ASC|DESC)", re.IGNORECASE)
_IDENTIFIER = re.compile(r"^\w+$")


class Impact(str, Enum):
    """Coarse severity band. Compares low < medium < high."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _IMPACT_ORDER.index(self)

    # str ordering would compare the values alphabetically. str defines all
    # four operators, so functools.total_ordering would leave them in place.
    def __lt__(self, other):
        if not isinstance(other, Impact):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Impact):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Impact):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Impact):
            return NotImplemented
        return self.rank >= other.rank


_IMPACT_ORDER = [Impact.LOW, Impact.MEDIUM, Impact.HIGH]


@dataclass
class IndexSuggestion:
    """A heuristic recommendation to create an index."""

    table: str
    columns: list[str]
    reason: str
    impact: Impact
    create_statement: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["impact"] = self.impact.value
        return data


def extract_columns_from_filter(filter_text: str) -> list[str]:
    """Return identifiers compared inside parentheses, first-seen order, unique."""
    columns: list[str] = []
    for match in _FILTER_COLUMN.finditer(filter_text):
        column = match.group(1)
        if column not in columns:
            columns.append(column)
    return columns


def extract_columns_from_sort_keys(sort_keys: tuple[str, ...] | list[str]) -> list[str]:
    """
    Strip table qualifiers and ASC/DESC from sort keys.

    Returns an empty list when any key is an expression rather than a column.
    """
    columns = []
    for key in sort_keys:
        column = _DIRECTION.sub("", _QUALIFIER.sub("", key), count=1).strip()
        if not _IDENTIFIER.match(column):
            return []
        columns.append(column)
    return columns


def _seq_scan_impact(rows: int) -> Impact:
    if rows > SEQ_SCAN_HIGH_ROWS:
        return Impact.HIGH
    if rows > SEQ_SCAN_MEDIUM_ROWS:
        return Impact.MEDIUM
    return Impact.LOW


def _suggest_for_seq_scan(node: PlanNode, schema: str) -> IndexSuggestion | None:
    if not node.filter or node.estimated_rows <= SEQ_SCAN_MIN_ROWS:
        return None

    columns = extract_columns_from_filter(node.filter)
    if not columns:
        return None

    table = node.relation_name
    return IndexSuggestion(
        table=table,
        columns=columns,
        reason=f"Sequential scan with filter on {', '.join(columns)} scanning ~{node.estimated_rows} rows",
        impact=_seq_scan_impact(node.estimated_rows),
        create_statement=(
            f"CREATE INDEX idx_{table}_{'_'.join(columns)} "
            f"ON {schema}.{table} ({', '.join(columns)});"
        ),
    )


def _suggest_for_sort(node: PlanNode, schema: str) -> IndexSuggestion | None:
    if not node.sort_keys or node.estimated_rows <= SORT_MIN_ROWS:
        return None

    columns = extract_columns_from_sort_keys(node.sort_keys)
    if not columns:
        return None

    # A Sort node does not name its table, so the statement is only a template.
    return IndexSuggestion(
        table=node.relation_name or "unknown",
        columns=columns,
        reason=(
            f"Sort operation on {', '.join(columns)} with ~{node.estimated_rows} rows. "
            "An index could eliminate the sort."
        ),
        impact=Impact.HIGH if node.estimated_rows > SORT_HIGH_ROWS else Impact.MEDIUM,
        create_statement=(
            "-- Consider adding an index to support this sort:\n"
            f"-- CREATE INDEX idx_sort_{'_'.join(columns)} ON {schema}.<table> ({', '.join(columns)});"
        ),
    )


def suggest_indexes(
    plan: PlanNode | Mapping[str, Any],
    schema: str = "public",
) -> list[IndexSuggestion]:
    """
    Walk a plan and collect index suggestions, depth-first pre-order.

    Args:
        plan: A PlanNode or a raw plan object
        schema: Schema used to qualify table names in CREATE INDEX statements
    """
    suggestions = []
    for node in as_plan_node(plan).walk():
        suggestion = None
        if node.node_type == "Seq Scan":
            suggestion = _suggest_for_seq_scan(node, schema)
        elif node.node_type == "Sort":
            suggestion = _suggest_for_sort(node, schema)

        if suggestion is not None:
            suggestions.append(suggestion)
    return suggestions


class IndexAdvisor:
    """Runs EXPLAIN for a query and turns its plan into index suggestions."""

    def __init__(self, sql_driver: SqlDriver):
        self.sql_driver = sql_driver

    async def suggest_indexes(self, sql: str, schema: str = "public") -> list[IndexSuggestion]:
        validate_read_only(sql)

        rows = await self.sql_driver.execute_query(f"EXPLAIN (FORMAT JSON) {sql}")
        explain = parse_explain_output(rows)
        suggestions = suggest_indexes(explain.plan, schema)

        logger.info(f"Generated {len(suggestions)} index suggestions for schema {schema}")
        return suggestions
