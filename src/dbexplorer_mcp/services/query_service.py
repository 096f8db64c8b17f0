"""Read-only query execution and EXPLAIN helpers."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from .plan_analyzer import extract_warnings
from .plan_model import parse_explain_output
from .sql_driver import SqlDriver
from .sql_safety import ensure_limit, validate_read_only

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 100


@dataclass
class QueryResult:
    columns: list[str]
    rows: list[dict[str, Any]]
    row_count: int
    execution_time_ms: int


@dataclass
class QueryPlan:
    plan: str
    planning_time_ms: float
    execution_time_ms: int
    warnings: list[str] = field(default_factory=list)


@dataclass
class QueryCost:
    estimated_cost: float
    estimated_rows: int
    plan_node_type: str
    details: str


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


class QueryService:
    """Validates user SQL and runs it (or its plan) through the SqlDriver."""

    def __init__(self, sql_driver: SqlDriver):
        self.sql_driver = sql_driver

    async def execute_query(
        self,
        sql: str,
        params: Any = None,
        limit: int = DEFAULT_ROW_LIMIT,
    ) -> QueryResult:
        """
        Run a read-only query, adding a LIMIT to unbounded SELECTs.

        Raises:
            ForbiddenOperationError: If the SQL contains a write/DDL keyword
            QueryExecutionError: If PostgreSQL rejects the statement
        """
        validate_read_only(sql)
        normalized = ensure_limit(sql, limit)

        start = time.perf_counter()
        result = await self.sql_driver.execute(normalized, params)
        elapsed = _elapsed_ms(start)

        return QueryResult(
            columns=result.columns,
            rows=result.rows,
            row_count=len(result.rows),
            execution_time_ms=elapsed,
        )

    async def explain_query(self, sql: str, analyze: bool = False) -> QueryPlan:
        """
        Return the JSON execution plan plus performance warnings.

        With ``analyze`` the statement really runs (still inside a read-only
        transaction) so the plan carries actual timings and buffer counts.
        """
        validate_read_only(sql)

        prefix = "EXPLAIN (ANALYZE, BUFFERS, FORMAT JSON)" if analyze else "EXPLAIN (FORMAT JSON)"

        start = time.perf_counter()
        rows = await self.sql_driver.execute_query(f"{prefix} {sql}")
        elapsed = _elapsed_ms(start)

        explain = parse_explain_output(rows)
        return QueryPlan(
            plan=json.dumps(explain.raw, indent=2, default=str),
            planning_time_ms=explain.planning_time_ms,
            execution_time_ms=elapsed,
            warnings=extract_warnings(explain.plan),
        )

    async def get_query_cost(self, sql: str) -> QueryCost:
        """Estimated cost and rows of the top plan node, without executing the query."""
        validate_read_only(sql)

        rows = await self.sql_driver.execute_query(f"EXPLAIN (FORMAT JSON) {sql}")
        explain = parse_explain_output(rows)
        top = explain.raw.get("Plan", {})

        return QueryCost(
            estimated_cost=explain.plan.total_cost,
            estimated_rows=explain.plan.estimated_rows,
            plan_node_type=top.get("Node Type", "Unknown"),
            details=json.dumps(top, indent=2, default=str),
        )
