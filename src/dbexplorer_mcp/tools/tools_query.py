"""Query execution tool handlers."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from mcp.types import TextContent, Tool

from ..services import QueryService
from .toolhandler import ToolHandler


class RunQueryToolHandler(ToolHandler):
    """Tool handler for running a read-only SQL query."""

    name = "run_query"
    title = "Read-only Query Runner"
    description = """Execute a read-only SQL query. Destructive operations (INSERT, UPDATE, DELETE, DROP, etc.) are blocked.

SELECT statements without a LIMIT clause get one appended (default 100 rows).
The query runs inside a READ ONLY transaction."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "sql": {
                        "type": "string",
                        "description": "SQL query to execute (SELECT only)"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum rows to return (default: 100)",
                        "default": 100,
                        "minimum": 1
                    }
                },
                "required": ["sql"]
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["sql"])

            result = await self.query_service.execute_query(
                arguments["sql"],
                limit=int(arguments.get("limit", 100)),
            )

            output = "\n".join([
                f"Columns: {', '.join(result.columns)}",
                f"Rows returned: {result.row_count}",
                f"Execution time: {result.execution_time_ms}ms",
                "",
                json.dumps(result.rows, indent=2, default=str),
            ])
            return self.format_result(output)

        except Exception as e:
            return self.format_error(e)


class ExplainQueryToolHandler(ToolHandler):
    """Tool handler showing a query's execution plan with warnings."""

    name = "explain_query"
    title = "Query Plan Viewer"
    description = """Show the execution plan for a SQL query (EXPLAIN). Helps identify performance bottlenecks.

Flags large sequential scans, expensive nested loops and costly sort/hash
operations. With analyze=true the query is actually executed
(EXPLAIN ANALYZE, BUFFERS) inside a read-only transaction."""

    def __init__(self, query_service: QueryService):
        self.query_service = query_service

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "sql": {
                        "type": "string",
                        "description": "SQL query to analyze"
                    },
                    "analyze": {
                        "type": "boolean",
                        "description": "If true, actually executes the query to get real timing (EXPLAIN ANALYZE)",
                        "default": False
                    }
                },
                "required": ["sql"]
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["sql"])

            plan = await self.query_service.explain_query(
                arguments["sql"],
                analyze=bool(arguments.get("analyze", False)),
            )

            lines = [
                f"Planning time: {plan.planning_time_ms}ms",
                f"Execution time: {plan.execution_time_ms}ms",
            ]
            if plan.warnings:
                lines.append("\n⚠ Warnings:\n" + "\n".join(f"  • {w}" for w in plan.warnings))
            lines.append(f"\nQuery Plan:\n{plan.plan}")

            return self.format_result("\n".join(lines))

        except Exception as e:
            return self.format_error(e)


class QueryCostToolHandler(ToolHandler):
    """Tool handler returning the planner's cost estimate for a query."""

    name = "query_cost"
    title = "Query Cost Estimator"
    description = "Get the estimated cost and row count for a SQL query without executing it."

    def __init__(self, query_service: QueryService):
        self.query_service = query_service

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "sql": {
                        "type": "string",
                        "description": "SQL query to estimate cost for"
                    }
                },
                "required": ["sql"]
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["sql"])
            cost = await self.query_service.get_query_cost(arguments["sql"])
            return self.format_json_result(asdict(cost))
        except Exception as e:
            return self.format_error(e)
