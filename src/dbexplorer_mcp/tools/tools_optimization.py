"""Optimization and catalog statistics tool handlers."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from mcp.types import TextContent, Tool

from ..services import CatalogReporter, IndexAdvisor
from .toolhandler import ToolHandler, schema_property


class SuggestIndexesToolHandler(ToolHandler):
    """Tool handler for plan-driven index suggestions."""

    name = "suggest_indexes"
    title = "Index Suggestions"
    description = """Analyze a SQL query's execution plan and suggest indexes to improve performance.

Looks for:
- Sequential scans with a filter over more than 1,000 estimated rows
- Sorts over more than 5,000 estimated rows

Each suggestion carries an impact rating (high/medium/low) and a CREATE INDEX
statement. Sort-derived suggestions are commented-out templates because the
plan does not say which table the sort columns belong to. Suggestions are
heuristics and are not checked against existing indexes."""

    def __init__(self, index_advisor: IndexAdvisor):
        self.index_advisor = index_advisor

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "sql": {
                        "type": "string",
                        "description": "SQL query to analyze for index suggestions"
                    },
                    "schema": schema_property()
                },
                "required": ["sql"]
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["sql"])

            suggestions = await self.index_advisor.suggest_indexes(
                arguments["sql"],
                arguments.get("schema", "public"),
            )

            if not suggestions:
                return self.format_result(
                    "No index suggestions for this query. The query plan looks optimal."
                )

            blocks = [
                f"{i}. [{s.impact.value.upper()}] {s.table}\n"
                f"   Columns: {', '.join(s.columns)}\n"
                f"   Reason: {s.reason}\n"
                f"   SQL: {s.create_statement}"
                for i, s in enumerate(suggestions, start=1)
            ]
            return self.format_result("Index Suggestions:\n\n" + "\n\n".join(blocks))

        except Exception as e:
            return self.format_error(e)


class SlowQueriesToolHandler(ToolHandler):
    """Tool handler for retrieving slow queries from pg_stat_statements."""

    name = "slow_queries"
    title = "Slow Query Finder"
    description = """Find the slowest queries using pg_stat_statements (requires the extension to be installed).

Returns the top N statements ordered by mean execution time, with call
counts, total/mean/stddev time and rows."""

    def __init__(self, reporter: CatalogReporter):
        self.reporter = reporter

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "limit": {
                        "type": "integer",
                        "description": "Number of slow queries to return (default: 10)",
                        "default": 10,
                        "minimum": 1
                    }
                },
                "required": []
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            queries = await self.reporter.get_slow_queries(int(arguments.get("limit", 10)))
            return self.format_json_result([asdict(q) for q in queries])
        except Exception as e:
            return self.format_error(e)


class SchemaReportToolHandler(ToolHandler):
    """Base for reports that take only an optional ``schema``."""

    empty_message: str | None = None

    def __init__(self, reporter: CatalogReporter):
        self.reporter = reporter

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "schema": schema_property()
                },
                "required": []
            },
            annotations=self.get_annotations()
        )

    @abstractmethod
    async def fetch(self, schema: str) -> list[Any]:
        """Return the report records for one schema."""
        pass

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            records = await self.fetch(arguments.get("schema", "public"))
            if not records and self.empty_message:
                return self.format_result(self.empty_message)
            return self.format_json_result([asdict(r) for r in records])
        except Exception as e:
            return self.format_error(e)


class UnusedIndexesToolHandler(SchemaReportToolHandler):
    name = "unused_indexes"
    title = "Unused Index Finder"
    description = """Find indexes that have never been used (candidates for removal to save space and write overhead).

Unique and primary key indexes are excluded: they enforce correctness, so a
zero scan count does not make them removable."""
    empty_message = "No unused indexes found. All indexes appear to be in use."

    async def fetch(self, schema: str) -> list[Any]:
        return await self.reporter.find_unused_indexes(schema)


class DuplicateIndexesToolHandler(SchemaReportToolHandler):
    name = "duplicate_indexes"
    title = "Duplicate Index Finder"
    description = "Find duplicate indexes (multiple indexes covering the same columns on the same table)."
    empty_message = "No duplicate indexes found."

    async def fetch(self, schema: str) -> list[Any]:
        return await self.reporter.find_duplicate_indexes(schema)


class TableBloatToolHandler(SchemaReportToolHandler):
    name = "table_bloat"
    title = "Table Bloat Estimator"
    description = (
        "Estimate table bloat – wasted space from dead tuples that can be reclaimed with VACUUM. "
        "Returns the 20 tables with the most dead tuples."
    )

    async def fetch(self, schema: str) -> list[Any]:
        return await self.reporter.get_table_bloat(schema)


class DatabaseHealthToolHandler(ToolHandler):
    """Tool handler for the database health overview."""

    name = "database_health"
    title = "Database Health"
    description = "Get an overview of database health: size, connections, cache hit ratio, and transaction counts."

    def __init__(self, reporter: CatalogReporter):
        self.reporter = reporter

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            health = await self.reporter.get_database_health()
            return self.format_json_result(asdict(health))
        except Exception as e:
            return self.format_error(e)
