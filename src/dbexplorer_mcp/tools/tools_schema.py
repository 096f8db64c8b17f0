"""Schema exploration tool handlers."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import Any

from mcp.types import TextContent, Tool

from ..services import SchemaInspector
from .toolhandler import ToolHandler, schema_property


class ListSchemasToolHandler(ToolHandler):
    """Tool handler listing user-defined schemas."""

    name = "list_schemas"
    title = "Schema List"
    description = "List all user-defined schemas in the current database."

    def __init__(self, inspector: SchemaInspector):
        self.inspector = inspector

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
            schemas = await self.inspector.list_schemas()
            return self.format_json_result(schemas)
        except Exception as e:
            return self.format_error(e)


class ListTablesToolHandler(ToolHandler):
    """Tool handler listing the base tables of a schema."""

    name = "list_tables"
    title = "Table List"
    description = "List all tables in a given schema."

    def __init__(self, inspector: SchemaInspector):
        self.inspector = inspector

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

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            schema = arguments.get("schema", "public")
            tables = await self.inspector.list_tables(schema)
            if not tables:
                return self.format_result(f'No tables found in schema "{schema}".')
            return self.format_json_result(tables)
        except Exception as e:
            return self.format_error(e)


class ListViewsToolHandler(ToolHandler):
    """Tool handler listing the views of a schema."""

    name = "list_views"
    title = "View List"
    description = "List all views in a given schema."

    def __init__(self, inspector: SchemaInspector):
        self.inspector = inspector

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

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            schema = arguments.get("schema", "public")
            views = await self.inspector.list_views(schema)
            if not views:
                return self.format_result(f'No views found in schema "{schema}".')
            return self.format_json_result(views)
        except Exception as e:
            return self.format_error(e)


class TableToolHandler(ToolHandler):
    """
    Base for tools that take a ``table`` and an optional ``schema``.

    Subclasses implement ``fetch`` and may set ``empty_message``, a format
    string shown instead of ``[]`` or ``null`` when nothing was found.
    """

    empty_message: str | None = None

    def __init__(self, inspector: SchemaInspector):
        self.inspector = inspector

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "table": {
                        "type": "string",
                        "description": "Table name"
                    },
                    "schema": schema_property()
                },
                "required": ["table"]
            },
            annotations=self.get_annotations()
        )

    @abstractmethod
    async def fetch(self, table: str, schema: str) -> Any:
        """Return the lookup result for one table; falsy means nothing found."""
        pass

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["table"])

            table = arguments["table"]
            schema = arguments.get("schema", "public")
            result = await self.fetch(table, schema)

            if not result and self.empty_message:
                return self.format_result(self.empty_message.format(schema=schema, table=table))
            return self.format_json_result(result)
        except Exception as e:
            return self.format_error(e)


class DescribeTableToolHandler(TableToolHandler):
    name = "describe_table"
    title = "Table Description"
    description = "Describe a table's columns, data types, nullability, and defaults."

    async def fetch(self, table: str, schema: str) -> Any:
        return await self.inspector.describe_table(table, schema)


class ForeignKeysToolHandler(TableToolHandler):
    name = "get_foreign_keys"
    title = "Foreign Keys"
    description = "Get all foreign key relationships for a table."
    empty_message = 'No foreign keys found on "{schema}.{table}".'

    async def fetch(self, table: str, schema: str) -> Any:
        return await self.inspector.get_foreign_keys(table, schema)


class ListIndexesToolHandler(TableToolHandler):
    name = "list_indexes"
    title = "Index List"
    description = "List all indexes on a table, including type, uniqueness, and columns."
    empty_message = 'No indexes found on "{schema}.{table}".'

    async def fetch(self, table: str, schema: str) -> Any:
        return await self.inspector.list_indexes(table, schema)


class ConstraintsToolHandler(TableToolHandler):
    name = "get_constraints"
    title = "Table Constraints"
    description = "Get all PRIMARY KEY, UNIQUE, and CHECK constraints for a table."

    async def fetch(self, table: str, schema: str) -> Any:
        return await self.inspector.get_constraints(table, schema)


class TableStatsToolHandler(TableToolHandler):
    name = "table_stats"
    title = "Table Statistics"
    description = "Get table statistics: row counts, sizes, vacuum status, and dead tuples."
    empty_message = 'Table "{schema}.{table}" not found.'

    async def fetch(self, table: str, schema: str) -> Any:
        return await self.inspector.get_table_stats(table, schema)
