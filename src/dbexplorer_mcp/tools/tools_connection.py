"""Connection management tool handlers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from mcp.types import TextContent, Tool

from ..services import ConnectionConfig, ConnectionManager
from .toolhandler import ToolHandler


class ConnectToolHandler(ToolHandler):
    """Tool handler for opening a connection pool to a PostgreSQL database."""

    name = "connect"
    title = "Connect to PostgreSQL"
    read_only_hint = False  # Replaces the current connection
    destructive_hint = False
    idempotent_hint = True
    open_world_hint = True
    description = """Connect to a PostgreSQL database. Must be called before using any other tool.

Any existing connection is closed first. All queries issued afterwards run
inside read-only transactions."""

    def __init__(self, connections: ConnectionManager):
        self.connections = connections

    def get_tool_definition(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema={
                "type": "object",
                "properties": {
                    "host": {
                        "type": "string",
                        "description": "Database host (e.g. localhost)"
                    },
                    "port": {
                        "type": "integer",
                        "description": "Database port",
                        "default": 5432
                    },
                    "database": {
                        "type": "string",
                        "description": "Database name"
                    },
                    "user": {
                        "type": "string",
                        "description": "Database user"
                    },
                    "password": {
                        "type": "string",
                        "description": "Database password"
                    },
                    "ssl": {
                        "type": "boolean",
                        "description": "Use SSL connection",
                        "default": False
                    }
                },
                "required": ["host", "database", "user", "password"]
            },
            annotations=self.get_annotations()
        )

    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        try:
            self.validate_required_args(arguments, ["host", "database", "user", "password"])

            config = ConnectionConfig(
                host=arguments["host"],
                port=int(arguments.get("port", 5432)),
                database=arguments["database"],
                user=arguments["user"],
                password=arguments["password"],
                ssl=bool(arguments.get("ssl", False)),
            )
            await self.connections.connect(config)

            return self.format_result(
                f"Successfully connected to PostgreSQL at {config.describe()}"
            )

        except Exception as e:
            return self.format_error(e)


class DisconnectToolHandler(ToolHandler):
    """Tool handler for closing the current connection pool."""

    name = "disconnect"
    title = "Disconnect"
    read_only_hint = False
    description = "Disconnect from the current database."

    def __init__(self, connections: ConnectionManager):
        self.connections = connections

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
            await self.connections.disconnect()
            return self.format_result("Disconnected successfully.")
        except Exception as e:
            return self.format_error(e)


class ConnectionStatusToolHandler(ToolHandler):
    """Tool handler reporting which database, if any, is connected."""

    name = "connection_status"
    title = "Connection Status"
    description = "Check current database connection status."

    def __init__(self, connections: ConnectionManager):
        self.connections = connections

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
            info = self.connections.get_connection_info()
            if info is None:
                return self.format_result("Not connected to any database.")
            return self.format_result(f"Connected to {info.describe()} as {info.user}")
        except Exception as e:
            return self.format_error(e)
