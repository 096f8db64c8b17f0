"""Abstract base class for tool handlers following the ToolHandler pattern."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from mcp.types import TextContent, Tool, ToolAnnotations


class ToolHandler(ABC):
    """
    Abstract base class for MCP tool handlers.

    Each handler owns one tool: its name, its input schema and the code that
    runs it. Handlers never let an exception escape ``run_tool``; failures
    come back as a single ``Error: <message>`` text item.

    Subclasses must implement:
        - name: The unique tool name
        - description: Human-readable description
        - get_tool_definition(): Returns the Tool schema
        - run_tool(): Executes the tool logic

    Example:
        class ListViewsToolHandler(ToolHandler):
            name = "list_views"
            description = "List all views in a given schema."

            def get_tool_definition(self) -> Tool:
                return Tool(
                    name=self.name,
                    description=self.description,
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "schema": {"type": "string", "default": "public"}
                        },
                        "required": []
                    }
                )

            async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
                try:
                    views = await self.inspector.list_views(arguments.get("schema", "public"))
                    return self.format_json_result(views)
                except Exception as e:
                    return self.format_error(e)
    """

    name: str = ""
    title: str = ""
    description: str = ""
    read_only_hint: bool = True
    destructive_hint: bool = False
    idempotent_hint: bool = True
    open_world_hint: bool = False

    @abstractmethod
    def get_tool_definition(self) -> Tool:
        """
        Return the MCP Tool definition including input schema.

        Returns:
            Tool: The tool definition with name, description, and inputSchema
        """
        pass

    @abstractmethod
    async def run_tool(self, arguments: dict[str, Any]) -> Sequence[TextContent]:
        """
        Execute the tool logic with the provided arguments.

        Args:
            arguments: Dictionary of arguments matching the input schema

        Returns:
            Sequence[TextContent]: The tool output as text content
        """
        pass

    def get_annotations(self) -> ToolAnnotations:
        """Behaviour hints advertised to MCP clients."""
        return ToolAnnotations(
            title=self.title or None,
            readOnlyHint=self.read_only_hint,
            destructiveHint=self.destructive_hint,
            idempotentHint=self.idempotent_hint,
            openWorldHint=self.open_world_hint,
        )

    def validate_required_args(
        self,
        arguments: dict[str, Any],
        required: list[str]
    ) -> None:
        """
        Validate that required arguments are present.

        Args:
            arguments: The arguments dictionary to validate
            required: List of required argument names

        Raises:
            ValueError: If any required argument is missing
        """
        missing = [arg for arg in required if arg not in arguments or arguments[arg] is None]
        if missing:
            raise ValueError(f"Missing required arguments: {', '.join(missing)}")

    def format_error(self, error: Exception) -> Sequence[TextContent]:
        """
        Format an error as TextContent for tool response.

        Args:
            error: The exception to format

        Returns:
            Sequence[TextContent]: Error message as text content
        """
        return [TextContent(type="text", text=f"Error: {str(error)}")]

    def format_result(self, result: str) -> Sequence[TextContent]:
        """
        Format a string result as TextContent.

        Args:
            result: The result string to format

        Returns:
            Sequence[TextContent]: Result as text content
        """
        return [TextContent(type="text", text=result)]

    def format_json_result(self, data: Any) -> Sequence[TextContent]:
        """
        Format data as pretty-printed JSON TextContent.

        Args:
            data: The data to serialize as JSON

        Returns:
            Sequence[TextContent]: JSON-formatted text content
        """
        return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


def schema_property(description: str = "Schema name (default: public)") -> dict[str, Any]:
    """The optional ``schema`` argument shared by most catalog tools."""
    return {
        "type": "string",
        "description": description,
        "default": "public"
    }
