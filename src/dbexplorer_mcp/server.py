"""
dbexplorer-mcp: PostgreSQL exploration and query optimization MCP server

Exposes schema introspection, read-only query execution, EXPLAIN-based
warnings and index suggestions, and catalog statistics reports as MCP tools.
Supports stdio, SSE, and streamable-http MCP server modes.
"""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import sys
import traceback
from collections.abc import AsyncIterator, Iterable, Sequence
from typing import Any

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import (
    EmbeddedResource,
    ImageContent,
    Resource,
    TextContent,
    Tool,
)
from pydantic import AnyUrl

# HTTP-related imports (imported conditionally)
try:
    import uvicorn
    from mcp.server.sse import SseServerTransport
    from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
    from starlette.applications import Starlette
    from starlette.middleware.cors import CORSMiddleware
    from starlette.requests import Request
    from starlette.routing import Mount, Route
    HTTP_AVAILABLE = True
except ImportError:
    HTTP_AVAILABLE = False

from .services import (
    CatalogReporter,
    ConnectionConfig,
    ConnectionManager,
    IndexAdvisor,
    QueryService,
    SchemaInspector,
    SqlDriver,
)
from .tools import (
    ConnectionStatusToolHandler,
    ConnectToolHandler,
    ConstraintsToolHandler,
    DatabaseHealthToolHandler,
    DescribeTableToolHandler,
    DisconnectToolHandler,
    DuplicateIndexesToolHandler,
    ExplainQueryToolHandler,
    ForeignKeysToolHandler,
    ListIndexesToolHandler,
    ListSchemasToolHandler,
    ListTablesToolHandler,
    ListViewsToolHandler,
    QueryCostToolHandler,
    RunQueryToolHandler,
    SlowQueriesToolHandler,
    SuggestIndexesToolHandler,
    TableBloatToolHandler,
    TableStatsToolHandler,
    UnusedIndexesToolHandler,
)
from .tools.toolhandler import ToolHandler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("dbexplorer_mcp")

OVERVIEW_URI = "db://overview"

# Create the MCP server instance
app = Server("dbexplorer_mcp")

# Global tool handlers registry
tool_handlers: dict[str, ToolHandler] = {}

# Owner of the single current connection pool
connection_manager = ConnectionManager()


def add_tool_handler(tool_handler: ToolHandler) -> None:
    """
    Register a tool handler with the server.

    Args:
        tool_handler: The tool handler instance to register
    """
    tool_handlers[tool_handler.name] = tool_handler
    logger.debug(f"Registered tool handler: {tool_handler.name}")


def get_tool_handler(name: str) -> ToolHandler | None:
    """
    Retrieve a tool handler by name.

    Args:
        name: The name of the tool handler

    Returns:
        The tool handler instance or None if not found
    """
    return tool_handlers.get(name)


def register_all_tools(connections: ConnectionManager | None = None) -> None:
    """
    Register all available tool handlers.

    Handlers share one SqlDriver, which always runs against whichever pool
    the ConnectionManager currently holds.
    """
    connections = connections or connection_manager
    sql_driver = SqlDriver(connections)
    inspector = SchemaInspector(sql_driver)
    query_service = QueryService(sql_driver)
    reporter = CatalogReporter(sql_driver)
    index_advisor = IndexAdvisor(sql_driver)

    # Connection tools
    add_tool_handler(ConnectToolHandler(connections))
    add_tool_handler(DisconnectToolHandler(connections))
    add_tool_handler(ConnectionStatusToolHandler(connections))

    # Schema exploration tools
    add_tool_handler(ListSchemasToolHandler(inspector))
    add_tool_handler(ListTablesToolHandler(inspector))
    add_tool_handler(ListViewsToolHandler(inspector))
    add_tool_handler(DescribeTableToolHandler(inspector))
    add_tool_handler(ForeignKeysToolHandler(inspector))
    add_tool_handler(ListIndexesToolHandler(inspector))
    add_tool_handler(ConstraintsToolHandler(inspector))
    add_tool_handler(TableStatsToolHandler(inspector))

    # Query execution tools
    add_tool_handler(RunQueryToolHandler(query_service))
    add_tool_handler(ExplainQueryToolHandler(query_service))
    add_tool_handler(QueryCostToolHandler(query_service))

    # Optimization tools
    add_tool_handler(SuggestIndexesToolHandler(index_advisor))
    add_tool_handler(SlowQueriesToolHandler(reporter))
    add_tool_handler(UnusedIndexesToolHandler(reporter))
    add_tool_handler(DuplicateIndexesToolHandler(reporter))
    add_tool_handler(TableBloatToolHandler(reporter))
    add_tool_handler(DatabaseHealthToolHandler(reporter))

    logger.info(f"Registered {len(tool_handlers)} tool handlers")


def create_starlette_app(mcp_server: Server, *, debug: bool = False) -> Starlette:
    """
    Create a Starlette application that can serve the provided mcp server with SSE.

    Args:
        mcp_server: The MCP server instance
        debug: Whether to enable debug mode

    Returns:
        Starlette application instance
    """
    if not HTTP_AVAILABLE:
        raise RuntimeError("HTTP dependencies not available. Install with: pip install starlette uvicorn")

    sse = SseServerTransport("/messages/")

    async def handle_sse(request: Request) -> None:
        async with sse.connect_sse(
                request.scope,
                request.receive,
                request._send,
        ) as (read_stream, write_stream):
            await mcp_server.run(
                read_stream,
                write_stream,
                mcp_server.create_initialization_options(),
            )

    return Starlette(
        debug=debug,
        routes=[
            Route("/sse", endpoint=handle_sse),
            Mount("/messages/", app=sse.handle_post_message),
        ],
    )


def create_streamable_http_app(mcp_server: Server, *, debug: bool = False, stateless: bool = False) -> Starlette:
    """
    Create a Starlette application with StreamableHTTPSessionManager.
    Implements the MCP Streamable HTTP protocol with a single /mcp endpoint.

    Args:
        mcp_server: The MCP server instance
        debug: Whether to enable debug mode
        stateless: If True, creates a fresh transport for each request with no session tracking

    Returns:
        Starlette application instance
    """
    if not HTTP_AVAILABLE:
        raise RuntimeError("HTTP dependencies not available. Install with: pip install starlette uvicorn")

    session_manager = StreamableHTTPSessionManager(
        app=mcp_server,
        event_store=None,
        json_response=False,
        stateless=stateless,
    )

    class StreamableHTTPRoute:
        """ASGI app wrapper for the streamable HTTP handler"""
        async def __call__(self, scope, receive, send):
            await session_manager.handle_request(scope, receive, send)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            logger.info("Streamable HTTP session manager started")
            try:
                yield
            finally:
                logger.info("Streamable HTTP session manager shutting down...")

    starlette_app = Starlette(
        debug=debug,
        routes=[
            Route("/mcp", endpoint=StreamableHTTPRoute()),
        ],
        lifespan=lifespan,
    )

    starlette_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["mcp-session-id", "mcp-protocol-version"],
        max_age=86400,
    )

    return starlette_app


@app.list_tools()
async def list_tools() -> list[Tool]:
    """
    List all available tools.

    Returns:
        List of Tool objects describing all registered tools
    """
    try:
        tools = [handler.get_tool_definition() for handler in tool_handlers.values()]
        logger.info(f"Listed {len(tools)} available tools")
        return tools
    except Exception as e:
        logger.exception(f"Error listing tools: {str(e)}")
        raise


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> Sequence[TextContent | ImageContent | EmbeddedResource]:
    """
    Execute a tool with the provided arguments.

    Handlers report their own failures as text; anything that still escapes
    is logged here and turned into an error message for the client.

    Args:
        name: The name of the tool to execute
        arguments: The arguments to pass to the tool

    Returns:
        Sequence of MCP content objects
    """
    try:
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise RuntimeError("Arguments must be a dictionary")

        tool_handler = get_tool_handler(name)
        if not tool_handler:
            raise ValueError(f"Unknown tool: {name}")

        logger.info(f"Executing tool: {name} with arguments: {list(arguments.keys())}")

        result = await tool_handler.run_tool(arguments)

        logger.info(f"Tool {name} executed")
        return result

    except Exception as e:
        logger.exception(f"Error executing tool {name}: {str(e)}")
        logger.debug(f"Full traceback: {traceback.format_exc()}")

        return [
            TextContent(
                type="text",
                text=f"Error executing tool '{name}': {str(e)}"
            )
        ]


@app.list_resources()
async def list_resources() -> list[Resource]:
    return [
        Resource(
            uri=OVERVIEW_URI,
            name="database-overview",
            description="Current connection info and the tables of every schema",
            mimeType="application/json",
        )
    ]


async def build_overview(connections: ConnectionManager) -> ReadResourceContents:
    """
    Render the ``db://overview`` resource.

    Returns a plain-text notice when not connected or when the catalog
    lookups fail, so reading the resource never raises.
    """
    info = connections.get_connection_info()
    if info is None:
        return ReadResourceContents(
            content="Not connected to a database. Use the 'connect' tool first.",
            mime_type="text/plain",
        )

    inspector = SchemaInspector(SqlDriver(connections))
    try:
        overview = await inspector.get_overview(info.to_public_dict())
    except Exception as e:
        logger.exception("Error generating overview")
        return ReadResourceContents(
            content=f"Error generating overview: {e}",
            mime_type="text/plain",
        )

    return ReadResourceContents(
        content=json.dumps(overview, indent=2, default=str),
        mime_type="application/json",
    )


@app.read_resource()
async def read_resource(uri: AnyUrl) -> Iterable[ReadResourceContents]:
    if str(uri).rstrip("/") != OVERVIEW_URI:
        raise ValueError(f"Unknown resource: {uri}")
    return [await build_overview(connection_manager)]


async def connect_from_url(database_url: str) -> None:
    """Open the connection pool at startup from a libpq URL."""
    config = ConnectionConfig.from_uri(database_url)
    await connection_manager.connect(config)
    logger.info(f"Connected to {config.describe()} at startup")


async def main():
    """
    Main entry point for the dbexplorer_mcp server.
    Supports stdio, SSE and streamable-http modes based on command line arguments.
    """
    parser = argparse.ArgumentParser(
        description='dbexplorer_mcp: PostgreSQL exploration and query optimization MCP server - '
                    'supports stdio, SSE, and streamable-http modes'
    )
    parser.add_argument(
        '--mode',
        choices=['stdio', 'sse', 'streamable-http'],
        default='stdio',
        help='Server mode: stdio (default), sse, or streamable-http'
    )
    parser.add_argument(
        '--host',
        default='0.0.0.0',
        help='Host to bind to (HTTP modes only, default: 0.0.0.0)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Port to listen on (HTTP modes only, default: from PORT env var or 8080)'
    )
    parser.add_argument(
        '--stateless',
        action='store_true',
        help='Run in stateless mode (streamable-http only, creates fresh transport per request)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )
    parser.add_argument(
        '--database-url',
        default=None,
        help='PostgreSQL URL to connect to at startup (or use DATABASE_URI env var). '
             'Without it, clients call the connect tool.'
    )

    args = parser.parse_args()

    port = args.port if args.port is not None else int(os.environ.get("PORT", 8080))

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)

    try:
        register_all_tools()

        database_url = args.database_url or os.environ.get("DATABASE_URI")
        if database_url:
            await connect_from_url(database_url)
        else:
            logger.info("No database URL provided; waiting for the connect tool")

        logger.info(f"Starting dbexplorer_mcp server in {args.mode} mode...")
        logger.info(f"Python version: {sys.version}")
        logger.info(f"Registered tools: {list(tool_handlers.keys())}")

        await run_server(args.mode, args.host, port, args.debug, args.stateless)

    except Exception as e:
        logger.exception(f"Failed to start server: {str(e)}")
        raise
    finally:
        await connection_manager.disconnect()


async def run_server(mode: str, host: str = "0.0.0.0", port: int = 8080, debug: bool = False, stateless: bool = False):
    """
    Unified server runner that supports stdio, SSE, and streamable-http modes.

    Args:
        mode: Server mode ("stdio", "sse", or "streamable-http")
        host: Host to bind to (HTTP modes only)
        port: Port to listen on (HTTP modes only)
        debug: Whether to enable debug mode
        stateless: Whether to use stateless mode (streamable-http only)
    """
    if mode == "stdio":
        logger.info("Starting stdio server...")

        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options()
            )

    elif mode in ("sse", "streamable-http"):
        if not HTTP_AVAILABLE:
            raise RuntimeError(
                f"{mode} mode requires additional dependencies. "
                "Install with: pip install starlette uvicorn"
            )

        if mode == "sse":
            logger.info(f"Starting SSE server on {host}:{port}...")
            logger.info(f"Endpoints: http://{host}:{port}/sse, http://{host}:{port}/messages/")
            starlette_app = create_starlette_app(app, debug=debug)
        else:
            mode_desc = "stateless" if stateless else "stateful"
            logger.info(f"Starting Streamable HTTP server ({mode_desc}) on {host}:{port}...")
            logger.info(f"Endpoint: http://{host}:{port}/mcp")
            starlette_app = create_streamable_http_app(app, debug=debug, stateless=stateless)

        config = uvicorn.Config(
            app=starlette_app,
            host=host,
            port=port,
            log_level="debug" if debug else "info"
        )
        server = uvicorn.Server(config)
        await server.serve()

    else:
        raise ValueError(f"Unknown mode: {mode}")
