"""Tools package for the dbexplorer MCP server."""

from .toolhandler import ToolHandler
from .tools_connection import (
    ConnectionStatusToolHandler,
    ConnectToolHandler,
    DisconnectToolHandler,
)
from .tools_optimization import (
    DatabaseHealthToolHandler,
    DuplicateIndexesToolHandler,
    SlowQueriesToolHandler,
    SuggestIndexesToolHandler,
    TableBloatToolHandler,
    UnusedIndexesToolHandler,
)
from .tools_query import (
    ExplainQueryToolHandler,
    QueryCostToolHandler,
    RunQueryToolHandler,
)
from .tools_schema import (
    ConstraintsToolHandler,
    DescribeTableToolHandler,
    ForeignKeysToolHandler,
    ListIndexesToolHandler,
    ListSchemasToolHandler,
    ListTablesToolHandler,
    ListViewsToolHandler,
    TableStatsToolHandler,
)

__all__ = [
    "ToolHandler",
    # Connection tools
    "ConnectToolHandler",
    "DisconnectToolHandler",
    "ConnectionStatusToolHandler",
    # Schema tools
    "ListSchemasToolHandler",
    "ListTablesToolHandler",
    "ListViewsToolHandler",
    "DescribeTableToolHandler",
    "ForeignKeysToolHandler",
    "ListIndexesToolHandler",
    "ConstraintsToolHandler",
    "TableStatsToolHandler",
    # Query tools
    "RunQueryToolHandler",
    "ExplainQueryToolHandler",
    "QueryCostToolHandler",
    # Optimization tools
    "SuggestIndexesToolHandler",
    "SlowQueriesToolHandler",
    "UnusedIndexesToolHandler",
    "DuplicateIndexesToolHandler",
    "TableBloatToolHandler",
    "DatabaseHealthToolHandler",
]
