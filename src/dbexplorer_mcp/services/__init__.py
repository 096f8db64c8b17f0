"""Services package for the dbexplorer MCP server."""

from .catalog_reports import CatalogReporter
from .errors import (
    ConnectionFailureError,
    DbExplorerError,
    ExtensionUnavailableError,
    ForbiddenOperationError,
    NotConnectedError,
    QueryExecutionError,
)
from .index_advisor import Impact, IndexAdvisor, IndexSuggestion
from .plan_model import PlanNode
from .query_service import QueryService
from .schema_inspector import SchemaInspector
from .sql_driver import ConnectionConfig, ConnectionManager, DbConnPool, RowResult, SqlDriver

__all__ = [
    "ConnectionConfig",
    "ConnectionManager",
    "DbConnPool",
    "SqlDriver",
    "RowResult",
    "QueryService",
    "SchemaInspector",
    "CatalogReporter",
    "IndexAdvisor",
    "IndexSuggestion",
    "Impact",
    "PlanNode",
    "DbExplorerError",
    "NotConnectedError",
    "ForbiddenOperationError",
    "ExtensionUnavailableError",
    "ConnectionFailureError",
    "QueryExecutionError",
]
