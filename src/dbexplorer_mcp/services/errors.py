"""Error kinds raised by the dbexplorer services.

Tool handlers catch these at the boundary and turn them into a single
``Error: <message>`` text response.
"""

from __future__ import annotations


class DbExplorerError(Exception):
    """Base class for all dbexplorer errors."""


class NotConnectedError(DbExplorerError):
    """Raised when a data operation is attempted before a successful connect."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message or "Not connected to any database. Use the 'connect' tool first."
        )


class ForbiddenOperationError(DbExplorerError):
    """Raised when the safety validator rejects a query."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(
            "Query contains forbidden operation. Only SELECT and read-only queries are allowed. "
            f"Detected pattern: {pattern}"
        )


class ExtensionUnavailableError(DbExplorerError):
    """Raised when a report needs an extension that is not installed."""

    def __init__(self, extension: str, remediation: str):
        self.extension = extension
        self.remediation = remediation
        super().__init__(f"{extension} extension is not available. {remediation}")


class ConnectionFailureError(DbExplorerError):
    """Raised when the pool cannot be opened (auth, network, bad config)."""


class QueryExecutionError(DbExplorerError):
    """Raised when the database rejects a statement. The transaction is rolled back."""

    def __init__(self, message: str, sqlstate: str | None = None):
        self.sqlstate = sqlstate
        super().__init__(message)
