"""Pytest configuration and fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from dbexplorer_mcp.services import ConnectionConfig, RowResult


@pytest.fixture
def mock_sql_driver():
    """Create a mock SQL driver for testing."""
    driver = AsyncMock()
    driver.execute_query = AsyncMock(return_value=[])
    driver.execute = AsyncMock(return_value=RowResult())
    return driver


@pytest.fixture
def connection_config():
    return ConnectionConfig(
        host="localhost",
        port=5432,
        database="shop",
        user="reader",
        password="secret",
    )


@pytest.fixture
def mock_connection_manager(connection_config):
    """Create a mock connection manager that reports a live connection."""
    manager = MagicMock()
    manager.connect = AsyncMock()
    manager.disconnect = AsyncMock()
    manager.is_connected = MagicMock(return_value=True)
    manager.get_connection_info = MagicMock(return_value=connection_config)
    return manager


@pytest.fixture
def explain_rows():
    """Wrap a plan node the way ``EXPLAIN (FORMAT JSON)`` returns it."""
    def wrap(plan: dict, **top_level) -> list[dict]:
        return [{"QUERY PLAN": [{"Plan": plan, **top_level}]}]
    return wrap


@pytest.fixture
def seq_scan_plan():
    """Hash join over a large filtered seq scan and a small one."""
    return {
        "Node Type": "Hash Join",
        "Plan Rows": 15000,
        "Total Cost": 4200.5,
        "Plans": [
            {
                "Node Type": "Seq Scan",
                "Relation Name": "orders",
                "Filter": "(status = 'active'::text)",
                "Plan Rows": 15000,
                "Total Cost": 3100.0,
            },
            {
                "Node Type": "Hash",
                "Plan Rows": 200,
                "Total Cost": 12.0,
                "Plans": [
                    {
                        "Node Type": "Seq Scan",
                        "Relation Name": "customers",
                        "Plan Rows": 200,
                        "Total Cost": 10.0,
                    }
                ],
            },
        ],
    }
