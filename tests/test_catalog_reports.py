"""Tests for the catalog statistics reports."""

from unittest.mock import AsyncMock

import pytest

from dbexplorer_mcp.services.catalog_reports import (
    CatalogReporter,
    TABLE_BLOAT_LIMIT,
    bloat_ratio,
    format_cache_hit_ratio,
    pair_duplicate_indexes,
)
from dbexplorer_mcp.services.errors import ExtensionUnavailableError, QueryExecutionError


class TestHelpers:
    def test_bloat_ratio(self):
        assert bloat_ratio(25, 100) == 25.0
        assert bloat_ratio(1, 3) == 33.33

    @pytest.mark.parametrize("live", [0, None, -1])
    def test_bloat_ratio_without_live_rows(self, live):
        assert bloat_ratio(500, live) == 0.0

    def test_cache_hit_ratio(self):
        assert format_cache_hit_ratio("99.52") == "99.52%"
        assert format_cache_hit_ratio(None) == "N/A"
        assert format_cache_hit_ratio("") == "N/A"

    def test_pair_duplicate_indexes(self):
        rows = [
            {"table_name": "orders", "index_name": "orders_user_idx2", "columns": "user_id"},
            {"table_name": "orders", "index_name": "orders_user_idx", "columns": "user_id"},
            {"table_name": "orders", "index_name": "orders_total_idx", "columns": "total"},
            {"table_name": "users", "index_name": "users_b", "columns": "email"},
            {"table_name": "users", "index_name": "users_a", "columns": "email"},
            {"table_name": "users", "index_name": "users_c", "columns": "email"},
        ]

        pairs = [(d.table_name, d.index1, d.index2) for d in pair_duplicate_indexes(rows)]

        assert pairs == [
            ("orders", "orders_user_idx", "orders_user_idx2"),
            ("users", "users_a", "users_b"),
            ("users", "users_a", "users_c"),
            ("users", "users_b", "users_c"),
        ]
        assert all(first < second for _, first, second in pairs)

    def test_column_order_matters(self):
        rows = [
            {"table_name": "t", "index_name": "ab", "columns": "a, b"},
            {"table_name": "t", "index_name": "ba", "columns": "b, a"},
        ]
        assert pair_duplicate_indexes(rows) == []


class TestCatalogReporter:
    """Tests for CatalogReporter."""

    @pytest.mark.asyncio
    async def test_slow_queries(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(side_effect=[
            [{"available": True}],
            [{
                "query": "SELECT * FROM orders WHERE user_id = $1",
                "calls": 42,
                "total_time_ms": "1234.50",
                "mean_time_ms": "29.39",
                "stddev_time_ms": "3.10",
                "rows": 420,
            }],
        ])
        reporter = CatalogReporter(mock_sql_driver)

        queries = await reporter.get_slow_queries(limit=5)

        assert len(queries) == 1
        assert queries[0].calls == 42
        assert queries[0].mean_time_ms == 29.39
        assert mock_sql_driver.execute_query.call_args.args[1] == [5]

    @pytest.mark.asyncio
    async def test_slow_queries_without_extension(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(return_value=[{"available": False}])
        reporter = CatalogReporter(mock_sql_driver)

        with pytest.raises(ExtensionUnavailableError) as exc_info:
            await reporter.get_slow_queries()

        assert "pg_stat_statements" in str(exc_info.value)
        assert "CREATE EXTENSION pg_stat_statements" in str(exc_info.value)
        assert mock_sql_driver.execute_query.await_count == 1

    @pytest.mark.asyncio
    async def test_slow_queries_extension_not_preloaded(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(side_effect=[
            [{"available": True}],
            QueryExecutionError("Query failed: not loaded", sqlstate="55000"),
        ])
        reporter = CatalogReporter(mock_sql_driver)

        with pytest.raises(ExtensionUnavailableError) as exc_info:
            await reporter.get_slow_queries()

        assert "shared_preload_libraries" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_slow_queries_other_errors_propagate(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(side_effect=[
            [{"available": True}],
            QueryExecutionError("Query failed: canceled", sqlstate="57014"),
        ])
        reporter = CatalogReporter(mock_sql_driver)

        with pytest.raises(QueryExecutionError):
            await reporter.get_slow_queries()

    @pytest.mark.asyncio
    async def test_unused_indexes(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(return_value=[{
            "index_name": "orders_note_idx",
            "table_name": "orders",
            "index_size": "8192 bytes",
            "index_scans": 0,
        }])
        reporter = CatalogReporter(mock_sql_driver)

        indexes = await reporter.find_unused_indexes("public")

        assert indexes[0].index_name == "orders_note_idx"
        assert indexes[0].index_scans == 0

    @pytest.mark.asyncio
    async def test_duplicate_indexes(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(return_value=[
            {"table_name": "orders", "index_name": "b_idx", "columns": "user_id"},
            {"table_name": "orders", "index_name": "a_idx", "columns": "user_id"},
        ])
        reporter = CatalogReporter(mock_sql_driver)

        duplicates = await reporter.find_duplicate_indexes()

        assert len(duplicates) == 1
        assert (duplicates[0].index1, duplicates[0].index2) == ("a_idx", "b_idx")
        assert duplicates[0].columns == "user_id"

    @pytest.mark.asyncio
    async def test_table_bloat(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(return_value=[
            {
                "table_name": "events",
                "schema_name": "public",
                "live_tuples": 1000,
                "dead_tuples": 250,
                "wasted_bytes": "64 kB",
                "table_size": "1024 kB",
            },
            {
                "table_name": "empty_log",
                "schema_name": "public",
                "live_tuples": 0,
                "dead_tuples": 40,
                "wasted_bytes": "0 bytes",
                "table_size": "16 kB",
            },
        ])
        reporter = CatalogReporter(mock_sql_driver)

        report = await reporter.get_table_bloat("public")

        assert [t.bloat_ratio for t in report] == [25.0, 0.0]
        assert mock_sql_driver.execute_query.call_args.args[1] == ["public", TABLE_BLOAT_LIMIT]

    @pytest.mark.asyncio
    async def test_database_health(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(side_effect=[
            [{"db_size": "42 MB"}],
            [{"active": "3", "idle": "7", "max": "100"}],
            [{"cache_hit_ratio": None}],
            [{"total_commits": "1000", "total_rollbacks": "2"}],
        ])
        reporter = CatalogReporter(mock_sql_driver)

        health = await reporter.get_database_health()

        assert health.database_size == "42 MB"
        assert health.connections["max"] == "100"
        assert health.cache_hit_ratio == "N/A"
        assert health.transactions["total_rollbacks"] == "2"
        assert mock_sql_driver.execute_query.await_count == 4

    @pytest.mark.asyncio
    async def test_database_health_fails_as_a_whole(self, mock_sql_driver):
        mock_sql_driver.execute_query = AsyncMock(side_effect=[
            [{"db_size": "42 MB"}],
            QueryExecutionError("Query failed: permission denied", sqlstate="42501"),
            [{"cache_hit_ratio": "99.00"}],
            [{"total_commits": "1", "total_rollbacks": "0"}],
        ])
        reporter = CatalogReporter(mock_sql_driver)

        with pytest.raises(QueryExecutionError):
            await reporter.get_database_health()
