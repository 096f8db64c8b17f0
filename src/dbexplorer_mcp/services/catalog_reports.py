"""Catalog statistics reports: slow queries, index usage, bloat and health."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from .errors import ExtensionUnavailableError, QueryExecutionError
from .sql_driver import SqlDriver

logger = logging.getLogger(__name__)

TABLE_BLOAT_LIMIT = 20

# undefined_table, object_not_in_prerequisite_state (not in shared_preload_libraries)
_MISSING_EXTENSION_SQLSTATES = ("42P01", "55000")

PG_STAT_STATEMENTS_REMEDIATION = "Install it with: CREATE EXTENSION pg_stat_statements;"

EXTENSION_CHECK_QUERY = """
    SELECT EXISTS (
        SELECT 1 FROM pg_extension WHERE extname = 'pg_stat_statements'
    ) AS available
"""

SLOW_QUERIES_QUERY = """
    SELECT
        query,
        calls,
        round(total_exec_time::numeric, 2) AS total_time_ms,
        round(mean_exec_time::numeric, 2) AS mean_time_ms,
        round(stddev_exec_time::numeric, 2) AS stddev_time_ms,
        rows
    FROM pg_stat_statements
    WHERE query NOT LIKE '%%pg_stat_statements%%'
    ORDER BY mean_exec_time DESC
    LIMIT %s
"""

UNUSED_INDEXES_QUERY = """
    SELECT
        s.indexrelname AS index_name,
        s.relname AS table_name,
        pg_size_pretty(pg_relation_size(s.indexrelid)) AS index_size,
        s.idx_scan AS index_scans
    FROM pg_stat_user_indexes s
    JOIN pg_index i ON s.indexrelid = i.indexrelid
    WHERE s.schemaname = %s
      AND s.idx_scan = 0
      AND NOT i.indisunique
      AND NOT i.indisprimary
    ORDER BY pg_relation_size(s.indexrelid) DESC
"""

INDEX_COLUMNS_QUERY = """
    SELECT
        t.relname AS table_name,
        i.relname AS index_name,
        array_to_string(array_agg(a.attname ORDER BY k.n), ', ') AS columns
    FROM pg_index x
    JOIN pg_class t ON t.oid = x.indrelid
    JOIN pg_class i ON i.oid = x.indexrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    CROSS JOIN unnest(x.indkey) WITH ORDINALITY AS k(attnum, n)
    JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
    WHERE n.nspname = %s
    GROUP BY t.relname, i.relname
    ORDER BY t.relname, i.relname
"""

TABLE_BLOAT_QUERY = """
    SELECT
        relname AS table_name,
        schemaname AS schema_name,
        n_live_tup AS live_tuples,
        n_dead_tup AS dead_tuples,
        pg_size_pretty(
            pg_total_relation_size(quote_ident(schemaname) || '.' || quote_ident(relname))
            - pg_relation_size(quote_ident(schemaname) || '.' || quote_ident(relname))
        ) AS wasted_bytes,
        pg_size_pretty(
            pg_total_relation_size(quote_ident(schemaname) || '.' || quote_ident(relname))
        ) AS table_size
    FROM pg_stat_user_tables
    WHERE schemaname = %s
    ORDER BY n_dead_tup DESC
    LIMIT %s
"""

DATABASE_SIZE_QUERY = """
    SELECT pg_size_pretty(pg_database_size(current_database())) AS db_size
"""

CONNECTIONS_QUERY = """
    SELECT
        count(*) FILTER (WHERE state = 'active')::text AS active,
        count(*) FILTER (WHERE state = 'idle')::text AS idle,
        (SELECT setting FROM pg_settings WHERE name = 'max_connections') AS max
    FROM pg_stat_activity
"""

CACHE_HIT_RATIO_QUERY = """
    SELECT
        round(
            sum(heap_blks_hit)::numeric /
            NULLIF(sum(heap_blks_hit) + sum(heap_blks_read), 0) * 100, 2
        )::text AS cache_hit_ratio
    FROM pg_statio_user_tables
"""

TRANSACTIONS_QUERY = """
    SELECT
        xact_commit::text AS total_commits,
        xact_rollback::text AS total_rollbacks
    FROM pg_stat_database
    WHERE datname = current_database()
"""


@dataclass
class SlowQuery:
    query: str
    calls: int
    total_time_ms: float
    mean_time_ms: float
    stddev_time_ms: float
    rows: int


@dataclass
class UnusedIndex:
    index_name: str
    table_name: str
    index_size: str
    index_scans: int


@dataclass
class DuplicateIndex:
    table_name: str
    index1: str
    index2: str
    columns: str


@dataclass
class TableBloat:
    table_name: str
    schema_name: str
    live_tuples: int
    dead_tuples: int
    bloat_ratio: float
    wasted_bytes: str
    table_size: str


@dataclass
class DatabaseHealth:
    database_size: str | None
    connections: dict[str, Any] | None
    cache_hit_ratio: str
    transactions: dict[str, Any] | None


def bloat_ratio(dead_tuples: int | None, live_tuples: int | None) -> float:
    """Dead rows as a percentage of live rows, 0 when there are no live rows."""
    live = live_tuples or 0
    if live <= 0:
        return 0.0
    return round((dead_tuples or 0) / live * 100, 2)


def pair_duplicate_indexes(rows: list[dict[str, Any]]) -> list[DuplicateIndex]:
    """
    Pair up indexes of the same table that cover the same ordered columns.

    Each pair appears once with the lexicographically smaller name first.
    """
    groups: dict[tuple[str, str], list[str]] = {}
    for row in rows:
        key = (row["table_name"], row["columns"])
        names = groups.setdefault(key, [])
        if row["index_name"] not in names:
            names.append(row["index_name"])

    duplicates = []
    for (table_name, columns), names in groups.items():
        names = sorted(names)
        for i, first in enumerate(names):
            for second in names[i + 1:]:
                duplicates.append(DuplicateIndex(
                    table_name=table_name,
                    index1=first,
                    index2=second,
                    columns=columns,
                ))

    duplicates.sort(key=lambda d: (d.table_name, d.index1, d.index2))
    return duplicates


def format_cache_hit_ratio(ratio: Any) -> str:
    """``"99.5%"``, or ``"N/A"`` when no buffer activity has been recorded yet."""
    if ratio is None or ratio == "":
        return "N/A"
    return f"{ratio}%"


class CatalogReporter:
    """Read-only reports built from PostgreSQL statistics views."""

    def __init__(self, sql_driver: SqlDriver):
        self.sql_driver = sql_driver

    async def get_slow_queries(self, limit: int = 10) -> list[SlowQuery]:
        """
        Slowest statements by mean execution time, from pg_stat_statements.

        Raises:
            ExtensionUnavailableError: If pg_stat_statements is not installed
                or not loaded
        """
        check = await self.sql_driver.execute_query(EXTENSION_CHECK_QUERY)
        if not check or not check[0].get("available"):
            raise ExtensionUnavailableError("pg_stat_statements", PG_STAT_STATEMENTS_REMEDIATION)

        try:
            rows = await self.sql_driver.execute_query(SLOW_QUERIES_QUERY, [limit])
        except QueryExecutionError as e:
            if e.sqlstate in _MISSING_EXTENSION_SQLSTATES:
                raise ExtensionUnavailableError(
                    "pg_stat_statements",
                    f"{PG_STAT_STATEMENTS_REMEDIATION} "
                    "It must also be listed in shared_preload_libraries in postgresql.conf.",
                ) from e
            raise

        return [
            SlowQuery(
                query=row["query"],
                calls=row["calls"],
                total_time_ms=float(row["total_time_ms"]),
                mean_time_ms=float(row["mean_time_ms"]),
                stddev_time_ms=float(row["stddev_time_ms"]),
                rows=row["rows"],
            )
            for row in rows
        ]

    async def find_unused_indexes(self, schema: str = "public") -> list[UnusedIndex]:
        """Never-scanned indexes. Unique and primary key indexes are left out."""
        rows = await self.sql_driver.execute_query(UNUSED_INDEXES_QUERY, [schema])
        return [UnusedIndex(**row) for row in rows]

    async def find_duplicate_indexes(self, schema: str = "public") -> list[DuplicateIndex]:
        rows = await self.sql_driver.execute_query(INDEX_COLUMNS_QUERY, [schema])
        return pair_duplicate_indexes(rows)

    async def get_table_bloat(self, schema: str = "public") -> list[TableBloat]:
        """Top tables by dead tuples, with dead/live ratio as a percentage."""
        rows = await self.sql_driver.execute_query(TABLE_BLOAT_QUERY, [schema, TABLE_BLOAT_LIMIT])
        return [
            TableBloat(
                table_name=row["table_name"],
                schema_name=row["schema_name"],
                live_tuples=row["live_tuples"] or 0,
                dead_tuples=row["dead_tuples"] or 0,
                bloat_ratio=bloat_ratio(row["dead_tuples"], row["live_tuples"]),
                wasted_bytes=row["wasted_bytes"],
                table_size=row["table_size"],
            )
            for row in rows
        ]

    async def get_database_health(self) -> DatabaseHealth:
        """
        Size, connections, cache hit ratio and transaction counters.

        The four queries run concurrently on separate pooled connections.
        If any of them fails the whole report fails.
        """
        size_rows, connection_rows, cache_rows, tx_rows = await asyncio.gather(
            self.sql_driver.execute_query(DATABASE_SIZE_QUERY),
            self.sql_driver.execute_query(CONNECTIONS_QUERY),
            self.sql_driver.execute_query(CACHE_HIT_RATIO_QUERY),
            self.sql_driver.execute_query(TRANSACTIONS_QUERY),
        )

        return DatabaseHealth(
            database_size=size_rows[0]["db_size"] if size_rows else None,
            connections=connection_rows[0] if connection_rows else None,
            cache_hit_ratio=format_cache_hit_ratio(
                cache_rows[0].get("cache_hit_ratio") if cache_rows else None
            ),
            transactions=tx_rows[0] if tx_rows else None,
        )
