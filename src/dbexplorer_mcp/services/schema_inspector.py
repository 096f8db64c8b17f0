"""Schema introspection queries over information_schema and pg_catalog."""

from __future__ import annotations

from typing import Any

from .sql_driver import SqlDriver

LIST_SCHEMAS_QUERY = """
    SELECT schema_name
    FROM information_schema.schemata
    WHERE schema_name NOT IN ('pg_catalog', 'information_schema', 'pg_toast')
      AND schema_name NOT LIKE 'pg_temp_%'
      AND schema_name NOT LIKE 'pg_toast_temp_%'
    ORDER BY schema_name
"""

LIST_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

LIST_VIEWS_QUERY = """
    SELECT table_name
    FROM information_schema.views
    WHERE table_schema = %s
    ORDER BY table_name
"""

DESCRIBE_TABLE_QUERY = """
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        character_maximum_length,
        numeric_precision
    FROM information_schema.columns
    WHERE table_schema = %s AND table_name = %s
    ORDER BY ordinal_position
"""

FOREIGN_KEYS_QUERY = """
    SELECT
        tc.constraint_name,
        kcu.column_name,
        ccu.table_schema AS foreign_table_schema,
        ccu.table_name AS foreign_table_name,
        ccu.column_name AS foreign_column_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage AS ccu
      ON ccu.constraint_name = tc.constraint_name
     AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = %s
      AND tc.table_name = %s
    ORDER BY tc.constraint_name
"""

LIST_INDEXES_QUERY = """
    SELECT
        i.relname AS index_name,
        pg_get_indexdef(ix.indexrelid) AS index_definition,
        ix.indisunique AS is_unique,
        ix.indisprimary AS is_primary,
        array_to_string(array_agg(a.attname ORDER BY k.n), ', ') AS columns
    FROM pg_class t
    JOIN pg_index ix ON t.oid = ix.indrelid
    JOIN pg_class i ON i.oid = ix.indexrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    CROSS JOIN unnest(ix.indkey) WITH ORDINALITY AS k(attnum, n)
    JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
    WHERE n.nspname = %s AND t.relname = %s
    GROUP BY i.relname, ix.indexrelid, ix.indisunique, ix.indisprimary
    ORDER BY i.relname
"""

CONSTRAINTS_QUERY = """
    SELECT
        tc.constraint_name,
        tc.constraint_type,
        string_agg(kcu.column_name, ', ' ORDER BY kcu.ordinal_position) AS columns
    FROM information_schema.table_constraints tc
    LEFT JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    WHERE tc.table_schema = %s
      AND tc.table_name = %s
      AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE', 'CHECK')
    GROUP BY tc.constraint_name, tc.constraint_type
    ORDER BY tc.constraint_type, tc.constraint_name
"""

TABLE_STATS_QUERY = """
    SELECT
        c.relname AS table_name,
        n.nspname AS schema_name,
        c.reltuples::bigint AS estimated_row_count,
        pg_size_pretty(pg_total_relation_size(c.oid)) AS total_size,
        pg_size_pretty(pg_table_size(c.oid)) AS table_size,
        pg_size_pretty(pg_indexes_size(c.oid)) AS index_size,
        s.last_vacuum::text AS last_vacuum,
        s.last_analyze::text AS last_analyze,
        s.n_live_tup AS live_tuples,
        s.n_dead_tup AS dead_tuples
    FROM pg_class c
    JOIN pg_namespace n ON n.oid = c.relnamespace
    LEFT JOIN pg_stat_user_tables s ON s.relid = c.oid
    WHERE n.nspname = %s AND c.relname = %s AND c.relkind = 'r'
"""


class SchemaInspector:
    """Read-only catalog lookups for schemas, tables and their metadata."""

    def __init__(self, sql_driver: SqlDriver):
        self.sql_driver = sql_driver

    async def list_schemas(self) -> list[str]:
        rows = await self.sql_driver.execute_query(LIST_SCHEMAS_QUERY)
        return [row["schema_name"] for row in rows]

    async def list_tables(self, schema: str = "public") -> list[str]:
        rows = await self.sql_driver.execute_query(LIST_TABLES_QUERY, [schema])
        return [row["table_name"] for row in rows]

    async def list_views(self, schema: str = "public") -> list[str]:
        rows = await self.sql_driver.execute_query(LIST_VIEWS_QUERY, [schema])
        return [row["table_name"] for row in rows]

    async def describe_table(self, table: str, schema: str = "public") -> list[dict[str, Any]]:
        """Columns with data type, nullability and default, in ordinal order."""
        return await self.sql_driver.execute_query(DESCRIBE_TABLE_QUERY, [schema, table])

    async def get_foreign_keys(self, table: str, schema: str = "public") -> list[dict[str, Any]]:
        return await self.sql_driver.execute_query(FOREIGN_KEYS_QUERY, [schema, table])

    async def list_indexes(self, table: str, schema: str = "public") -> list[dict[str, Any]]:
        return await self.sql_driver.execute_query(LIST_INDEXES_QUERY, [schema, table])

    async def get_constraints(self, table: str, schema: str = "public") -> list[dict[str, Any]]:
        """PRIMARY KEY, UNIQUE and CHECK constraints with their column lists."""
        return await self.sql_driver.execute_query(CONSTRAINTS_QUERY, [schema, table])

    async def get_table_stats(self, table: str, schema: str = "public") -> dict[str, Any] | None:
        """Size, tuple counts and vacuum info, or None if the table does not exist."""
        rows = await self.sql_driver.execute_query(TABLE_STATS_QUERY, [schema, table])
        return rows[0] if rows else None

    async def get_overview(self, connection_info: dict[str, Any] | None) -> dict[str, Any]:
        """Connection details plus every user schema mapped to its tables."""
        schemas = await self.list_schemas()
        tables_per_schema = {}
        for schema in schemas:
            tables_per_schema[schema] = await self.list_tables(schema)

        return {
            "connection": connection_info,
            "schemas": tables_per_schema,
        }
