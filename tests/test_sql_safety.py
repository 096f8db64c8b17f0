"""Tests for the textual read-only validator and LIMIT injection."""

import pytest

from dbexplorer_mcp.services.errors import ForbiddenOperationError
from dbexplorer_mcp.services.sql_safety import (
    ensure_limit,
    strip_comments,
    validate_read_only,
)


class TestValidateReadOnly:
    """Tests for validate_read_only."""

    @pytest.mark.parametrize("sql", [
        "SELECT * FROM users",
        "select id, name from users where id = 1",
        "WITH recent AS (SELECT * FROM orders) SELECT count(*) FROM recent",
        "EXPLAIN SELECT 1",
        "SELECT created_at, updated_at FROM users",
        "SELECT * FROM deleted_items",
    ])
    def test_read_only_queries_pass(self, sql):
        validate_read_only(sql)

    @pytest.mark.parametrize("sql,keyword", [
        ("INSERT INTO users VALUES (1)", "INSERT"),
        ("update users set name = 'x'", "UPDATE"),
        ("DELETE FROM users", "DELETE"),
        ("DROP TABLE users", "DROP"),
        ("ALTER TABLE users ADD COLUMN x int", "ALTER"),
        ("CREATE TABLE t (id int)", "CREATE"),
        ("TRUNCATE users", "TRUNCATE"),
        ("GRANT SELECT ON users TO bob", "GRANT"),
        ("REVOKE SELECT ON users FROM bob", "REVOKE"),
        ("COPY users TO '/tmp/users.csv'", "COPY"),
        ("VACUUM users", "VACUUM"),
        ("REINDEX TABLE users", "REINDEX"),
        ("CLUSTER users", "CLUSTER"),
    ])
    def test_forbidden_keywords_rejected(self, sql, keyword):
        with pytest.raises(ForbiddenOperationError) as exc_info:
            validate_read_only(sql)

        assert keyword in exc_info.value.pattern
        assert "forbidden operation" in str(exc_info.value)
        assert "Detected pattern" in str(exc_info.value)

    def test_keyword_hidden_after_select_rejected(self):
        with pytest.raises(ForbiddenOperationError):
            validate_read_only("SELECT 1; DROP TABLE users")

    def test_keyword_only_in_line_comment_passes(self):
        validate_read_only("SELECT * FROM users -- DROP TABLE users")

    def test_keyword_only_in_block_comment_passes(self):
        validate_read_only("SELECT /* DELETE everything */ * FROM users")

    def test_multiline_block_comment_passes(self):
        validate_read_only("/*\n  TRUNCATE users;\n*/\nSELECT 1")

    def test_keyword_outside_comment_still_rejected(self):
        with pytest.raises(ForbiddenOperationError):
            validate_read_only("-- harmless\nDELETE FROM users")

    @pytest.mark.parametrize("sql", [
        "/* -- */ DROP TABLE users",
        "SELECT 1 /* note -- trailing */ ; DELETE FROM users",
    ])
    def test_line_marker_inside_block_comment_does_not_hide_keyword(self, sql):
        with pytest.raises(ForbiddenOperationError):
            validate_read_only(sql)

    def test_block_opener_inside_line_comment_is_inert(self):
        validate_read_only("SELECT 1 -- /* DROP TABLE users */\nFROM users")

    def test_block_opener_after_line_comment_does_not_hide_keyword(self):
        with pytest.raises(ForbiddenOperationError):
            validate_read_only("SELECT 1 -- /*\nDROP TABLE users -- */")

    def test_mutation_pattern_reported_first(self):
        with pytest.raises(ForbiddenOperationError) as exc_info:
            validate_read_only("DELETE FROM users; VACUUM users")

        assert "DELETE" in exc_info.value.pattern
        assert "VACUUM" not in exc_info.value.pattern


class TestStripComments:
    def test_strips_both_comment_styles(self):
        cleaned = strip_comments("SELECT 1 -- one\n/* two */ FROM t")
        assert "one" not in cleaned
        assert "two" not in cleaned
        assert "SELECT 1" in cleaned
        assert "FROM t" in cleaned


class TestEnsureLimit:
    """Tests for ensure_limit."""

    def test_appends_limit_to_select(self):
        assert ensure_limit("SELECT * FROM users", 100) == "SELECT * FROM users LIMIT 100"

    def test_case_insensitive_select(self):
        assert ensure_limit("  select id from users", 5) == "select id from users LIMIT 5"

    def test_trailing_semicolon_and_whitespace_trimmed(self):
        assert ensure_limit("SELECT * FROM users;  \n", 10) == "SELECT * FROM users LIMIT 10"

    def test_existing_limit_unchanged(self):
        sql = "SELECT * FROM users LIMIT 5"
        assert ensure_limit(sql, 100) == sql

    def test_existing_limit_only_trimmed(self):
        assert ensure_limit("SELECT * FROM users limit 5;", 100) == "SELECT * FROM users limit 5"

    def test_idempotent(self):
        once = ensure_limit("SELECT * FROM users;", 50)
        assert ensure_limit(once, 50) == once
        assert ensure_limit(once, 999) == once

    def test_non_select_passes_through(self):
        sql = "WITH x AS (SELECT 1) SELECT * FROM x"
        assert ensure_limit(sql, 100) == sql

    def test_trailing_line_comment_does_not_swallow_limit(self):
        assert ensure_limit("SELECT * FROM orders -- every row", 100) == "SELECT * FROM orders LIMIT 100"

    def test_semicolon_before_trailing_comment(self):
        assert ensure_limit("SELECT * FROM orders; -- done", 10) == "SELECT * FROM orders LIMIT 10"

    def test_limit_only_inside_comment_still_appends(self):
        result = ensure_limit("SELECT * FROM t /* LIMIT */", 100)
        assert result.endswith(" LIMIT 100")
        assert "/*" not in result

    def test_commented_query_with_real_limit_unchanged(self):
        sql = "SELECT * FROM t -- newest first\nLIMIT 5"
        assert ensure_limit(sql, 100) == sql

    def test_explain_passes_through(self):
        assert ensure_limit("EXPLAIN SELECT 1;", 100) == "EXPLAIN SELECT 1"
