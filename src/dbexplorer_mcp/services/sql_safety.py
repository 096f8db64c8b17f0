"""
Textual read-only checks for user-supplied SQL.

This is a keyword heuristic, not a parser. Matching is on whole words, but a
string literal such as ``'DROP'`` is still rejected, and side effects such as
``SELECT ... INTO`` go unnoticed. The session-level ``READ ONLY``
transaction opened by the driver is the actual safety boundary.
"""

from __future__ import annotations

import re

from .errors import ForbiddenOperationError

FORBIDDEN_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(INSERT|UPDATE|DELETE|DROP|ALTER|CREATE|TRUNCATE|GRANT|REVOKE)\b", re.IGNORECASE),
    re.compile(r"\b(COPY)\b", re.IGNORECASE),
    re.compile(r"\b(VACUUM|REINDEX|CLUSTER)\b", re.IGNORECASE),
)

# One left-to-right scan: whichever comment opens first owns the text up to
# its own terminator, so "--" inside /* */ and "/*" after "--" are both inert.
_COMMENT = re.compile(r"--[^\n]*|/\*[\s\S]*?\*/")
_SELECT_START = re.compile(r"^\s*SELECT", re.IGNORECASE)
_HAS_LIMIT = re.compile(r"\bLIMIT\b", re.IGNORECASE)


def strip_comments(sql: str) -> str:
    """Replace ``--`` line comments and ``/* */`` block comments with a space."""
    return _COMMENT.sub(" ", sql)


def _trim(sql: str) -> str:
    trimmed = sql.strip()
    if trimmed.endswith(";"):
        trimmed = trimmed[:-1].rstrip()
    return trimmed


def validate_read_only(sql: str) -> None:
    """
    Reject SQL that contains a mutation, DDL, bulk-load or maintenance keyword.

    Keywords that only appear inside comments are ignored.

    Raises:
        ForbiddenOperationError: With the source of the first matching pattern
    """
    cleaned = strip_comments(sql)
    for pattern in FORBIDDEN_PATTERNS:
        if pattern.search(cleaned):
            raise ForbiddenOperationError(pattern.pattern)


def ensure_limit(sql: str, limit: int) -> str:
    """
    Append ``LIMIT <limit>`` to a SELECT that has none.

    Trailing whitespace and one trailing semicolon are always trimmed.
    The SELECT and LIMIT checks ignore comments; when a LIMIT is added it
    goes on the comment-free text so a trailing ``--`` cannot swallow it.
    Statements not starting with SELECT (``WITH ...`` included) pass through.
    """
    trimmed = _trim(sql)
    cleaned = _trim(strip_comments(trimmed))

    if _SELECT_START.match(cleaned) and not _HAS_LIMIT.search(cleaned):
        return f"{cleaned} LIMIT {limit}"

    return trimmed
