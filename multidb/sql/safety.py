"""
Read-only safety check for caller-supplied SQL.

Flags statements that contain data- or schema-modifying keywords outside of
quoted literals and comments. Keywords match on word boundaries, so columns
such as ``updated_at`` or ``created_by`` are not flagged.

Usage::

    check_read_only("SELECT * FROM orders")      # ok
    check_read_only("DELETE FROM orders")        # raises UnsafeQueryError
"""

import re

from multidb.core.errors import UnsafeQueryError

from .statements import CODE, iter_segments

DANGEROUS_KEYWORDS = (
    "DROP",
    "DELETE",
    "UPDATE",
    "INSERT",
    "ALTER",
    "TRUNCATE",
    "CREATE",
    "EXEC",
    "EXECUTE",
    "MERGE",
    "GRANT",
    "REVOKE",
    "RENAME",
    "CALL",
)

_KEYWORD_PATTERN = re.compile(
    r"(?<![\w$#@])(" + "|".join(DANGEROUS_KEYWORDS) + r")(?![\w$#@])",
    re.IGNORECASE,
)


def find_unsafe_keywords(sql: str) -> list[str]:
    """Return dangerous keywords found in ``sql`` (uppercased, first-seen order)."""
    found: list[str] = []
    for kind, text in iter_segments(sql or ""):
        if kind != CODE:
            continue
        for m in _KEYWORD_PATTERN.finditer(text):
            kw = m.group(1).upper()
            if kw not in found:
                found.append(kw)
    return found


def check_read_only(sql: str, *, family: str | None = None) -> None:
    """Raise UnsafeQueryError if ``sql`` is empty or not read-only."""
    if not sql or not isinstance(sql, str) or not sql.strip():
        raise UnsafeQueryError(
            "Query must be a non-empty string", family=family, operation="check_read_only"
        )
    found = find_unsafe_keywords(sql)
    if found:
        raise UnsafeQueryError(
            f"Query contains dangerous keyword: {found[0]}",
            family=family,
            operation="check_read_only",
        )
