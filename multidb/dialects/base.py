"""
Base SQL dialect: the default, family-neutral text generator.

Dialects are pure: no connection, no configuration, no mutable state. The
same inputs always produce the same SQL text, so they can be used to preview
SQL as well as to build statements for a Driver.
"""

import re

GENERIC_TYPES = frozenset(
    {
        "integer",
        "decimal",
        "string",
        "text",
        "datetime",
        "date",
        "time",
        "boolean",
        "binary",
        "json",
    }
)

_PARAMS = re.compile(r"\([^)]*\)")


def _non_negative_int(value: int | str, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got bool")
    try:
        n = int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be an integer: {value!r}") from e
    if n < 0:
        raise ValueError(f"{name} must not be negative: {n}")
    return n


class SQLDialect:
    """Default dialect. Family dialects override the primitives below."""

    __slots__ = ()

    name = "default"
    version = "1.0.0"

    # Generic type per native base type name. Keys are normalized with
    # _normalize_type (case per family, parameters stripped).
    type_map: dict[str, str] = {}
    # Words dropped from native type names before lookup.
    type_modifiers: frozenset[str] = frozenset()

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def quote_identifier(self, identifier: str) -> str:
        return identifier

    def qualify_name(self, *parts: str) -> str:
        """Quoted dotted name, e.g. qualify_name("shop", "orders")."""
        return ".".join(self.quote_identifier(p) for p in parts if p)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def get_limit_clause(self, limit: int, offset: int = 0) -> str:
        return ""

    def get_paginated_query(self, query: str, limit: int, offset: int = 0) -> str:
        clause = self.get_limit_clause(limit, offset)
        return f"{query} {clause}".rstrip()

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def get_date_function(self, function_name: str) -> str:
        return function_name

    def get_current_timestamp(self) -> str:
        return "NOW()"

    def get_date_subtraction(self, date_field: str, hours: int) -> str:
        h = _non_negative_int(hours, "hours")
        return f"{date_field} >= DATE_SUB(NOW(), INTERVAL {h} HOUR)"

    # ------------------------------------------------------------------
    # Types and catalog
    # ------------------------------------------------------------------

    def _normalize_type(self, db_type: str) -> str:
        return db_type.lower()

    def map_data_type(self, db_type: str) -> str:
        """
        Collapse a native type name into one of GENERIC_TYPES.

        Parenthesized parameters (``varchar(255)``, ``NUMBER(10,2)``,
        ``TIMESTAMP(6) WITH TIME ZONE``) and modifiers such as ``unsigned``
        are removed before lookup. Unknown types map to ``string``.
        """
        if not db_type:
            return "string"
        base = self._normalize_type(_PARAMS.sub("", str(db_type)))
        words = [w for w in base.split() if w.lower() not in self.type_modifiers]
        if not words:
            return "string"
        full = " ".join(words)
        return self.type_map.get(full) or self.type_map.get(words[0]) or "string"

    def is_system_table(self, table_name: str) -> bool:
        return False

    # ------------------------------------------------------------------
    # Composite queries
    # ------------------------------------------------------------------

    def get_count_query(self, table: str) -> str:
        return f"SELECT COUNT(*) AS total FROM {self.quote_identifier(table)}"

    def get_select_all_query(self, table: str, limit: int = 50) -> str:
        return self.get_paginated_query(f"SELECT * FROM {self.quote_identifier(table)}", limit)

    def get_recent_records_query(
        self,
        table: str,
        date_field: str,
        hours: int = 24,
        limit: int = 20,
    ) -> str:
        """Rows whose ``date_field`` lies within the last ``hours``, newest first."""
        quoted_table = self.quote_identifier(table)
        quoted_field = self.quote_identifier(date_field)
        condition = self.get_date_subtraction(quoted_field, hours)
        query = f"SELECT * FROM {quoted_table} WHERE {condition} ORDER BY {quoted_field} DESC"
        return self.get_paginated_query(query, limit)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, version={self.version!r})"
