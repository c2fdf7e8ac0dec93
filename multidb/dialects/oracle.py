"""
Oracle dialect: double-quoted identifiers, ROWNUM pagination, SYSDATE arithmetic.

ROWNUM is assigned before ORDER BY and before any "skip" can happen, so
limits over ordered results, and offsets in general, are expressed by
wrapping the query in subqueries (get_paginated_query) rather than by an
inline predicate.
"""

from .base import SQLDialect, _non_negative_int

_SYSTEM_PREFIXES = ("ALL_", "DBA_", "USER_", "V$", "GV$", "X$", "SYS", "SYSTEM", "BIN$")

_DATE_FUNCTIONS = {
    "NOW": "SYSDATE",
    "CURRENT_DATE": "CURRENT_DATE",
    "CURRENT_TIMESTAMP": "CURRENT_TIMESTAMP",
    "DATE_SUB": "SYSDATE - INTERVAL '24' HOUR",
}


class OracleDialect(SQLDialect):
    __slots__ = ()

    name = "Oracle"
    version = "1.0.0"

    type_map = {
        "NUMBER": "decimal",
        "FLOAT": "decimal",
        "BINARY_FLOAT": "decimal",
        "BINARY_DOUBLE": "decimal",
        "INTEGER": "integer",
        "INT": "integer",
        "SMALLINT": "integer",
        "PLS_INTEGER": "integer",
        "VARCHAR2": "string",
        "NVARCHAR2": "string",
        "VARCHAR": "string",
        "CHAR": "string",
        "NCHAR": "string",
        "ROWID": "string",
        "UROWID": "string",
        "INTERVAL DAY TO SECOND": "string",
        "INTERVAL YEAR TO MONTH": "string",
        "CLOB": "text",
        "NCLOB": "text",
        "LONG": "text",
        "XMLTYPE": "text",
        "BLOB": "binary",
        "BFILE": "binary",
        "RAW": "binary",
        "LONG RAW": "binary",
        "DATE": "datetime",
        "TIMESTAMP": "datetime",
        "TIMESTAMP WITH TIME ZONE": "datetime",
        "TIMESTAMP WITH LOCAL TIME ZONE": "datetime",
        "BOOLEAN": "boolean",
        "JSON": "json",
    }

    def _normalize_type(self, db_type: str) -> str:
        return db_type.upper()

    def quote_identifier(self, identifier: str) -> str:
        return '"' + str(identifier).replace('"', '""') + '"'

    def get_limit_clause(self, limit: int, offset: int = 0) -> str:
        """``ROWNUM <= n`` predicate (no WHERE). With an offset the bound is
        limit + offset and the caller must use get_paginated_query to skip rows."""
        n = _non_negative_int(limit, "limit")
        m = _non_negative_int(offset or 0, "offset")
        return f"ROWNUM <= {n + m}"

    def get_paginated_query(self, query: str, limit: int, offset: int = 0) -> str:
        n = _non_negative_int(limit, "limit")
        m = _non_negative_int(offset or 0, "offset")
        if m == 0:
            return f"SELECT * FROM ({query}) WHERE {self.get_limit_clause(n)}"
        return (
            "SELECT * FROM ("
            f"SELECT a.*, ROWNUM rnum FROM ({query}) a WHERE ROWNUM <= {n + m}"
            f") WHERE rnum > {m}"
        )

    def get_date_function(self, function_name: str) -> str:
        return _DATE_FUNCTIONS.get(function_name.upper(), function_name)

    def get_current_timestamp(self) -> str:
        return "SYSDATE"

    def get_date_subtraction(self, date_field: str, hours: int) -> str:
        # NUMTODSINTERVAL avoids the 2-digit default precision of INTERVAL 'n' HOUR.
        h = _non_negative_int(hours, "hours")
        return f"{date_field} >= SYSDATE - NUMTODSINTERVAL({h}, 'HOUR')"

    def get_select_all_query(self, table: str, limit: int = 50) -> str:
        n = _non_negative_int(limit, "limit")
        return f"SELECT * FROM {self.quote_identifier(table)} WHERE {self.get_limit_clause(n)}"

    def is_system_table(self, table_name: str) -> bool:
        upper = table_name.upper()
        return "$" in upper or any(upper.startswith(p) for p in _SYSTEM_PREFIXES)

    def get_sequence_next_val(self, sequence_name: str) -> str:
        return f"{sequence_name}.NEXTVAL"

    def get_sequence_curr_val(self, sequence_name: str) -> str:
        return f"{sequence_name}.CURRVAL"
