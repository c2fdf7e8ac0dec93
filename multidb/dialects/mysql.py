"""
MySQL dialect: backtick identifiers, trailing LIMIT/OFFSET, DATE_SUB arithmetic.
"""

from .base import SQLDialect, _non_negative_int

_SYSTEM_PREFIXES = ("sys", "mysql", "information_schema", "performance_schema")

_DATE_FUNCTIONS = {
    "NOW": "NOW()",
    "CURRENT_DATE": "CURRENT_DATE()",
    "CURRENT_TIMESTAMP": "CURRENT_TIMESTAMP()",
    "DATE_SUB": "DATE_SUB(NOW(), INTERVAL 24 HOUR)",
}


class MySQLDialect(SQLDialect):
    __slots__ = ()

    name = "MySQL"
    version = "1.0.0"

    type_map = {
        "int": "integer",
        "integer": "integer",
        "tinyint": "integer",
        "smallint": "integer",
        "mediumint": "integer",
        "bigint": "integer",
        "year": "integer",
        "decimal": "decimal",
        "numeric": "decimal",
        "dec": "decimal",
        "fixed": "decimal",
        "float": "decimal",
        "double": "decimal",
        "double precision": "decimal",
        "real": "decimal",
        "varchar": "string",
        "char": "string",
        "enum": "string",
        "set": "string",
        "text": "text",
        "tinytext": "text",
        "mediumtext": "text",
        "longtext": "text",
        "datetime": "datetime",
        "timestamp": "datetime",
        "date": "date",
        "time": "time",
        "bool": "boolean",
        "boolean": "boolean",
        "bit": "binary",
        "binary": "binary",
        "varbinary": "binary",
        "blob": "binary",
        "tinyblob": "binary",
        "mediumblob": "binary",
        "longblob": "binary",
        "json": "json",
    }
    type_modifiers = frozenset({"unsigned", "signed", "zerofill"})

    def quote_identifier(self, identifier: str) -> str:
        return "`" + str(identifier).replace("`", "``") + "`"

    def get_limit_clause(self, limit: int, offset: int = 0) -> str:
        n = _non_negative_int(limit, "limit")
        m = _non_negative_int(offset or 0, "offset")
        clause = f"LIMIT {n}"
        if m > 0:
            clause += f" OFFSET {m}"
        return clause

    def get_date_function(self, function_name: str) -> str:
        return _DATE_FUNCTIONS.get(function_name.upper(), function_name)

    def get_current_timestamp(self) -> str:
        return "NOW()"

    def get_date_subtraction(self, date_field: str, hours: int) -> str:
        h = _non_negative_int(hours, "hours")
        return f"{date_field} >= DATE_SUB(NOW(), INTERVAL {h} HOUR)"

    def is_system_table(self, table_name: str) -> bool:
        lower = table_name.lower()
        return any(lower.startswith(p) for p in _SYSTEM_PREFIXES)
