"""
SQL dialects keyed by family name.

Dialects are stateless, so one shared instance per family is enough.
"""

from multidb.core.errors import UnsupportedFamilyError
from multidb.models import FamilyEnum, resolve_family

from .base import GENERIC_TYPES, SQLDialect
from .mysql import MySQLDialect
from .oracle import OracleDialect

_DIALECTS: dict[FamilyEnum, SQLDialect] = {
    FamilyEnum.MYSQL: MySQLDialect(),
    FamilyEnum.ORACLE: OracleDialect(),
}

DEFAULT_DIALECT = SQLDialect()


def get_dialect(family: FamilyEnum | str) -> SQLDialect:
    """Return the dialect for ``family``; raises UnsupportedFamilyError if unknown."""
    fam = resolve_family(family, operation="get_dialect")
    dialect = _DIALECTS.get(fam)
    if dialect is None:
        raise UnsupportedFamilyError(
            f"No dialect registered for {fam.value}", family=fam.value, operation="get_dialect"
        )
    return dialect


__all__ = [
    "GENERIC_TYPES",
    "SQLDialect",
    "MySQLDialect",
    "OracleDialect",
    "DEFAULT_DIALECT",
    "get_dialect",
]
