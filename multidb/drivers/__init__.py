"""
Driver registry.

One Driver class per family. ``create_driver`` returns a fresh, disconnected
instance; each instance owns its own pool.
"""

from typing import Any

from multidb.core.errors import UnsupportedFamilyError
from multidb.models import FamilyEnum, resolve_family

from .base import DatabaseDriver, format_validation_errors
from .mysql import MySQLDriver
from .oracle import OracleDriver

DRIVERS: dict[FamilyEnum, type[DatabaseDriver]] = {
    FamilyEnum.MYSQL: MySQLDriver,
    FamilyEnum.ORACLE: OracleDriver,
}

DEFAULT_PORTS: dict[FamilyEnum, int] = {
    FamilyEnum.MYSQL: 3306,
    FamilyEnum.ORACLE: 1521,
}


def create_driver(family: FamilyEnum | str) -> DatabaseDriver:
    """New driver for ``family``; raises UnsupportedFamilyError if none is registered."""
    fam = resolve_family(family, operation="create_driver")
    driver_cls = DRIVERS.get(fam)
    if driver_cls is None:
        raise UnsupportedFamilyError(
            f"No driver registered for {fam.value}", family=fam.value, operation="create_driver"
        )
    return driver_cls()


def available_families() -> list[dict[str, Any]]:
    """Families with a registered driver, for pickers: value, label, default port."""
    return [
        {
            "value": fam.value,
            "label": driver_cls.display_name,
            "default_port": DEFAULT_PORTS.get(fam),
        }
        for fam, driver_cls in DRIVERS.items()
    ]


__all__ = [
    "DRIVERS",
    "DatabaseDriver",
    "MySQLDriver",
    "OracleDriver",
    "available_families",
    "create_driver",
    "format_validation_errors",
]
