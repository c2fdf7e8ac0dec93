"""
Driver contract shared by every database family.

A Driver owns exactly one pool for one logical data source:

    driver = create_driver("mysql")
    driver.connect(config)          # probe, build pool, liveness check
    driver.execute_query("SELECT * FROM orders WHERE id = ?", [42])
    driver.disconnect()             # idempotent

No call holds a connection across calls: each operation acquires a pooled
connection and returns it in a ``finally`` block, so concurrent callers are
bounded only by the pool size.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from multidb.core.errors import ConfigValidationError, NoConnectionError
from multidb.models import ColumnDescriptor, DatabaseInfo, FamilyEnum, QueryResult
from multidb.sql.placeholders import Params


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten pydantic errors into ``"field: message"`` strings."""
    messages: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages


class DatabaseDriver(ABC):
    """Base class for family drivers."""

    family: ClassVar[FamilyEnum]
    display_name: ClassVar[str]
    client_name: ClassVar[str]
    config_model: ClassVar[type[BaseModel]]
    # Statements starting with these words are never executed with binds.
    administrative_prefixes: ClassVar[tuple[str, ...]] = ()

    def __init__(self) -> None:
        self._pool: Any = None
        self._config: Any = None

    def __repr__(self) -> str:
        state = "connected" if self.is_connected else "disconnected"
        return f"{type(self).__name__}({state})"

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def config(self) -> Any:
        """Typed config of the current connection, or None."""
        return self._config

    @property
    def pool(self) -> Any:
        return self._pool

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    @abstractmethod
    def connect(self, config: Any) -> Any:
        """Probe the target, create the pool, verify it with a liveness check.

        Returns the pool handle. Raises DatabaseConnectionError.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Release pool resources. Safe to call when already disconnected."""

    @abstractmethod
    def test_connection(self) -> bool:
        """Health poll. Never raises."""

    @abstractmethod
    def execute_query(self, query: str, params: Params = None) -> QueryResult:
        """Run one statement and return the normalized result."""

    @abstractmethod
    def get_tables(self, database: str | None = None) -> list[str]:
        """Table names from the family's catalog, in catalog order."""

    @abstractmethod
    def get_columns(self, database: str | None, table: str) -> list[ColumnDescriptor]:
        """Columns of ``table`` in ordinal position order."""

    @abstractmethod
    def get_database_info(self) -> DatabaseInfo:
        """Server version info. Never raises; sets ``error`` instead."""

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _coerce_config(self, config: Any) -> Any:
        """Accept the typed config or a mapping matching the family's schema."""
        if isinstance(config, self.config_model):
            return config
        if isinstance(config, BaseModel):
            config = config.model_dump()
        if not isinstance(config, Mapping):
            raise ConfigValidationError(
                [f"config must be a mapping or {self.config_model.__name__}"],
                family=self.family.value,
                operation="connect",
            )
        try:
            return self.config_model.model_validate(dict(config))
        except ValidationError as e:
            raise ConfigValidationError(
                format_validation_errors(e),
                family=self.family.value,
                operation="connect",
            ) from e

    def _require_pool(self, operation: str) -> Any:
        pool = self._pool
        if pool is None:
            raise NoConnectionError(
                f"No active {self.display_name} connection",
                family=self.family.value,
                operation=operation,
            )
        return pool

    def _failed_info(self, error: Exception | str) -> DatabaseInfo:
        return DatabaseInfo(
            version="unknown",
            type=self.display_name,
            driver=self.client_name,
            error=str(error),
        )
