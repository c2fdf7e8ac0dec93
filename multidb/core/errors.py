"""
Error taxonomy of the database access layer.

Every error carries the database family and the operation that failed so
callers can log and display it without inspecting the message text.
"""

from __future__ import annotations


class DatabaseLayerError(Exception):
    """Base class for all errors raised by multidb."""

    def __init__(
        self,
        message: str,
        *,
        family: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.family = family
        self.operation = operation

    def __str__(self) -> str:
        prefix = ""
        if self.family and self.operation:
            prefix = f"[{self.family}:{self.operation}] "
        elif self.family or self.operation:
            prefix = f"[{self.family or self.operation}] "
        return f"{prefix}{self.message}"


class ConfigValidationError(DatabaseLayerError, ValueError):
    """Configuration failed schema validation. ``errors`` holds every problem found."""

    def __init__(
        self,
        errors: list[str],
        *,
        family: str | None = None,
        operation: str | None = "validate_config",
    ) -> None:
        self.errors = list(errors)
        super().__init__(
            "Configuration validation failed: " + ", ".join(self.errors),
            family=family,
            operation=operation,
        )


class DatabaseConnectionError(DatabaseLayerError, ConnectionError):
    """Target unreachable, handshake/auth failure, or probe timeout."""

    pass


class PoolTimeoutError(DatabaseConnectionError):
    """No pooled connection became available within the acquire timeout."""

    pass


class NoConnectionError(DatabaseLayerError):
    """Operation attempted before connect() or after disconnect()."""

    pass


class QueryError(DatabaseLayerError):
    """The backend rejected or failed a statement."""

    def __init__(
        self,
        message: str,
        *,
        family: str | None = None,
        operation: str | None = "execute_query",
        backend_message: str | None = None,
    ) -> None:
        super().__init__(message, family=family, operation=operation)
        self.backend_message = backend_message if backend_message is not None else message


class UnsafeQueryError(QueryError):
    """Statement refused by the read-only safety check."""

    pass


class SchemaNotFoundError(DatabaseLayerError, LookupError):
    """No config schema definition exists for the requested family."""

    pass


class UnsupportedFamilyError(DatabaseLayerError, ValueError):
    """No driver or dialect is registered for the requested family."""

    pass
