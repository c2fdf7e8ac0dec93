"""
Per-family configuration schemas.

A schema (``<family>.json``) declares which connection fields a family needs,
their validation rules and their defaults:

    {
      "driver": "mysql",
      "requiredFields": ["host", "port", "database", "user"],
      "fields": [{"name": "port", "type": "number", "min": 1, "max": 65535}],
      "fieldDefaults": {"port": 3306}
    }

SchemaLoader caches each schema for its own lifetime. The cache is
append-only, so only the insert-if-absent path takes the lock.
"""

import json
import logging
import math
import re
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from multidb.core.config import settings
from multidb.core.errors import ConfigValidationError, SchemaNotFoundError
from multidb.drivers.base import format_validation_errors
from multidb.models import DriverConfig, FamilyEnum, MySQLConfig, OracleConfig, resolve_family

_log = logging.getLogger(__name__)

PACKAGED_SCHEMA_DIR = Path(__file__).resolve().parent

# Family names become file names; keep them to one safe path segment.
_FAMILY_NAME = re.compile(r"^[a-z0-9_]+$")

_CONFIG_MODELS: dict[FamilyEnum, type[BaseModel]] = {
    FamilyEnum.MYSQL: MySQLConfig,
    FamilyEnum.ORACLE: OracleConfig,
}

_SCHEMA_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


class SchemaField(BaseModel):
    model_config = _SCHEMA_MODEL_CONFIG

    name: str
    type: str = "string"
    label: str | None = None
    description: str | None = None
    required: bool = False
    default: Any = None
    min: float | None = None
    max: float | None = None
    max_length: int | None = None
    placeholder: str | None = None

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set


class ConfigSchema(BaseModel):
    """Parsed ``<family>.json``."""

    model_config = _SCHEMA_MODEL_CONFIG

    driver: str
    label: str | None = None
    required_fields: list[str] = Field(default_factory=list)
    optional_fields: list[str] = Field(default_factory=list)
    advanced_fields: list[str] = Field(default_factory=list)
    fields: list[SchemaField] = Field(default_factory=list)
    field_defaults: dict[str, Any] = Field(default_factory=dict)


def _family_name(family: FamilyEnum | str) -> str:
    name = family.value if isinstance(family, FamilyEnum) else str(family).strip().lower()
    if not _FAMILY_NAME.match(name):
        raise SchemaNotFoundError(
            f"Schema not found for driver: {family}", family=name or None, operation="load_schema"
        )
    return name


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _key_names(model: type[BaseModel]) -> dict[str, str]:
    """Every key ``model`` accepts (field name, alias, alias choices) -> schema name."""
    names: dict[str, str] = {}
    for field_name, info in model.model_fields.items():
        schema_name = info.alias or field_name
        names[field_name] = schema_name
        if isinstance(info.validation_alias, AliasChoices):
            for choice in info.validation_alias.choices:
                if isinstance(choice, str):
                    names[choice] = schema_name
    return names


_KEY_NAMES: dict[str, dict[str, str]] = {
    family.value: _key_names(model) for family, model in _CONFIG_MODELS.items()
}


def _schema_keys(family: str, config: Mapping[str, Any]) -> dict[str, Any]:
    """
    Rename ``config`` keys to the schema's names (``connection_limit`` ->
    ``connectionLimit``, ``username`` -> ``user``). When both spellings are
    given, the schema spelling wins unless its value is missing.
    """
    names = _KEY_NAMES.get(family, {})
    renamed: dict[str, Any] = {}
    for key, value in config.items():
        name = names.get(key, key)
        if key != name and name in renamed and not _is_missing(renamed[name]):
            continue
        if key != name and name in config and not _is_missing(config[name]):
            continue
        renamed[name] = value
    return renamed


def _as_number(value: Any) -> float | None:
    """Float value of ``value``, or None if it is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        x = float(value)
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            x = float(s)
        except ValueError:
            return None
    return x if math.isfinite(x) else None


def _fmt(limit: float) -> str:
    return str(int(limit)) if float(limit).is_integer() else str(limit)


def _field_errors(field: SchemaField, value: Any) -> list[str]:
    errors: list[str] = []
    if field.type == "number":
        number = _as_number(value)
        if number is None:
            errors.append(f"{field.name} must be a number")
        else:
            if field.min is not None and number < field.min:
                errors.append(f"{field.name} must be at least {_fmt(field.min)}")
            if field.max is not None and number > field.max:
                errors.append(f"{field.name} must be at most {_fmt(field.max)}")
    if field.type == "string" and field.max_length:
        if len(str(value)) > field.max_length:
            errors.append(f"{field.name} must be at most {field.max_length} characters")
    return errors


class SchemaLoader:
    """Loads, caches and applies family config schemas from ``schema_dir``."""

    def __init__(self, schema_dir: str | Path | None = None) -> None:
        self._schema_dir = Path(schema_dir or settings.SCHEMA_DIR or PACKAGED_SCHEMA_DIR)
        self._cache: dict[str, ConfigSchema] = {}
        self._lock = threading.Lock()

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, family: FamilyEnum | str) -> ConfigSchema:
        """Return the cached schema, reading ``<family>.json`` on first use.

        Raises SchemaNotFoundError when the file is missing, unreadable or invalid.
        """
        name = _family_name(family)
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        schema = self._read(name)
        with self._lock:
            cached = self._cache.setdefault(name, schema)
        _log.info("Loaded schema for %s", name)
        return cached

    def is_schema_loaded(self, family: FamilyEnum | str) -> bool:
        try:
            return _family_name(family) in self._cache
        except SchemaNotFoundError:
            return False

    def validate_config(self, family: FamilyEnum | str, config: Mapping[str, Any]) -> list[str]:
        """
        Check ``config`` against the family schema and return every problem found.

        Empty list means valid. Only a schema that cannot be loaded raises
        (SchemaNotFoundError). Keys may use the schema names or the typed
        config's snake_case names.
        """
        schema = self.load_schema(family)
        config = _schema_keys(_family_name(family), config)
        errors: list[str] = []
        for name in schema.required_fields:
            if _is_missing(config.get(name)):
                errors.append(f"Missing required field: {name}")
        for field in schema.fields:
            value = config.get(field.name)
            if _is_missing(value):
                continue
            errors.extend(_field_errors(field, value))
        return errors

    def get_default_config(self, family: FamilyEnum | str) -> dict[str, Any]:
        """fieldDefaults, plus field-level defaults for keys fieldDefaults does not set."""
        schema = self.load_schema(family)
        defaults = dict(schema.field_defaults)
        for field in schema.fields:
            if field.has_default and field.name not in defaults:
                defaults[field.name] = field.default
        return defaults

    def get_schema_metadata(self, family: FamilyEnum | str) -> dict[str, Any]:
        """Summary of a schema; ``{driver, error}`` when it cannot be loaded."""
        driver = family.value if isinstance(family, FamilyEnum) else str(family)
        try:
            schema = self.load_schema(family)
        except SchemaNotFoundError as e:
            return {"driver": driver, "error": e.message}
        return {
            "driver": driver,
            "label": schema.label,
            "required_fields": list(schema.required_fields),
            "optional_fields": list(schema.optional_fields),
            "has_advanced_fields": bool(schema.advanced_fields),
            "field_count": len(schema.fields),
        }

    def materialize(self, family: FamilyEnum | str, config: Mapping[str, Any]) -> DriverConfig:
        """
        Validate ``config``, merge schema defaults under it, and build the typed
        config for the family. Raises ConfigValidationError listing every problem.
        """
        fam = resolve_family(family, operation="materialize")
        config = _schema_keys(fam.value, config)
        errors = self.validate_config(fam, config)
        if errors:
            raise ConfigValidationError(errors, family=fam.value, operation="materialize")

        merged = self.get_default_config(fam)
        merged.update({k: v for k, v in config.items() if not _is_missing(v)})
        try:
            return _CONFIG_MODELS[fam].model_validate(merged)
        except ValidationError as e:
            raise ConfigValidationError(
                format_validation_errors(e), family=fam.value, operation="materialize"
            ) from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read(self, name: str) -> ConfigSchema:
        path = self._schema_dir / f"{name}.json"
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return ConfigSchema.model_validate(raw)
        except (OSError, ValueError) as e:
            _log.error("Failed to load schema for %s: %s", name, e)
            raise SchemaNotFoundError(
                f"Schema not found for driver: {name}", family=name, operation="load_schema"
            ) from e
