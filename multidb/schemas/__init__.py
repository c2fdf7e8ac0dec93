"""
Connection config schemas (``<family>.json``) and the loader that applies them.
"""

from .loader import PACKAGED_SCHEMA_DIR, ConfigSchema, SchemaField, SchemaLoader

__all__ = ["PACKAGED_SCHEMA_DIR", "ConfigSchema", "SchemaField", "SchemaLoader"]
