"""
SQL text helpers: placeholder rewriting, statement classification, read-only check.
"""

from .placeholders import PlaceholderError, has_params, to_named, to_pyformat
from .safety import check_read_only, find_unsafe_keywords
from .statements import is_administrative, iter_segments

__all__ = [
    "PlaceholderError",
    "has_params",
    "to_named",
    "to_pyformat",
    "check_read_only",
    "find_unsafe_keywords",
    "is_administrative",
    "iter_segments",
]
