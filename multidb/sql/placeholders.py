"""
Placeholder rewriting between the caller-facing bind syntax and each
client library's native one.

Callers write ``?`` with a sequence of values, or ``:name`` with a mapping.
- pymysql wants pyformat: ``%s`` / ``%(name)s``, and every literal ``%``
  doubled because the driver %-formats the whole statement.
- python-oracledb is always bound by name here: ``?`` becomes ``:param0``,
  ``:param1``, ...

Quoted literals and comments are never rewritten.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from .statements import CODE, iter_segments

_NAMED = re.compile(r"(?<![:\w]):([A-Za-z_]\w*)")

Params = Sequence[Any] | Mapping[str, Any] | None


class PlaceholderError(ValueError):
    """Placeholders in the statement do not match the supplied parameters."""

    pass


def has_params(params: Params) -> bool:
    """True when there is at least one value to bind."""
    if params is None:
        return False
    if isinstance(params, (str, bytes)):
        return True
    return len(params) > 0


def _is_positional(params: Params) -> bool:
    return not isinstance(params, Mapping)


def count_positional(sql: str) -> int:
    return sum(text.count("?") for kind, text in iter_segments(sql) if kind == CODE)


def to_pyformat(sql: str, params: Params) -> tuple[str, Any]:
    """Rewrite ``sql`` for pymysql. Returns ``(sql, args)`` with args a tuple or dict.

    ``#`` starts a line comment, as in MySQL.
    """
    if isinstance(params, (str, bytes)):
        params = (params,)
    positional = _is_positional(params)
    out: list[str] = []
    used = 0
    segments = list(iter_segments(sql, hash_comments=True))
    for kind, text in segments:
        text = text.replace("%", "%%")
        if kind != CODE:
            out.append(text)
            continue
        if positional:
            used += text.count("?")
            out.append(text.replace("?", "%s"))
        else:
            out.append(_NAMED.sub(lambda m: f"%({m.group(1)})s", text))

    if positional:
        values = tuple(params or ())
        if used != len(values):
            raise PlaceholderError(
                f"Statement has {used} '?' placeholders but {len(values)} parameters were given"
            )
        return "".join(out), values

    names = {m.group(1) for kind, text in segments if kind == CODE for m in _NAMED.finditer(text)}
    missing = sorted(names - set(params or {}))
    if missing:
        raise PlaceholderError(f"Missing values for parameters: {', '.join(missing)}")
    return "".join(out), dict(params or {})


def to_named(sql: str, params: Params, prefix: str = "param") -> tuple[str, dict[str, Any]]:
    """
    Rewrite ``sql`` for named binding. Sequence values are named
    ``{prefix}{index}``; each ``?`` is replaced by ``:{prefix}{index}``.
    Mappings pass through unchanged.
    """
    if isinstance(params, (str, bytes)):
        params = (params,)
    if not _is_positional(params):
        return sql, dict(params or {})

    values = list(params or ())
    binds = {f"{prefix}{i}": v for i, v in enumerate(values)}
    placeholders = count_positional(sql)
    if placeholders == 0:
        # Statement already names its binds (e.g. :param0); bind by position name.
        return sql, binds
    if placeholders != len(values):
        raise PlaceholderError(
            f"Statement has {placeholders} '?' placeholders but {len(values)} parameters were given"
        )

    out: list[str] = []
    index = 0
    for kind, text in iter_segments(sql):
        if kind != CODE:
            out.append(text)
            continue
        pieces = text.split("?")
        for j, piece in enumerate(pieces):
            out.append(piece)
            if j < len(pieces) - 1:
                out.append(f":{prefix}{index}")
                index += 1
    return "".join(out), binds
