"""
Lexical helpers over SQL text: split code from quoted literals and comments,
find leading keywords, spot administrative statements.
"""

import re
from collections.abc import Iterator

CODE = "code"
LITERAL = "literal"

_LEADING_NOISE = re.compile(r"^(?:\s+|;|--[^\n]*(?:\n|$)|/\*.*?\*/)+", re.DOTALL)


def iter_segments(sql: str, hash_comments: bool = False) -> Iterator[tuple[str, str]]:
    """Yield ``(kind, text)`` pieces of ``sql`` in order.

    ``kind`` is LITERAL for single/double/backtick quoted text and comments,
    CODE for everything else. Concatenating all texts gives back ``sql``.
    With ``hash_comments`` (MySQL), ``#`` also starts a line comment.
    """
    current: list[str] = []
    i = 0
    length = len(sql)

    def flush() -> Iterator[tuple[str, str]]:
        if current:
            yield CODE, "".join(current)
            current.clear()

    while i < length:
        ch = sql[i]

        if ch in ("'", '"', "`"):
            yield from flush()
            quote = ch
            start = i
            i += 1
            while i < length:
                c = sql[i]
                if c == quote:
                    if i + 1 < length and sql[i + 1] == quote:
                        i += 2
                        continue
                    i += 1
                    break
                if c == "\\" and quote != "`" and i + 1 < length:
                    i += 2
                    continue
                i += 1
            yield LITERAL, sql[start:i]
            continue

        if (ch == "-" and i + 1 < length and sql[i + 1] == "-") or (hash_comments and ch == "#"):
            yield from flush()
            end = sql.find("\n", i)
            end = length if end == -1 else end + 1
            yield LITERAL, sql[i:end]
            i = end
            continue

        if ch == "/" and i + 1 < length and sql[i + 1] == "*":
            yield from flush()
            end = sql.find("*/", i + 2)
            end = length if end == -1 else end + 2
            yield LITERAL, sql[i:end]
            i = end
            continue

        current.append(ch)
        i += 1

    yield from flush()


def strip_leading_noise(sql: str) -> str:
    """Drop leading whitespace, semicolons and comments."""
    return _LEADING_NOISE.sub("", sql or "")


def leading_words(sql: str, count: int = 2) -> list[str]:
    """First ``count`` uppercased words of the statement."""
    words = re.findall(r"[A-Za-z_]+", strip_leading_noise(sql)[:200])
    return [w.upper() for w in words[:count]]


def is_administrative(sql: str, prefixes: tuple[str, ...]) -> bool:
    """
    True when the statement starts with one of ``prefixes`` (whole words,
    e.g. ``"SHOW"`` or ``"ALTER SESSION"``). Such statements are executed
    without parameter binding.
    """
    if not prefixes:
        return False
    words = leading_words(sql, max(len(p.split()) for p in prefixes))
    for prefix in prefixes:
        parts = prefix.upper().split()
        if words[: len(parts)] == parts:
            return True
    return False
