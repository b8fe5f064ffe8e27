from __future__ import annotations

import os as _os
from bisect import bisect_right
from typing import List, Optional, Tuple

DEFAULT_MAX_CACHE_SIZE = 10000

_ESCAPES = (("\r", "\\r"), ("\n", "\\n"))


def env_value(name: str) -> Optional[str]:
    """Get the current value of an env var, or None if missing or blank."""
    raw = _os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def env_int(name: str, default: int) -> int:
    """Read a non-negative integer from the environment, falling back to *default*."""
    raw = env_value(name)
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError:
        return default

    return value if value >= 0 else default


def max_cache_size() -> int:
    return env_int("FXPARSE_MAX_CACHE_SIZE", DEFAULT_MAX_CACHE_SIZE)


def escape_text(text: str) -> str:
    """Escape line separators so *text* always renders on a single line."""
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def quote_text(text: str) -> str:
    return "'" + escape_text(text).replace("\t", "\\t") + "'"


class LineIndex:
    """Maps absolute character offsets of a text to (line, column) pairs.

    Lines are 1-based, columns 0-based.
    """

    def __init__(self, text: str):
        starts: List[int] = [0]
        pos = text.find("\n")
        while pos != -1:
            starts.append(pos + 1)
            pos = text.find("\n", pos + 1)
        self._starts = starts

    def position(self, offset: int) -> Tuple[int, int]:
        line = bisect_right(self._starts, offset)
        return line, offset - self._starts[line - 1]
