"""Shared prediction cache and the guard that bounds its growth.

Every lexer and parser is built against a PredictionContextCache. The parser
fills it with the terminal sets and insertion choices it computes while
recovering from syntax errors, keyed by grammar and LALR state stack, so
repeated parses of similar broken input do not redo the lookahead. Nothing
ever evicts single entries: ``limit_cache`` runs when a recognizer is
constructed and drops the whole cache once it has grown past the threshold.

The guard is not atomic. Callers that parse on several threads at once must
serialize recognizer construction themselves, otherwise one thread can read a
stale size while another clears.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Hashable, Optional

from typing_extensions import Protocol, runtime_checkable

from .errors import CacheAccessError
from .utils import max_cache_size

logger = logging.getLogger(__name__)

Prediction = FrozenSet[str]


@runtime_checkable
class ContextCache(Protocol):
    def __len__(self) -> int: ...

    def get(self, context: Hashable) -> Optional[Prediction]: ...

    def add(self, context: Hashable, prediction: Prediction) -> Prediction: ...

    def clear(self) -> None: ...


class PredictionContextCache:
    def __init__(self) -> None:
        self._cache: Dict[Hashable, Prediction] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, context: Hashable) -> bool:
        return context in self._cache

    def get(self, context: Hashable) -> Optional[Prediction]:
        return self._cache.get(context)

    def add(self, context: Hashable, prediction: Prediction) -> Prediction:
        """Store *prediction* unless *context* is already cached; return the stored value."""
        return self._cache.setdefault(context, prediction)

    def clear(self) -> None:
        self._cache.clear()

    def __repr__(self) -> str:
        return f"PredictionContextCache(size={len(self._cache)})"


SHARED_CONTEXT_CACHE = PredictionContextCache()


def check_cache(cache: object) -> ContextCache:
    if not isinstance(cache, ContextCache):
        raise CacheAccessError(
            f"{type(cache).__name__} does not expose the prediction cache interface (len, get, add, clear)"
        )
    return cache


def limit_cache(cache: ContextCache, recognizer, max_size: Optional[int] = None) -> bool:
    """Clear *cache* and the recognizer's recognition state once it holds more than *max_size* entries.

    Returns True when the cache was cleared.
    """
    if max_size is None:
        max_size = max_cache_size()

    size = len(cache)
    if size <= max_size:
        return False

    cache.clear()
    recognizer.reset()
    recognizer.clear_dfa()
    logger.debug(
        "prediction cache held %d entries (limit %d); cleared for %s",
        size,
        max_size,
        type(recognizer).__name__,
    )
    return True
