from __future__ import annotations

from typing import Any, List, Optional

from .cache import SHARED_CONTEXT_CACHE, ContextCache, check_cache, limit_cache
from .errors import ConsoleErrorListener, ErrorListener
from .grammar import Grammar, Vocabulary


class Recognizer:
    """State shared by the lexer and the parser: grammar, listeners and the prediction cache.

    Subclasses finish their own setup and then call ``_limit_cache()``, so the
    cache bound is enforced before any token is produced or consumed.
    """

    def __init__(self, grammar: Grammar, cache: Optional[ContextCache] = None, max_cache_size: Optional[int] = None):
        self.grammar = grammar
        self.shared_context_cache = check_cache(SHARED_CONTEXT_CACHE if cache is None else cache)
        self.max_cache_size = max_cache_size
        self._listeners: List[ErrorListener] = [ConsoleErrorListener.INSTANCE]

    def _limit_cache(self) -> bool:
        return limit_cache(self.shared_context_cache, self, self.max_cache_size)

    @property
    def vocabulary(self) -> Vocabulary:
        return self.grammar.vocabulary

    @property
    def error_listeners(self) -> List[ErrorListener]:
        return list(self._listeners)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def remove_error_listener(self, listener: ErrorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def remove_error_listeners(self) -> None:
        self._listeners = []

    def notify_error(
        self,
        offending_symbol: Any,
        line: int,
        column: int,
        message: Optional[str],
        exc: Optional[Exception] = None,
    ) -> None:
        for listener in self._listeners:
            listener.syntax_error(self, offending_symbol, line, column, message, exc)

    def reset(self) -> None:
        """Rewind to the start of the input. Subclasses must override this."""
        raise NotImplementedError(f"{type(self).__name__} does not implement reset()")

    def clear_dfa(self) -> None:
        """Drop memoized recognition decisions held outside the shared cache.

        Lexers and parsers keep their decisions in the cache itself, so there
        is nothing more to drop here; subclasses that memoize elsewhere
        override this.
        """
