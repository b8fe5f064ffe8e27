"""Diagnostics records, error listeners and the fatal integration errors."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, List, Optional


class FxParseError(Exception):
    """Base class for errors that mean the grammar/engine contract was broken."""


class GrammarLookupError(FxParseError, LookupError):
    pass


class VocabularyError(GrammarLookupError):
    """A token type has no entry in the grammar's vocabulary."""


class RuleLookupError(GrammarLookupError):
    """A rule name has no entry in the grammar's rule-name table."""


class CacheAccessError(FxParseError, RuntimeError):
    """The shared prediction cache does not expose the size, lookup, insert and clear operations."""


@dataclass(frozen=True)
class SyntaxErrorRecord:
    """One lexical or syntactic diagnostic. Columns are 0-based."""

    message: Optional[str]
    line: int
    column: int

    def __str__(self) -> str:
        return f"Line {self.line}:{self.column} {self.message}"


class ErrorListener:
    """Receives syntax errors from a lexer or parser."""

    def syntax_error(
        self,
        recognizer: Any,
        offending_symbol: Any,
        line: int,
        column: int,
        message: Optional[str],
        exc: Optional[Exception],
    ) -> None:
        pass


class ConsoleErrorListener(ErrorListener):
    """Default listener: prints ``line L:C message`` to stderr."""

    def syntax_error(self, recognizer, offending_symbol, line, column, message, exc) -> None:
        print(f"line {line}:{column} {message}", file=sys.stderr)


ConsoleErrorListener.INSTANCE = ConsoleErrorListener()


class CollectingErrorListener(ErrorListener):
    """Appends a SyntaxErrorRecord per event to a caller-owned list."""

    def __init__(self, errors: List[SyntaxErrorRecord]):
        self.errors = errors

    def syntax_error(self, recognizer, offending_symbol, line, column, message, exc) -> None:
        self.errors.append(SyntaxErrorRecord(message, line, column))
