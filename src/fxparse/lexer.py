"""Grammar-driven lexer with per-character error recovery, and its buffered token stream."""

from __future__ import annotations

from typing import Iterator, List, Optional

from lark import TextSlice, Token
from lark.exceptions import UnexpectedCharacters

from .cache import ContextCache
from .grammar import EOF, Grammar
from .recognizer import Recognizer
from .utils import LineIndex, quote_text


class Lexer(Recognizer):
    """Context-free lexer over one input text.

    Uses the grammar's terminals (lark's basic lexer). A character no terminal
    matches is reported to the error listeners and skipped; lexing resumes on
    the next character with absolute positions preserved.
    """

    def __init__(
        self,
        grammar: Grammar,
        text: str,
        cache: Optional[ContextCache] = None,
        max_cache_size: Optional[int] = None,
    ):
        super().__init__(grammar, cache, max_cache_size)
        self.text = text
        self.lines = LineIndex(text)
        self._offset = 0
        self._limit_cache()

    def reset(self) -> None:
        self._offset = 0

    def tokens(self) -> Iterator[Token]:
        text = self.text
        while True:
            try:
                for token in self.grammar.lark.lex(TextSlice(text, self._offset, None)):
                    yield token
            except UnexpectedCharacters as exc:
                self._recover(exc)
                continue
            self._offset = len(text)
            return

    def _recover(self, exc: UnexpectedCharacters) -> None:
        pos = exc.pos_in_stream
        line, column = self.lines.position(pos)
        self.notify_error(
            None,
            line,
            column,
            f"token recognition error at: {quote_text(self.text[pos])}",
            exc,
        )
        self._offset = pos + 1

    def eof_token(self) -> Token:
        end = len(self.text)
        line, column = self.lines.position(end)
        return Token(EOF, "", end, line, column + 1, line, column + 1, end)


class TokenStream:
    """Buffers tokens pulled lazily from a lexer; the last token is always ``$END``."""

    def __init__(self, lexer: Lexer):
        self.lexer = lexer
        self.tokens: List[Token] = []
        self.index = 0
        self._source: Optional[Iterator[Token]] = None
        self._exhausted = False

    def _fetch(self, upto: int) -> None:
        if self._source is None:
            self._source = self.lexer.tokens()

        while len(self.tokens) <= upto and not self._exhausted:
            token = next(self._source, None)
            if token is None:
                self.tokens.append(self.lexer.eof_token())
                self._exhausted = True
            else:
                self.tokens.append(token)

    def fill(self) -> List[Token]:
        while not self._exhausted:
            self._fetch(len(self.tokens))
        return list(self.tokens)

    def lt(self, k: int = 1) -> Token:
        """The k-th token from the current position (k >= 1); ``$END`` past the end."""
        if k < 1:
            raise ValueError("lookahead index starts at 1")
        pos = self.index + k - 1
        self._fetch(pos)
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def la(self, k: int = 1) -> str:
        return self.lt(k).type

    def consume(self) -> None:
        if self.la(1) == EOF:
            raise IndexError("cannot consume the end of input")
        self.index += 1

    def seek(self, index: int) -> None:
        self.index = index

    def __len__(self) -> int:
        return len(self.tokens)
