"""LALR parser driven token by token from a TokenStream.

Tokens are fed into a lark interactive parser. When a token does not fit,
the parser reports it to the error listeners and recovers by trying, in order:

    1. single-token deletion when the following token fits;
    2. single-token insertion when conjuring one terminal makes the token fit;
    3. otherwise the token is dropped.

While recovering, further errors are not reported until a token is accepted.
At end of input a missing terminal is conjured if one suffices; failing
that, the partial trees left on the parser's value stack become the result.
"""

from __future__ import annotations

from typing import Any, FrozenSet, List, Optional, Tuple

from lark import Token, Tree
from lark.exceptions import UnexpectedToken
from lark.parsers.lalr_interactive_parser import InteractiveParser

from .cache import ContextCache
from .grammar import EOF, Grammar
from .lexer import TokenStream
from .recognizer import Recognizer
from .utils import quote_text

INSERTION = "insert"


class Parser(Recognizer):
    def __init__(
        self,
        grammar: Grammar,
        tokens: TokenStream,
        cache: Optional[ContextCache] = None,
        max_cache_size: Optional[int] = None,
    ):
        super().__init__(grammar, cache, max_cache_size)
        self.tokens = tokens
        self._recovering = False
        self._limit_cache()

    @property
    def rule_names(self) -> Tuple[str, ...]:
        return self.grammar.rule_names

    @property
    def entry_points(self) -> Tuple[str, ...]:
        return self.grammar.start_rules

    def rule_index(self, name: str) -> int:
        return self.grammar.rule_index(name)

    def reset(self) -> None:
        self.tokens.seek(0)
        self._recovering = False

    def parse(self, start: Optional[str] = None) -> Tree:
        return self.invoke(start or self.grammar.start)

    def invoke(self, start: str) -> Tree:
        """Run the entry point *start* over the token stream and return lark's tree for it."""
        interactive = self.grammar.lark.parse_interactive(start=start)
        tokens = self.tokens

        while tokens.la(1) != EOF:
            token = tokens.lt(1)
            try:
                interactive.feed_token(token)
            except UnexpectedToken as exc:
                self._recover_inline(interactive, token, exc)
            else:
                self._recovering = False
            tokens.consume()

        result = self._finish(interactive, tokens.lt(1), start)
        if isinstance(result, Tree) and result.data == start:
            return result
        # a ?rule entry point hands back its only child
        return Tree(start, [result])

    def predict(self, interactive: InteractiveParser) -> FrozenSet[str]:
        """Terminals the parser can accept next, memoized in the shared cache."""
        context = (self.grammar.fingerprint, tuple(interactive.parser_state.state_stack))
        prediction = self.shared_context_cache.get(context)
        if prediction is None:
            prediction = self.shared_context_cache.add(context, frozenset(interactive.accepts()))
        return prediction

    def _recover_inline(self, interactive: InteractiveParser, token: Token, exc: UnexpectedToken) -> None:
        expected = self.predict(interactive)

        if self.tokens.la(2) in expected:
            self._report(token, f"extraneous input {self._quote(token)} expecting {self._expecting(expected)}", exc)
            return

        conjured = self._conjure(interactive, token.type)
        if conjured is not None:
            self._report(token, f"missing {self.vocabulary.display_name(conjured)} at {self._quote(token)}", exc)
            interactive.feed_token(self._missing(conjured, token))
            interactive.feed_token(token)
            self._recovering = False
            return

        self._report(token, f"mismatched input {self._quote(token)} expecting {self._expecting(expected)}", exc)

    def _finish(self, interactive: InteractiveParser, eof: Token, start: str) -> Any:
        try:
            return interactive.feed_token(eof)
        except UnexpectedToken as exc:
            conjured = self._conjure(interactive, EOF)
            if conjured is not None:
                self._report(eof, f"missing {self.vocabulary.display_name(conjured)} at {self._quote(eof)}", exc)
                interactive.feed_token(self._missing(conjured, eof))
                return interactive.feed_token(eof)

            expected = self.predict(interactive)
            self._report(eof, f"mismatched input {self._quote(eof)} expecting {self._expecting(expected)}", exc)
            return Tree(start, _salvage(interactive.parser_state.value_stack))

    def _conjure(self, interactive: InteractiveParser, follow: str) -> Optional[str]:
        """The first terminal (by name) whose insertion lets *follow* be accepted.

        Decisions are kept in the shared cache beside the predictions: a
        one-element set holding the terminal, or an empty set when no single
        insertion works.
        """
        context = (INSERTION, self.grammar.fingerprint, tuple(interactive.parser_state.state_stack), follow)
        decision = self.shared_context_cache.get(context)
        if decision is None:
            choice: FrozenSet[str] = frozenset()
            for candidate in sorted(self.predict(interactive) - {EOF}):
                trial = interactive.copy()
                trial.feed_token(Token(candidate, ""))
                if follow in self.predict(trial):
                    choice = frozenset({candidate})
                    break
            decision = self.shared_context_cache.add(context, choice)

        return next(iter(decision), None)

    def _report(self, token: Token, message: str, exc: Optional[Exception]) -> None:
        if self._recovering:
            return
        self._recovering = True
        self.notify_error(token, token.line, token.column - 1, message, exc)

    def _missing(self, token_type: str, at: Token) -> Token:
        return Token.new_borrow_pos(token_type, f"<missing {token_type}>", at)

    def _quote(self, token: Token) -> str:
        if token.type == EOF:
            return "'<EOF>'"
        return quote_text(str(token.value))

    def _expecting(self, expected: FrozenSet[str]) -> str:
        names = sorted(self.vocabulary.display_name(t) for t in expected)
        if len(names) == 1:
            return names[0]
        return "{" + ", ".join(names) + "}"


def _salvage(values: List[Any]) -> List[Any]:
    children: List[Any] = []
    for value in values:
        if isinstance(value, Tree) and str(value.data).startswith("_"):
            children.extend(_salvage(value.children))
        elif isinstance(value, list):
            children.extend(_salvage(value))
        else:
            children.append(value)
    return children
