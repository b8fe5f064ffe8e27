"""prompt_toolkit lexer for live syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Set

from lark import Token
from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .errors import CollectingErrorListener, SyntaxErrorRecord
from .grammar import Grammar, default_grammar
from .lexer import Lexer as GrammarTokenLexer

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
    "error": "bold ansired",
}

_PUNCTUATION = set("()[]{},;")


def token_group(grammar: Grammar, token_type: str) -> str:
    """Highlight group of a terminal, derived from how the grammar declares it."""
    literal = grammar.vocabulary.literal_name(token_type)
    if literal is not None:
        if literal.isidentifier():
            return "keyword"
        if literal in _PUNCTUATION:
            return "punctuation"
        return "operator"

    name = token_type.upper()
    if "NUMBER" in name or name in ("INT", "FLOAT", "DECIMAL"):
        return "number"
    if "STRING" in name:
        return "string"
    if "COMMENT" in name:
        return "comment"
    if name in ("NAME", "CNAME", "IDENT", "WORD"):
        return "identifier"
    return ""


def _next_type(tokens: List[Token], idx: int) -> Optional[str]:
    if idx + 1 < len(tokens):
        return tokens[idx + 1].type
    return None


def _highlight_line(grammar: Grammar, text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    errors: List[SyntaxErrorRecord] = []
    lexer = GrammarTokenLexer(grammar, text)
    lexer.remove_error_listeners()
    lexer.add_error_listener(CollectingErrorListener(errors))
    tokens = list(lexer.tokens())
    bad_columns = {err.column for err in errors}

    styles: List[str] = ["" for _ in text]
    for col in bad_columns:
        if col < len(styles):
            styles[col] = GROUP_STYLE["error"]

    for i, tok in enumerate(tokens):
        group = token_group(grammar, tok.type)
        if group == "identifier" and grammar.vocabulary.literal_name(_next_type(tokens, i) or "") == "(":
            group = "function"
        style = GROUP_STYLE.get(group, "")
        for pos in range(tok.start_pos, min(tok.end_pos, len(text))):
            styles[pos] = style

    # text skipped by %ignore; a leading '#' is taken as a comment
    hash_at = _unstyled_hash(text, tokens, bad_columns)
    if hash_at is not None:
        for pos in range(hash_at, len(text)):
            styles[pos] = GROUP_STYLE["comment"]

    result: StyleAndTextTuples = []
    for pos, ch in enumerate(text):
        if result and result[-1][0] == styles[pos]:
            result[-1] = (styles[pos], result[-1][1] + ch)
        else:
            result.append((styles[pos], ch))

    return result


def _unstyled_hash(text: str, tokens: List[Token], skip: Set[int]) -> Optional[int]:
    covered = set(skip)
    for tok in tokens:
        covered.update(range(tok.start_pos, tok.end_pos))

    for pos, ch in enumerate(text):
        if ch == "#" and pos not in covered:
            return pos

    return None


class GrammarLexer(Lexer):
    """prompt_toolkit Lexer that highlights source using a grammar's own terminals."""

    def __init__(self, grammar: Optional[Grammar] = None):
        self.grammar = grammar

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines
        grammar = self.grammar or default_grammar()

        # Pre-compute highlights for all lines.
        cache: Dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(grammar, lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
