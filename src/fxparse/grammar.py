from __future__ import annotations

import hashlib
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from lark import Lark

from .errors import RuleLookupError, VocabularyError
from .utils import env_value

logger = logging.getLogger(__name__)

EOF = "$END"

GRAMMAR_DIR = Path(__file__).resolve().parent / "grammars"
DEFAULT_GRAMMAR = GRAMMAR_DIR / "fxmath.lark"


class Vocabulary:
    """Token type -> symbolic/display name table built from the grammar's terminals."""

    def __init__(self, terminals: Iterable):
        self._literals: Dict[str, Optional[str]] = {}
        for term in terminals:
            pattern = term.pattern
            self._literals[term.name] = pattern.value if pattern.type == "str" else None

    def __contains__(self, token_type: str) -> bool:
        return token_type in self._literals

    def __len__(self) -> int:
        return len(self._literals)

    @property
    def symbolic_names(self) -> Tuple[str, ...]:
        return tuple(self._literals)

    def symbolic_name(self, token_type: str) -> str:
        if token_type not in self._literals:
            raise VocabularyError(f"token type {token_type!r} is not in the grammar vocabulary")
        return str(token_type)

    def literal_name(self, token_type: str) -> Optional[str]:
        return self._literals.get(token_type)

    def display_name(self, token_type: str) -> str:
        if token_type == EOF:
            return "<EOF>"
        literal = self._literals.get(token_type)
        if literal is not None:
            return f"'{literal}'"
        return str(token_type)


def _collect_rule_names(rules: Iterable) -> Tuple[str, ...]:
    names: Dict[str, None] = {}
    for rule in rules:
        for name in (rule.origin.name, rule.alias):
            if name and not str(name).startswith("$"):
                names.setdefault(str(name), None)
    return tuple(names)


class Grammar:
    """A compiled grammar: lark LALR tables, its vocabulary and rule-name table.

    ``start`` names the entry-point rules; the first one is the default. When
    omitted, the first rule defined in *text* is used.
    """

    def __init__(self, text: str, start: Union[str, Sequence[str], None] = None, name: Optional[str] = None):
        if start is None:
            start_rules: List[str] = [_first_rule(text)]
        elif isinstance(start, str):
            start_rules = [start]
        else:
            start_rules = list(start)

        self.text = text
        self.name = name or start_rules[0]
        self.start_rules: Tuple[str, ...] = tuple(start_rules)
        self.lark = Lark(
            text,
            parser="lalr",
            lexer="basic",
            start=list(start_rules),
            keep_all_tokens=True,
            maybe_placeholders=True,
        )
        self.vocabulary = Vocabulary(self.lark.terminals)
        self.rule_names = _collect_rule_names(self.lark.rules)
        self._rule_index = {name: idx for idx, name in enumerate(self.rule_names)}

        digest = hashlib.sha256(text.encode("utf-8"))
        digest.update("\0".join(start_rules).encode("utf-8"))
        self.fingerprint = digest.hexdigest()

    @property
    def start(self) -> str:
        return self.start_rules[0]

    def rule_index(self, name: str) -> int:
        try:
            return self._rule_index[name]
        except KeyError:
            raise RuleLookupError(f"rule {name!r} is not in the grammar's rule-name table") from None

    def __repr__(self) -> str:
        return f"Grammar({self.name!r}, start={list(self.start_rules)!r})"


def _first_rule(text: str) -> str:
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("//", "%")):
            continue
        head, sep, _ = stripped.partition(":")
        head = head.strip().lstrip("?!")
        if sep and head and head[0].islower():
            return head.split(".")[0]
    raise ValueError("grammar text defines no rules")


def _read_grammar(grammar_path: Optional[str]) -> Tuple[str, Path]:
    if grammar_path is None:
        grammar_path = env_value("FXPARSE_GRAMMAR")

    if grammar_path:
        p = Path(grammar_path)
        if not p.exists():
            raise FileNotFoundError(f"grammar file not found: {p}")
        return p.read_text(encoding="utf-8"), p

    return DEFAULT_GRAMMAR.read_text(encoding="utf-8"), DEFAULT_GRAMMAR


FXMATH_START_RULES = ("fxmath_file", "expression")


def load_grammar(grammar_path: Optional[str] = None, start: Union[str, Sequence[str], None] = None) -> Grammar:
    """Compile the grammar at *grammar_path*, ``$FXPARSE_GRAMMAR`` or the bundled FXMath grammar."""
    text, path = _read_grammar(grammar_path)
    if start is None and path == DEFAULT_GRAMMAR:
        start = FXMATH_START_RULES

    grammar = Grammar(text, start=start, name=path.stem)
    logger.info("loaded grammar %s from %s (start rules: %s)", grammar.name, path, ", ".join(grammar.start_rules))
    return grammar


@lru_cache(maxsize=None)
def default_grammar() -> Grammar:
    """The bundled FXMath grammar, compiled once per process."""
    text = DEFAULT_GRAMMAR.read_text(encoding="utf-8")
    return Grammar(text, start=FXMATH_START_RULES, name=DEFAULT_GRAMMAR.stem)
