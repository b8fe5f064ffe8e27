from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence

from .cache import ContextCache
from .errors import CollectingErrorListener, SyntaxErrorRecord
from .grammar import Grammar, default_grammar, load_grammar
from .lexer import Lexer, TokenStream
from .parser import Parser
from .tree import RuleNode, materialize, stringify, to_dict

logger = logging.getLogger(__name__)


class Diagnostics(NamedTuple):
    lexer: List[SyntaxErrorRecord]
    parser: List[SyntaxErrorRecord]

    def __bool__(self) -> bool:
        return bool(self.lexer or self.parser)

    def all(self) -> List[SyntaxErrorRecord]:
        return [*self.lexer, *self.parser]


class ParseResult(NamedTuple):
    tree: RuleNode
    errors: Diagnostics


def parse(
    source: str,
    grammar: Optional[Grammar] = None,
    start: Optional[str] = None,
    cache: Optional[ContextCache] = None,
) -> ParseResult:
    """Parse *source* from the *start* rule and return the uniform tree with its diagnostics.

    Syntax errors never raise: the lexer and parser recover and every report
    is collected, lexer errors and parser errors each in emission order. A
    token type or rule missing from the grammar's tables, an unusable cache
    or an unknown start rule do raise.
    """
    if grammar is None:
        grammar = default_grammar()
    if start is None:
        start = grammar.start

    lexer_errors: List[SyntaxErrorRecord] = []
    parser_errors: List[SyntaxErrorRecord] = []

    lexer = Lexer(grammar, source, cache=cache)
    lexer.remove_error_listeners()
    lexer.add_error_listener(CollectingErrorListener(lexer_errors))

    tokens = TokenStream(lexer)

    parser = Parser(grammar, tokens, cache=cache)
    parser.remove_error_listeners()
    parser.add_error_listener(CollectingErrorListener(parser_errors))

    native = parser.invoke(start)
    tree = materialize(parser, native, parser.rule_names[parser.rule_index(start)])

    logger.debug(
        "parsed %d chars from %s: %d lexer / %d parser errors",
        len(source),
        start,
        len(lexer_errors),
        len(parser_errors),
    )
    return ParseResult(tree, Diagnostics(lexer_errors, parser_errors))


def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        return sys.stdin.read()

    candidate = Path(arg)
    if candidate.is_file():
        return candidate.read_text(encoding="utf-8")

    return arg


def _configure_logging(verbosity: int) -> None:
    """Attach a stderr handler to the ``fxparse`` logger; 0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("fxparse")
    root.setLevel(level)
    if any(getattr(h, "_fxparse_cli", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._fxparse_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def _build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="fxparse",
        description="Parse FXMath source (or any lark grammar) and report syntax errors.",
    )
    ap.add_argument("source", nargs="?", default="-", help="file path, '-' for stdin, or literal source text")
    ap.add_argument("-g", "--grammar", default=None, help="grammar file (default: $FXPARSE_GRAMMAR or bundled FXMath)")
    ap.add_argument("-s", "--start", default=None, help="entry-point rule (default: the grammar's first start rule)")
    output = ap.add_mutually_exclusive_group()
    output.add_argument("--tree", action="store_true", help="print the parse tree")
    output.add_argument("--json", action="store_true", help="print the parse tree as JSON")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="increase logging verbosity")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        grammar = load_grammar(args.grammar, start=args.start)
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from None

    source = _load_source(args.source)
    tree, errors = parse(source, grammar=grammar, start=grammar.start)

    if args.tree:
        sys.stdout.write(stringify(tree, tree.name))
    elif args.json:
        print(json.dumps(to_dict(tree), indent=2))

    for err in errors.all():
        print(f"    - {err}")

    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
