from __future__ import annotations

import pytest
from lark import Token, Tree

from fxparse.errors import RuleLookupError, VocabularyError
from fxparse.tree import (
    RuleNode,
    TerminalNode,
    child_by_label,
    find_by_label,
    first_child,
    from_dict,
    is_rule,
    is_terminal,
    iter_terminals,
    materialize,
    stringify,
    to_dict,
    tree_children,
    tree_label,
)
from fxparse.utils import escape_text
from tests.support.harness import leaf_text, make_parser, parse_text, render, significant_text

VALID_SOURCES = [
    "1",
    "let x = 1",
    "let y = f(x, 2) ^ -3",
    "a; b\nc",
    "(1 + 2) * 3 / 4 - 5",
    "sin(pi / 2)\n\nlet r = sqrt(a ^ 2 + b ^ 2)\n",
    "f()",
    "-(-x)",
]


@pytest.mark.parametrize("source", VALID_SOURCES)
def test_valid_input_round_trips_through_leaves(source: str) -> None:
    tree, errors = parse_text(source)

    assert not errors
    assert leaf_text(tree) == significant_text(source)


@pytest.mark.parametrize("source", VALID_SOURCES)
def test_rule_names_come_from_the_grammar(source: str) -> None:
    parser, _ = make_parser(source)
    tree = materialize(parser, parser.parse())

    def walk(node, seen):
        assert id(node) not in seen
        seen.add(id(node))
        if is_rule(node):
            assert node.name in parser.rule_names
        for child in node.children:
            walk(child, seen)

    walk(tree, set())
    assert tree.name == "fxmath_file"


def test_stringify_layout() -> None:
    assert render("let x = 1") == (
        "fxmath_file\n"
        "  statement\n"
        "    assignment\n"
        '      LET("let")\n'
        '      NAME("x")\n'
        '      EQUAL("=")\n'
        "      number\n"
        '        NUMBER("1")\n'
    )


def test_stringify_escapes_line_breaks() -> None:
    assert render("a\r\nb") == (
        "fxmath_file\n"
        "  statement\n"
        "    variable\n"
        '      NAME("a")\n'
        '  _SEP("\\r\\n")\n'
        "  statement\n"
        "    variable\n"
        '      NAME("b")\n'
    )


def test_stringify_expression_entry_point() -> None:
    assert render("2 ^ 3", start="expression") == (
        "expression\n"
        "  exponent\n"
        "    number\n"
        '      NUMBER("2")\n'
        '    CIRCUMFLEX("^")\n'
        "    number\n"
        '      NUMBER("3")\n'
    )


def test_stringify_is_deterministic() -> None:
    source = "let a = (1 + * 2\nb ^ -c"
    assert render(source) == render(source)


def test_empty_input_gives_empty_root() -> None:
    tree, errors = parse_text("")

    assert tree == RuleNode("fxmath_file", ())
    assert errors.lexer == [] and errors.parser == []
    assert stringify(tree, tree.name) == "fxmath_file\n"


def test_stringify_uses_given_root_label() -> None:
    tree = RuleNode("x", (TerminalNode("A", "a"),))
    assert stringify(tree, "Root") == 'Root\n  A("a")\n'


def test_materialize_skips_placeholders() -> None:
    parser, _ = make_parser("")
    native = Tree("call", [Token("NAME", "f"), Token("LPAR", "("), None, Token("RPAR", ")")])

    node = materialize(parser, native)
    assert [c.name for c in node.children] == ["NAME", "LPAR", "RPAR"]


def test_materialize_escapes_terminal_text() -> None:
    parser, _ = make_parser("")
    node = materialize(parser, Tree("fxmath_file", [Token("_SEP", "\n")]), "root")

    assert node == RuleNode("root", (TerminalNode("_SEP", "\\n"),))


def test_materialize_rejects_unknown_token_type() -> None:
    parser, _ = make_parser("")
    with pytest.raises(VocabularyError):
        materialize(parser, Tree("fxmath_file", [Token("BOGUS", "?")]))


def test_materialize_rejects_unknown_rule() -> None:
    parser, _ = make_parser("")
    with pytest.raises(RuleLookupError):
        materialize(parser, Tree("fxmath_file", [Tree("bogus", [])]))


def test_materialize_rejects_foreign_nodes() -> None:
    parser, _ = make_parser("")
    with pytest.raises(TypeError):
        materialize(parser, Tree("fxmath_file", [42]))


def test_tree_helpers() -> None:
    tree, _ = parse_text("let y = f(x, 2)")
    statement = child_by_label(tree, "statement")

    assert statement is not None
    assert tree_label(statement) == "statement"
    assert child_by_label(tree, "nope") is None

    call = find_by_label(tree, ["call"])
    assert call is not None and call.name == "call"
    assert find_by_label(tree, {"missing"}) is None

    args = child_by_label(call, "arguments")
    assert [leaf.text for leaf in iter_terminals(args)] == ["x", ",", "2"]

    name = first_child(call, is_terminal)
    assert name == TerminalNode("NAME", "f")
    assert tree_label(name) is None
    assert tree_children(name) == []
    assert is_terminal(name) and not is_rule(name)


def test_dict_form_round_trip() -> None:
    tree, _ = parse_text("let x = -1\n")

    data = to_dict(tree)
    assert data["rule"] == "fxmath_file"
    assert from_dict(data) == tree


def test_from_dict_rejects_unknown_shape() -> None:
    with pytest.raises(ValueError):
        from_dict({"kind": "?"})


@pytest.mark.parametrize(
    "raw, escaped",
    [
        ("plain", "plain"),
        ("a\nb", "a\\nb"),
        ("a\r\nb", "a\\r\\nb"),
        ("tab\tstays", "tab\tstays"),
    ],
)
def test_escape_text(raw: str, escaped: str) -> None:
    assert escape_text(raw) == escaped
