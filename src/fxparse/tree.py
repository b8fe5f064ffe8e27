"""Uniform parse tree: rule and terminal nodes independent of the parsing engine.

``materialize`` rebuilds lark's native tree into these nodes; ``stringify``
renders them as an indented, line-per-node snapshot for diffing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple, TypeGuard, Union

from lark import Token, Tree
from typing_extensions import TypeAlias

from .utils import escape_text


@dataclass(frozen=True)
class RuleNode:
    name: str
    children: Tuple["ParseTreeNode", ...] = ()

    def __repr__(self) -> str:
        return f"RuleNode({self.name!r}, {list(self.children)!r})"


@dataclass(frozen=True)
class TerminalNode:
    name: str
    text: str

    @property
    def children(self) -> Tuple["ParseTreeNode", ...]:
        return ()

    def __repr__(self) -> str:
        return f"TerminalNode({self.name!r}, {self.text!r})"


ParseTreeNode: TypeAlias = Union[RuleNode, TerminalNode]


def materialize(parser: Any, native: Tree, name: Optional[str] = None) -> RuleNode:
    """Rebuild lark's *native* tree as a RuleNode.

    Terminal names come from the parser's vocabulary and rule names from its
    rule-name table, so a token or rule the grammar does not declare raises
    a LookupError. ``None`` children (optional slots lark pads with
    placeholders) are skipped.
    """
    if name is None:
        name = parser.rule_names[parser.rule_index(native.data)]
    return RuleNode(name, tuple(_materialize_children(parser, native)))


def _materialize_children(parser: Any, native: Tree) -> Iterator[ParseTreeNode]:
    for child in native.children:
        match child:
            case None:
                continue
            case Token():
                yield TerminalNode(parser.vocabulary.symbolic_name(child.type), escape_text(str(child.value)))
            case Tree():
                yield materialize(parser, child)
            case _:
                raise TypeError(f"unexpected node in parse tree: {child!r}")


def stringify(root: RuleNode, root_label: str) -> str:
    """Render *root*'s descendants one per line, indented two spaces per level, under *root_label*."""
    lines: List[str] = [root_label]
    _stringify_children(root, 1, lines)
    return "\n".join(lines) + "\n"


def _stringify_children(node: ParseTreeNode, depth: int, lines: List[str]) -> None:
    indent = "  " * depth
    for child in node.children:
        match child:
            case RuleNode(name=name):
                lines.append(f"{indent}{name}")
            case TerminalNode(name=name, text=text):
                lines.append(f'{indent}{name}("{text}")')
        _stringify_children(child, depth + 1, lines)


def is_rule(node: ParseTreeNode) -> TypeGuard[RuleNode]:
    return isinstance(node, RuleNode)


def is_terminal(node: ParseTreeNode) -> TypeGuard[TerminalNode]:
    return isinstance(node, TerminalNode)


def tree_label(node: ParseTreeNode) -> Optional[str]:
    return node.name if is_rule(node) else None


def tree_children(node: ParseTreeNode) -> List[ParseTreeNode]:
    return list(node.children)


def child_by_label(node: ParseTreeNode, label: str) -> Optional[ParseTreeNode]:
    for ch in tree_children(node):
        if tree_label(ch) == label:
            return ch

    return None


def first_child(node: ParseTreeNode, predicate: Callable[[ParseTreeNode], bool]) -> Optional[ParseTreeNode]:
    for ch in tree_children(node):
        if predicate(ch):
            return ch

    return None


def find_by_label(node: ParseTreeNode, labels: Iterable[str]) -> Optional[RuleNode]:
    lookup: Set[str] = set(labels)

    if is_rule(node) and node.name in lookup:
        return node

    for child in tree_children(node):
        found = find_by_label(child, lookup)
        if found is not None:
            return found

    return None


def iter_terminals(node: ParseTreeNode) -> Iterator[TerminalNode]:
    """Leaves in left-to-right order."""
    if is_terminal(node):
        yield node
        return
    for child in node.children:
        yield from iter_terminals(child)


def to_dict(node: ParseTreeNode) -> Dict[str, Any]:
    match node:
        case TerminalNode(name=name, text=text):
            return {"terminal": name, "text": text}
        case RuleNode(name=name, children=children):
            return {"rule": name, "children": [to_dict(ch) for ch in children]}
    raise TypeError(f"not a parse tree node: {node!r}")


def from_dict(data: Dict[str, Any]) -> ParseTreeNode:
    if "terminal" in data:
        return TerminalNode(data["terminal"], data["text"])
    if "rule" in data:
        return RuleNode(data["rule"], tuple(from_dict(ch) for ch in data.get("children", ())))
    raise ValueError(f"not a serialized parse tree node: {data!r}")
