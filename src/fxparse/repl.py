"""Interactive parse REPL, powered by prompt_toolkit."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from typing import Optional

from lark.exceptions import ConfigurationError
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .cache import SHARED_CONTEXT_CACHE, ContextCache
from .grammar import Grammar, default_grammar
from .repl_highlight import GrammarLexer
from .runner import parse
from .tree import stringify

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/start": ("Show or set the entry-point rule", "[rule]"),
    "/tree": ("Toggle printing of the parse tree", "[on|off]"),
    "/cache": ("Show the prediction cache size", ""),
    "/reset": ("Clear the prediction cache", ""),
}


@dataclass
class ReplState:
    grammar: Grammar
    start: str
    show_tree: bool = True
    cache: ContextCache = field(default=SHARED_CONTEXT_CACHE)


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, state: ReplState) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/start":
        if arg == "":
            print(f"Start rule: {state.start} (entry points: {', '.join(state.grammar.start_rules)})")
        elif arg in state.grammar.start_rules:
            state.start = arg
            print(f"Start rule: {arg}")
        else:
            print(f"Not an entry point: {arg}", file=sys.stderr)
        return True

    if cmd == "/tree":
        if arg.lower() in ("on", "1", "true", "yes"):
            state.show_tree = True
        elif arg.lower() in ("off", "0", "false", "no"):
            state.show_tree = False
        elif arg == "":
            # Toggle.
            state.show_tree = not state.show_tree
        else:
            print("Usage: /tree [on|off]", file=sys.stderr)
            return True

        print(f"Parse tree: {'on' if state.show_tree else 'off'}")
        return True

    if cmd == "/cache":
        print(f"Prediction cache: {len(state.cache)} entries")
        return True

    if cmd == "/reset":
        state.cache.clear()
        print("Prediction cache cleared.")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _open_parens(text: str) -> int:
    depth = 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(depth - 1, 0)
    return depth


def evaluate(text: str, state: ReplState) -> None:
    """Parse *text* and print its tree (when enabled) and diagnostics."""
    tree, errors = parse(text, grammar=state.grammar, start=state.start, cache=state.cache)

    if state.show_tree:
        sys.stdout.write(stringify(tree, tree.name))

    for err in errors.all():
        print(f"    - {err}", file=sys.stderr)


def repl(grammar: Optional[Grammar] = None) -> None:
    """Interactive read-parse-print loop with prompt_toolkit."""
    grammar = grammar or default_grammar()
    state = ReplState(grammar=grammar, start=grammar.start)

    history = InMemoryHistory()
    lexer = GrammarLexer(grammar)

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        # Unbalanced parentheses or a trailing backslash => keep editing.
        if _open_parens(text) or text.rstrip().endswith("\\"):
            buf.insert_text("\n")
            return

        # Multiline: an empty last line submits.
        if "\n" in text and text.split("\n")[-1].strip() == "":
            buf.text = text.rstrip("\n")
            buf.cursor_position = len(buf.text)

        buf.validate_and_handle()

    session: PromptSession[str] = PromptSession(
        history=history,
        lexer=lexer,
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print(f"fxparse repl ({grammar.name}, start: {state.start}), Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text).replace("\\\n", " ")
        if not text.strip():
            continue

        # Slash command?
        if _handle_slash(text, state):
            continue

        try:
            evaluate(text, state)
        except ConfigurationError as exc:
            print(f"Error: {exc}", file=sys.stderr)


if __name__ == "__main__":
    repl()
