"""Error-tolerant parsing front end: grammar-driven lexer and parser, uniform parse trees."""

__all__ = [
    "cache",
    "errors",
    "grammar",
    "lexer",
    "parser",
    "recognizer",
    "runner",
    "tree",
    "utils",
]
