from __future__ import annotations

import logging

import pytest

from fxparse.cache import PredictionContextCache, check_cache, limit_cache
from fxparse.errors import CacheAccessError
from fxparse.lexer import Lexer, TokenStream
from fxparse.parser import INSERTION, Parser
from fxparse.tree import stringify
from fxparse.utils import DEFAULT_MAX_CACHE_SIZE, max_cache_size
from tests.support.harness import parse_text


def _fill(memo: PredictionContextCache, count: int) -> None:
    for i in range(count):
        memo.add(("injected", i), frozenset({"NUMBER"}))


class _Recorder:
    def __init__(self):
        self.calls = []

    def reset(self):
        self.calls.append("reset")

    def clear_dfa(self):
        self.calls.append("clear_dfa")


def test_add_keeps_first_prediction(memo) -> None:
    first = memo.add("ctx", frozenset({"A"}))
    second = memo.add("ctx", frozenset({"B"}))

    assert first == second == frozenset({"A"})
    assert memo.get("ctx") == frozenset({"A"})
    assert memo.get("other") is None
    assert "ctx" in memo
    assert len(memo) == 1


@pytest.mark.parametrize(
    "size, cleared",
    [
        (0, False),
        (DEFAULT_MAX_CACHE_SIZE, False),
        (DEFAULT_MAX_CACHE_SIZE + 1, True),
    ],
)
def test_limit_cache_threshold(memo, size: int, cleared: bool) -> None:
    _fill(memo, size)
    recorder = _Recorder()

    assert limit_cache(memo, recorder) is cleared
    if cleared:
        assert len(memo) == 0
        assert recorder.calls == ["reset", "clear_dfa"]
    else:
        assert len(memo) == size
        assert recorder.calls == []


def test_limit_cache_explicit_bound(memo) -> None:
    _fill(memo, 4)

    assert limit_cache(memo, _Recorder(), max_size=5) is False
    assert limit_cache(memo, _Recorder(), max_size=3) is True
    assert len(memo) == 0


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, DEFAULT_MAX_CACHE_SIZE),
        ("25", 25),
        ("  7 ", 7),
        ("", DEFAULT_MAX_CACHE_SIZE),
        ("lots", DEFAULT_MAX_CACHE_SIZE),
        ("-3", DEFAULT_MAX_CACHE_SIZE),
    ],
)
def test_max_cache_size_from_environment(monkeypatch, raw, expected: int) -> None:
    if raw is not None:
        monkeypatch.setenv("FXPARSE_MAX_CACHE_SIZE", raw)
    assert max_cache_size() == expected


def test_environment_bound_applies_to_recognizers(monkeypatch, fxmath, memo) -> None:
    monkeypatch.setenv("FXPARSE_MAX_CACHE_SIZE", "2")
    _fill(memo, 3)

    Lexer(fxmath, "1", cache=memo)
    assert len(memo) == 0


def test_oversized_cache_cleared_on_lexer_construction(fxmath, memo) -> None:
    _fill(memo, DEFAULT_MAX_CACHE_SIZE + 1)

    Lexer(fxmath, "1 + 2", cache=memo)
    assert len(memo) == 0


def test_oversized_cache_cleared_on_parser_construction(fxmath, memo) -> None:
    lexer = Lexer(fxmath, "1 + 2", cache=PredictionContextCache())
    _fill(memo, DEFAULT_MAX_CACHE_SIZE + 1)
    memo.add((INSERTION, fxmath.fingerprint, (0,), "NAME"), frozenset())

    Parser(fxmath, TokenStream(lexer), cache=memo)
    assert len(memo) == 0


def test_eviction_does_not_change_the_tree(memo) -> None:
    source = "let a = (1 + * 2\nb ^ -c"
    baseline_tree, baseline_errors = parse_text(source)

    _fill(memo, DEFAULT_MAX_CACHE_SIZE + 1)
    tree, errors = parse_text(source, cache=memo)

    assert stringify(tree, tree.name) == stringify(baseline_tree, baseline_tree.name)
    assert errors == baseline_errors
    assert len(memo) < DEFAULT_MAX_CACHE_SIZE


def test_eviction_is_logged(caplog, memo) -> None:
    _fill(memo, 3)
    with caplog.at_level(logging.DEBUG, logger="fxparse.cache"):
        limit_cache(memo, _Recorder(), max_size=1)

    assert any("cleared for _Recorder" in rec.getMessage() for rec in caplog.records)


@pytest.mark.parametrize("bogus", [{}, set(), [], object()], ids=["dict", "set", "list", "object"])
def test_check_cache_rejects_other_objects(bogus) -> None:
    with pytest.raises(CacheAccessError):
        check_cache(bogus)


def test_check_cache_accepts_duck_typed_cache() -> None:
    class DictCache(dict):
        def add(self, context, prediction):
            return self.setdefault(context, prediction)

    cache = DictCache()
    assert check_cache(cache) is cache
    assert parse_text("1", cache=cache).errors.parser == []
