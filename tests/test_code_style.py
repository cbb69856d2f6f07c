"""Tests for source conventions of the engine modules."""

import io
import tokenize
from pathlib import Path

import pytest

import sqlschema.database

ENGINE_MODULES = sorted(Path(sqlschema.database.__file__).parent.glob("*.py"))
FSTRING_START = getattr(tokenize, "FSTRING_START", None)
FSTRING_END = getattr(tokenize, "FSTRING_END", None)


def single_quoted_literals(source: str):
    """String tokens opened with a single quote that could use double quotes."""
    found = []
    depth = 0
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        if FSTRING_START is not None and token.type == FSTRING_START:
            depth += 1
        elif FSTRING_END is not None and token.type == FSTRING_END:
            depth -= 1
        elif token.type == tokenize.STRING and depth == 0:
            body = token.string.lstrip("rRbBuUfF")
            if body.startswith("'") and '"' not in body and "\\'" not in body:
                found.append((token.start[0], token.string))
    return found


class TestStringQuoting:
    """Test that engine modules use double-quoted strings."""

    @pytest.mark.parametrize("path", ENGINE_MODULES, ids=lambda p: p.name)
    def test_double_quotes(self, path):
        assert single_quoted_literals(path.read_text(encoding="utf-8")) == []

    def test_detects_single_quotes(self):
        source = 'a = \'x\'\nb = "y"\nc = \'say "hi"\'\nd = f"{e[\'k\']}"\n'
        assert single_quoted_literals(source) == [(1, "'x'")]
