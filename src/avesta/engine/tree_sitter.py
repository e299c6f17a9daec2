from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Any, cast

from avesta.engine.context import SyntaxTree
from avesta.languages.registry import GRAMMARS

logger = logging.getLogger(__name__)

try:  # pragma: no cover
    from tree_sitter import Parser
    from tree_sitter_languages import get_language
except (ImportError, OSError):  # pragma: no cover
    Parser = None  # type: ignore[assignment,misc]
    get_language = None  # type: ignore[assignment]

MISSING_DEPS_MESSAGE = (
    "tree-sitter is not installed, so the JavaScript/TypeScript rules have nothing to inspect. "
    "Install `avesta-review[treesitter]` (tree-sitter + tree-sitter-languages)."
)


class _ThreadParsers(threading.local):
    def __init__(self) -> None:
        self.by_grammar: dict[str, Any] = {}


_parsers = _ThreadParsers()


def is_available() -> bool:
    return Parser is not None and get_language is not None


@lru_cache(maxsize=len(GRAMMARS))
def _language(grammar: str) -> Any:
    assert get_language is not None
    return get_language(grammar)


def _parser(grammar: str) -> Any:
    parser = _parsers.by_grammar.get(grammar)
    if parser is None:
        assert Parser is not None
        parser = Parser()
        parser.set_language(_language(grammar))
        _parsers.by_grammar[grammar] = parser
    return parser


def parse(grammar: str, source: str) -> SyntaxTree | None:
    """
    Parse `source` with one of the `javascript`, `typescript` or `tsx` grammars.

    Returns None when tree-sitter is not installed, the grammar is unknown or
    the parser rejects the input. Each scan worker thread keeps its own
    Parser per grammar.
    """

    if grammar not in GRAMMARS or not is_available():
        return None
    try:
        tree = _parser(grammar).parse(source.encode("utf-8", errors="replace"))
    except (AttributeError, KeyError, ValueError, TypeError, RuntimeError) as exc:
        logger.debug("tree-sitter could not parse %s source: %s", grammar, exc)
        return None
    return cast(SyntaxTree, tree)
