from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Dialect:
    """A source flavour Avesta lints: the config-level language plus its tree-sitter grammar."""

    language: str
    grammar: str
    jsx: bool = False


_DIALECTS: dict[str, Dialect] = {
    ".js": Dialect("javascript", "javascript", jsx=True),
    ".jsx": Dialect("javascript", "javascript", jsx=True),
    ".mjs": Dialect("javascript", "javascript"),
    ".cjs": Dialect("javascript", "javascript"),
    ".ts": Dialect("typescript", "typescript"),
    ".mts": Dialect("typescript", "typescript"),
    ".cts": Dialect("typescript", "typescript"),
    ".tsx": Dialect("typescript", "tsx", jsx=True),
}

KNOWN_LANGUAGES: frozenset[str] = frozenset(d.language for d in _DIALECTS.values())
GRAMMARS: frozenset[str] = frozenset(d.grammar for d in _DIALECTS.values())


def dialect_for(path: Path) -> Dialect | None:
    return _DIALECTS.get(path.suffix.lower())


def suffixes_for(languages: Iterable[str]) -> frozenset[str]:
    """Return the file suffixes belonging to the enabled `languages`; unknown names contribute nothing."""

    wanted = {name.strip().lower() for name in languages}
    return frozenset(suffix for suffix, dialect in _DIALECTS.items() if dialect.language in wanted)
