from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from avesta.config import AvestaConfig
from avesta.languages.registry import GRAMMARS
from avesta.suppressions import SuppressionState


class SyntaxTree(Protocol):
    root_node: Any


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: AvestaConfig


@dataclass(frozen=True, slots=True)
class FileContext:
    """
    One source file as rules see it.

    `suppressions` is the file's own directive state; detection filters this
    file's diagnostics through it and nothing else.
    """

    project_root: Path
    path: Path
    relative_path: str
    language: str
    text: str
    lines: tuple[str, ...]
    suppressions: SuppressionState
    config: AvestaConfig
    syntax_tree: SyntaxTree | None = None
    grammar: str | None = None

    @property
    def root_node(self) -> Any | None:
        """Root of the JavaScript/TypeScript syntax tree, or None when the file was not parsed."""

        if self.syntax_tree is None or self.grammar not in GRAMMARS:
            return None
        return self.syntax_tree.root_node

    def source_bytes(self) -> bytes:
        return self.text.encode("utf-8", errors="replace")
