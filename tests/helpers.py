from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from avesta.config import AvestaConfig
from avesta.engine.context import FileContext, ProjectContext
from avesta.engine.types import Diagnostic
from avesta.rules.base import BaseRule, RuleMeta, loc_from_line
from avesta.scanner import build_file_context
from avesta.suppressions import parse_directives, split_lines


def make_file_ctx(project_ctx: ProjectContext, *, relpath: str, content: str):
    path = project_ctx.project_root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    ctx = build_file_context(project_ctx, path)
    assert ctx is not None
    return ctx


@dataclass
class Tree:
    root_node: object


class Node:
    """Minimal stand-in for a tree-sitter node."""

    def __init__(
        self,
        node_type: str,
        *,
        children: list[Node] | None = None,
        start_point: tuple[int, int] = (0, 0),
        start_byte: int = 0,
        end_byte: int = 0,
        is_named: bool = True,
    ) -> None:
        self.type = node_type
        self.children = children or []
        self.start_point = start_point
        self.start_byte = start_byte
        self.end_byte = end_byte
        self.is_named = is_named


def token(text: str) -> Node:
    return Node(text, is_named=False)


def n(node_type: str, *children: Node, line: int = 0) -> Node:
    return Node(node_type, children=list(children), start_point=(line, 0))


class Source:
    """Accumulates text so leaf nodes get real byte offsets."""

    def __init__(self) -> None:
        self._buf = bytearray()

    def leaf(self, node_type: str, text: str, *, line: int = 0) -> Node:
        start = len(self._buf)
        self._buf.extend(text.encode("utf-8"))
        self._buf.extend(b" ")
        return Node(node_type, start_point=(line, 0), start_byte=start, end_byte=start + len(text.encode("utf-8")))

    @property
    def text(self) -> str:
        return self._buf.decode("utf-8")


def make_tree_ctx(
    tmp_path: Path,
    root: Node,
    *,
    text: str = "x\n",
    relpath: str = "src/example.tsx",
    config: AvestaConfig | None = None,
    grammar: str = "tsx",
) -> FileContext:
    return FileContext(
        project_root=tmp_path,
        path=tmp_path / relpath,
        relative_path=relpath,
        language="typescript",
        text=text,
        lines=tuple(split_lines(text)),
        suppressions=parse_directives(text, relpath),
        config=config or AvestaConfig(),
        syntax_tree=Tree(root_node=root),
        grammar=grammar,
    )


class ConsoleLogRule(BaseRule):
    """Line-based rule so engine tests do not depend on tree-sitter grammars."""

    meta = RuleMeta(
        rule_id="no-console-log",
        title="No console.log",
        description="Flags console.log calls.",
        default_severity="warn",
    )

    def check_file(self, ctx: FileContext) -> list[Diagnostic]:
        return [
            self._diagnostic(message="console.log call", location=loc_from_line(ctx, line=idx))
            for idx, line in enumerate(ctx.lines, start=1)
            if "console.log" in line
        ]
