from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

IGNORE_START = "@ai-review-ignore-start"
IGNORE_END = "@ai-review-ignore-end"

_HUNK_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")


@dataclass(frozen=True, slots=True)
class FileDiff:
    """Added lines of one staged file, paired with their line numbers in the new version."""

    path: Path
    lines: tuple[str, ...]
    line_numbers: tuple[int, ...]


class _FileBuilder:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.lines: list[str] = []
        self.line_numbers: list[int] = []
        self.in_hunk = False
        self.ignoring = False
        self.next_line = 0

    def start_hunk(self, first_line: int) -> None:
        self.in_hunk = True
        self.next_line = first_line

    def feed(self, raw: str) -> None:
        content = raw[1:] if raw.startswith("+") else raw
        line_no = self.next_line
        self.next_line += 1

        if IGNORE_START in content:
            self.ignoring = True
            return
        if IGNORE_END in content:
            self.ignoring = False
            return
        if self.ignoring:
            return

        self.lines.append(content)
        self.line_numbers.append(line_no)

    def build(self) -> FileDiff | None:
        if not self.lines:
            return None
        return FileDiff(path=self.path, lines=tuple(self.lines), line_numbers=tuple(self.line_numbers))


def parse_staged_diff(diff_text: str, *, repo_root: Path, extensions: Iterable[str]) -> list[FileDiff]:
    """
    Parse zero-context unified diff output into per-file added lines.

    Only files whose suffix is in `extensions` are kept. Removed lines and
    diff metadata are skipped, as is anything between the ignore markers
    (the markers themselves included); skipped lines still advance the
    line counter so numbering matches the staged file.
    """

    allowed = {ext.lower() for ext in extensions}
    files: list[FileDiff] = []
    current: _FileBuilder | None = None

    def flush() -> None:
        if current is not None and (built := current.build()) is not None:
            files.append(built)

    for raw in diff_text.splitlines():
        if raw.startswith("diff --git"):
            flush()
            _, sep, rel = raw.partition(" b/")
            rel = rel.strip()
            if sep and Path(rel).suffix.lower() in allowed:
                current = _FileBuilder(repo_root / rel)
            else:
                current = None
            continue

        if current is None:
            continue

        if raw.startswith("@@"):
            match = _HUNK_RE.match(raw)
            if match is not None:
                current.start_hunk(int(match.group(1)))
            continue

        if not current.in_hunk or raw.startswith(("-", "\\")):
            continue
        current.feed(raw)

    flush()
    return files
