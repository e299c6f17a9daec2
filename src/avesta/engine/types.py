from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Severity = Literal["info", "warn", "error"]

SEVERITY_RANK: dict[str, int] = {"info": 0, "warn": 1, "error": 2}


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Diagnostic:
    rule_id: str | None
    severity: Severity
    message: str
    suggestion: str | None = None
    location: Location | None = None


@dataclass(frozen=True, slots=True)
class FileFailure:
    path: Path
    error: str
    line: int | None = None


@dataclass(frozen=True, slots=True)
class ScanSummary:
    files_scanned: int
    diagnostics: tuple[Diagnostic, ...]
    failures: tuple[FileFailure, ...] = ()

    def count(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if d.severity == severity)

    def reaches(self, severity: Severity) -> bool:
        """Return True if any diagnostic is at least as severe as `severity`."""

        floor = SEVERITY_RANK[severity]
        return any(SEVERITY_RANK.get(d.severity, 0) >= floor for d in self.diagnostics)
