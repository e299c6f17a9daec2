from __future__ import annotations

from pathlib import Path


def _resolved(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path


def safe_relpath(path: Path, root: Path) -> str:
    """POSIX path of `path` relative to `root` for reports; paths outside the root come back unchanged."""

    for candidate, base in ((path, root), (_resolved(path), _resolved(root))):
        if candidate.is_relative_to(base):
            return candidate.relative_to(base).as_posix()
    return path.as_posix()
