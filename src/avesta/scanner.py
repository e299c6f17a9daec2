from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from avesta.config import AvestaConfig, load_config, path_is_ignored
from avesta.engine.context import FileContext, ProjectContext
from avesta.engine.tree_sitter import parse as ts_parse
from avesta.engine.types import FileFailure
from avesta.git import git_root
from avesta.languages.registry import dialect_for, suffixes_for
from avesta.suppressions import DirectiveError, parse_directives, split_lines
from avesta.utils import safe_relpath

logger = logging.getLogger(__name__)

# Vendored, generated or tool-owned directories never hold project sources.
DEFAULT_SKIP_DIRS = frozenset(
    {
        ".git", ".hg", ".svn", ".idea", ".vscode", ".venv", "venv",
        "node_modules", "bower_components", "dist", "build", "out",
        "coverage", ".next", ".nuxt", ".turbo", "__pycache__",
    }
)

AVESTA_WORKERS_ENV = "AVESTA_WORKERS"
DEFAULT_MAX_WORKERS = 32


@dataclass(frozen=True, slots=True)
class ScanTarget:
    project_root: Path
    scan_path: Path
    config: AvestaConfig


def resolve_worker_count(
    raw_value: str | None,
    *,
    default: int | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> int:
    """
    Turn an `AVESTA_WORKERS`-style value into a thread count in `1..max_workers`.

    Blank, "auto", non-numeric and non-positive values mean `default`
    (twice the CPU count when not given).
    """

    fallback = default if default is not None else 2 * (os.cpu_count() or 1)
    text = (raw_value or "").strip()
    requested = int(text) if text.isdigit() else 0
    return min(requested or max(1, fallback), max_workers)


def worker_count_from_env(*, default: int | None = None) -> int:
    return resolve_worker_count(os.environ.get(AVESTA_WORKERS_ENV), default=default)


def prepare_target(scan_path: Path) -> ScanTarget:
    """Resolve `scan_path`, find its project root and load that root's config."""

    scan_path = scan_path.resolve()
    project_root = _detect_project_root(scan_path)
    return ScanTarget(project_root=project_root, scan_path=scan_path, config=load_config(project_root))


def _walk(directory: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(directory, topdown=True):
        dirnames[:] = sorted(d for d in dirnames if d not in DEFAULT_SKIP_DIRS)
        base = Path(dirpath)
        for filename in filenames:
            yield base / filename


def discover_files(target: ScanTarget) -> list[Path]:
    """
    List the JavaScript/TypeScript files to lint under `target.scan_path`.

    Files must belong to an enabled language and not match `ignore.paths`.
    An explicitly named file is still subject to both checks.
    """

    suffixes = suffixes_for(target.config.languages)
    candidates = [target.scan_path] if target.scan_path.is_file() else _walk(target.scan_path)

    return sorted(
        {
            path
            for path in candidates
            if path.suffix.lower() in suffixes
            and not path_is_ignored(path, project_root=target.project_root, ignore_patterns=target.config.ignore.paths)
        }
    )


def build_project_context(target: ScanTarget, files: list[Path]) -> ProjectContext:
    return ProjectContext(
        project_root=target.project_root,
        scan_path=target.scan_path,
        files=tuple(files),
        config=target.config,
    )


def build_file_context(project: ProjectContext, path: Path) -> FileContext | None:
    """
    Read `path` and build its context; None when unreadable or unsupported.

    Raises DirectiveError when the file contains a malformed directive.
    """

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("skipping unreadable file %s: %s", path, exc)
        return None

    return build_file_context_from_text(project, path, text)


def build_file_context_from_text(project: ProjectContext, path: Path, text: str) -> FileContext | None:
    dialect = dialect_for(path)
    if dialect is None:
        return None

    relative_path = safe_relpath(path, project.project_root)
    # Raises DirectiveError; the tree is never built for such files.
    suppressions = parse_directives(text, relative_path)

    return FileContext(
        project_root=project.project_root,
        path=path,
        relative_path=relative_path,
        language=dialect.language,
        text=text,
        lines=tuple(split_lines(text)),
        suppressions=suppressions,
        config=project.config,
        syntax_tree=ts_parse(dialect.grammar, text),
        grammar=dialect.grammar,
    )


def _build_or_fail(project: ProjectContext, path: Path) -> FileContext | FileFailure | None:
    try:
        return build_file_context(project, path)
    except DirectiveError as exc:
        logger.warning("%s", exc)
        return FileFailure(path=path, error=exc.message, line=exc.line)


def build_file_contexts(
    project: ProjectContext,
    paths: list[Path],
    *,
    workers: int = 1,
    on_path_done: Callable[[Path], None] | None = None,
) -> tuple[list[FileContext], list[FileFailure]]:
    """
    Build a context for each path, in `paths` order.

    Unreadable and unsupported files are dropped. Files with a malformed
    directive come back as failures instead of contexts.
    """

    contexts: list[FileContext] = []
    failures: list[FileFailure] = []

    def collect(path: Path, result: FileContext | FileFailure | None) -> None:
        if isinstance(result, FileContext):
            contexts.append(result)
        elif isinstance(result, FileFailure):
            failures.append(result)
        if on_path_done is not None:
            on_path_done(path)

    if workers <= 1 or len(paths) <= 1:
        for path in paths:
            collect(path, _build_or_fail(project, path))
        return contexts, failures

    with ThreadPoolExecutor(max_workers=min(workers, len(paths)), thread_name_prefix="avesta-read") as pool:
        results = pool.map(lambda p: _build_or_fail(project, p), paths)
        for path, result in zip(paths, results, strict=True):
            collect(path, result)
    return contexts, failures


def _detect_project_root(start: Path) -> Path:
    """Closest directory holding a pyproject.toml, else the git root, else `start`'s directory."""

    base = start if start.is_dir() else start.parent
    for candidate in (base, *base.parents):
        if (candidate / "pyproject.toml").is_file():
            return candidate
    return git_root(cwd=base) or base
