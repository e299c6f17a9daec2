from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path


class GitError(RuntimeError):
    """Raised when git is missing or a git command exits non-zero."""


def git_check_output(args: Sequence[str], *, cwd: Path) -> str:
    """Run `git <args>` in `cwd` and return stdout; stderr ends up in the GitError message."""

    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except FileNotFoundError as exc:
        raise GitError("git is unavailable") from exc
    except (NotADirectoryError, PermissionError) as exc:
        raise GitError(f"cannot run git in {cwd}: {exc}") from exc

    if proc.returncode != 0:
        detail = proc.stderr.strip() or f"exit status {proc.returncode}"
        raise GitError(f"git {' '.join(args)} failed: {detail}")
    return proc.stdout


def git_root(*, cwd: Path) -> Path | None:
    """Return the top-level directory of the repository containing `cwd`, or None."""

    try:
        out = git_check_output(["rev-parse", "--show-toplevel"], cwd=cwd).strip()
    except GitError:
        return None
    return Path(out) if out else None


def staged_diff(*, cwd: Path) -> str:
    """Zero-context diff of the index against HEAD, as consumed by the review add-on."""

    return git_check_output(["diff", "--staged", "--no-color", "--no-ext-diff", "-U0"], cwd=cwd)
