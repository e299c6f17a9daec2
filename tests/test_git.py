from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from avesta.git import GitError, git_check_output, git_root, staged_diff
from avesta.review.diff import parse_staged_diff

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def test_git_root_and_staged_diff(tmp_path: Path) -> None:
    git_check_output(["init"], cwd=tmp_path)
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.ts").write_text("const a = 1;\nconst b = 2;\n", encoding="utf-8")
    git_check_output(["add", "src/app.ts"], cwd=tmp_path)

    root = git_root(cwd=tmp_path / "src")
    assert root is not None
    assert root.resolve() == tmp_path.resolve()

    files = parse_staged_diff(staged_diff(cwd=tmp_path), repo_root=root, extensions=(".ts",))
    assert [(f.path.name, f.lines, f.line_numbers) for f in files] == [
        ("app.ts", ("const a = 1;", "const b = 2;"), (1, 2))
    ]


def test_git_root_outside_repo(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))

    assert git_root(cwd=tmp_path) is None


def test_failed_git_command_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))

    with pytest.raises(GitError):
        staged_diff(cwd=tmp_path)
