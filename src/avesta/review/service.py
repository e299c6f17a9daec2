from __future__ import annotations

import logging
from pathlib import Path

from avesta.config import ReviewConfig
from avesta.git import GitError, git_root, staged_diff
from avesta.review.diff import FileDiff, parse_staged_diff
from avesta.review.prompts import build_bulk_prompt, build_file_prompt
from avesta.review.providers import BaseReviewProvider, ReviewError

logger = logging.getLogger(__name__)


class ReviewService:
    def __init__(self, *, repo_root: Path, config: ReviewConfig, provider: BaseReviewProvider) -> None:
        self.repo_root = repo_root
        self.config = config
        self.provider = provider

    @classmethod
    def for_directory(cls, cwd: Path, *, config: ReviewConfig, provider: BaseReviewProvider) -> ReviewService:
        root = git_root(cwd=cwd)
        if root is None:
            raise ReviewError(f"not a git repository: {cwd}")
        return cls(repo_root=root, config=config, provider=provider)

    def staged_files(self) -> list[FileDiff]:
        try:
            diff_text = staged_diff(cwd=self.repo_root)
        except GitError as exc:
            raise ReviewError(f"failed to read staged changes: {exc}") from exc
        return parse_staged_diff(diff_text, repo_root=self.repo_root, extensions=self.config.extensions)

    def review_staged_files(self) -> str | None:
        """Review all staged changes in one request; None when nothing reviewable is staged."""

        files = self.staged_files()
        if not files:
            logger.debug("no staged files matching %s found.", ", ".join(self.config.extensions))
            return None
        logger.info("AI reviewing changes in %d file(s)...", len(files))
        return self.provider.complete(build_bulk_prompt(files, root=self.repo_root))

    def review_file(self, path: Path) -> str:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReviewError(f"Failed to read file: {exc}") from exc
        logger.info("AI reviewing %s...", path)
        return self.provider.complete(build_file_prompt(text))
