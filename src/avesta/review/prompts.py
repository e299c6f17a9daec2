from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from avesta.review.diff import FileDiff

SYSTEM_PROMPT = """You are an expert code reviewer with deep knowledge of software engineering principles.
The code will be provided with line numbers in the format "line_number: code".
Please use ONLY these provided line numbers in your review.

Important Rules:
1. If you see a function call or reference to code that is marked as ignored (with @ai-review-ignore markers), DO NOT review or make assumptions about that code or its usage.
2. Focus only on the visible implementation details, not on code that might be hidden or ignored.

For each issue found, provide the following information in a structured format:

File: <filename>
Line: <line_number>
Column: <column_number>
Issue: <description>
Length: <number_of_lines> (only for long function issues)

Example format:
File: src/components/Button.tsx
Line: 45
Column: 12
Issue: Function is 25 lines long and handles multiple responsibilities
Length: 25"""

USER_PROMPTS: dict[str, str] = {
    "code-review": """Specifically check for:
1. Functions longer than 20 lines (excluding whitespace and brackets)
2. Complex functions that could be split into smaller ones
3. Functions that violate Single Responsibility Principle""",
}


class UnknownPromptError(KeyError):
    """Raised when a configured review prompt name does not exist."""


def prompt_for(names: Iterable[str]) -> str:
    parts: list[str] = []
    for name in names:
        try:
            parts.append(USER_PROMPTS[name])
        except KeyError as exc:
            valid = ", ".join(sorted(USER_PROMPTS))
            raise UnknownPromptError(f"unknown review prompt {name!r} (valid: {valid})") from exc
    return "\n\n".join(parts)


def number_lines(lines: Sequence[str], line_numbers: Sequence[int] | None = None) -> str:
    if line_numbers is None:
        line_numbers = range(1, len(lines) + 1)
    return "\n".join(f"{number}: {line}" for number, line in zip(line_numbers, lines, strict=True))


def build_file_prompt(text: str) -> str:
    numbered = number_lines(text.split("\n"))
    return f"Review the following code with line numbers:\n\n{numbered}"


def build_bulk_prompt(files: Iterable[FileDiff], *, root: Path | None = None) -> str:
    sections: list[str] = []
    for diff in files:
        shown = diff.path.relative_to(root).as_posix() if root is not None and diff.path.is_relative_to(root) else diff.path.as_posix()
        sections.append(f"\n=== File: {shown} ===\n{number_lines(diff.lines, diff.line_numbers)}")
    return "Review the following changes with line numbers:\n" + "\n".join(sections)
