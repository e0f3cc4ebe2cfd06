"""Derive independently commentable change regions from a formatter's output.

A formatter rewrites a whole file, but a review suggestion has to be anchored
to one line of the pull request. The original and formatted contents are
diffed with a fixed context window and every contiguous add/delete run inside
a diff hunk becomes its own :class:`FormattingHunk`, so two unrelated changes
that happen to share a diff hunk are still suggested separately.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass

from formatguard.diff_parser import DiffLine, Hunk, parse_patch, split_lines

CONTEXT_LINES = 3

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LineRange:
    """Inclusive line range; ``end < start`` denotes an empty range."""

    start: int
    end: int


@dataclass(frozen=True, slots=True)
class FormattingHunk:
    """One suggested replacement for a contiguous block of formatting changes."""

    anchor_line: int
    content: str
    original_line_range: LineRange
    new_line_range: LineRange


def unified_hunks(original: str, formatted: str, path: str) -> list[Hunk]:
    """Diff two versions of a file into parsed hunks with the fixed context window."""
    diff_lines = difflib.unified_diff(
        split_lines(original),
        split_lines(formatted),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=CONTEXT_LINES,
        lineterm="",
    )
    return parse_patch("\n".join(diff_lines))


def extract_formatting_hunks(original: str, formatted: str, path: str) -> list[FormattingHunk]:
    """Return one :class:`FormattingHunk` per change block, in file order."""
    hunks: list[FormattingHunk] = []
    for hunk in unified_hunks(original, formatted, path):
        blocks = hunk.change_blocks()
        logger.debug(
            "%s: hunk %s has %d change block(s)", path, hunk.header, len(blocks)
        )
        for index, (first, last) in enumerate(blocks):
            lower = blocks[index - 1][1] + 1 if index > 0 else 0
            upper = blocks[index + 1][0] - 1 if index + 1 < len(blocks) else len(hunk.lines) - 1
            start = max(lower, first - CONTEXT_LINES)
            end = min(upper, last + CONTEXT_LINES)
            hunks.append(_build_formatting_hunk(hunk, start, end))
    return hunks


def _build_formatting_hunk(hunk: Hunk, start: int, end: int) -> FormattingHunk:
    new_positions, old_positions = _positions(hunk)
    window = hunk.lines[start : end + 1]

    anchor_line = next(
        new_positions[start + offset] for offset, line in enumerate(window) if line.is_change
    )
    kept = [line.content for line in window if line.kind in ("context", "add")]
    old_count = sum(1 for line in window if line.kind in ("context", "delete"))

    return FormattingHunk(
        anchor_line=anchor_line,
        content="\n".join(kept),
        original_line_range=LineRange(old_positions[start], old_positions[start] + old_count - 1),
        new_line_range=LineRange(new_positions[start], new_positions[start] + len(kept) - 1),
    )


def _positions(hunk: Hunk) -> tuple[list[int], list[int]]:
    """Line number each hunk line occupies, or would occupy, in the new and old file."""
    new_positions: list[int] = []
    old_positions: list[int] = []
    new_line = hunk.new_start
    old_line = hunk.old_start
    for line in hunk.lines:
        new_positions.append(new_line)
        old_positions.append(old_line)
        if _advances_new(line):
            new_line += 1
        if line.kind in ("context", "delete"):
            old_line += 1
    return new_positions, old_positions


def _advances_new(line: DiffLine) -> bool:
    return line.kind in ("context", "add")
