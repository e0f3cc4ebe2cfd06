"""Tool-owned review comments and their body format.

Ownership and resolution are never stored: a review comment belongs to
formatguard when its body contains the marker, and it is resolved when some
other comment replies to it. Both are re-derived from the pull request's
current comment list on every run.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_MARKER = "<!-- formatguard -->"
DEFAULT_RESOLVED_REPLY = "✓ Formatting has been fixed."
EXPLANATION = "**formatguard**: This section is not formatted correctly."


@dataclass(frozen=True, slots=True)
class Annotation:
    """A tool-owned review comment as observed at the start of a run."""

    id: int
    path: str
    body: str
    line: int
    resolved: bool


def render_annotation_body(
    content: str, path: str, *, marker: str, fix_command: list[str]
) -> str:
    """Build the review comment body suggesting ``content`` for ``path``."""
    command = shlex.join(arg.replace("{path}", path) for arg in fix_command)
    return "\n".join(
        [
            marker,
            EXPLANATION,
            "",
            "```suggestion",
            content,
            "```",
            "",
            f"Run `{command}` to fix the formatting.",
        ]
    )


def collect_annotations(comments: Iterable[Mapping[str, Any]], marker: str) -> list[Annotation]:
    """Filter raw review comments down to tool-owned annotations."""
    comments = [comment for comment in comments if isinstance(comment, Mapping)]
    replied_to = {
        comment.get("in_reply_to_id")
        for comment in comments
        if isinstance(comment.get("in_reply_to_id"), int)
    }

    annotations: list[Annotation] = []
    for comment in comments:
        if comment.get("in_reply_to_id") is not None:
            continue
        body = str(comment.get("body") or "")
        comment_id = comment.get("id")
        if marker not in body or not isinstance(comment_id, int):
            continue
        annotations.append(
            Annotation(
                id=comment_id,
                path=str(comment.get("path") or ""),
                body=body,
                line=_comment_line(comment),
                resolved=comment_id in replied_to,
            )
        )
    return annotations


def _comment_line(comment: Mapping[str, Any]) -> int:
    # "line" is null once the commented line is outdated; such comments never match.
    value = comment.get("line")
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0
