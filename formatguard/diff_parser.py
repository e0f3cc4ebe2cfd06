"""Unified diff parser primitives."""

from __future__ import annotations

from dataclasses import dataclass, field
from re import Match, compile
from typing import Literal

HUNK_HEADER_RE = compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@(?P<section>.*)$"
)

LineKind = Literal["context", "add", "delete", "meta"]


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, counting lines the way git does.

    ``str.splitlines`` also breaks on form feeds, lone carriage returns and
    other Unicode separators, which would shift every later line number.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single tagged line within a diff hunk."""

    kind: LineKind
    content: str
    old_lineno: int | None
    new_lineno: int | None

    @property
    def is_change(self) -> bool:
        return self.kind in ("add", "delete")


@dataclass(slots=True)
class Hunk:
    """A diff hunk with its header ranges and tagged lines."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"

    def change_blocks(self) -> list[tuple[int, int]]:
        """Return inclusive (first, last) line indexes of each add/delete run.

        Meta lines ("\\ No newline at end of file") do not break a run.
        """
        blocks: list[tuple[int, int]] = []
        start: int | None = None
        last: int | None = None
        for index, line in enumerate(self.lines):
            if line.is_change:
                if start is None:
                    start = index
                last = index
            elif line.kind == "context" and start is not None and last is not None:
                blocks.append((start, last))
                start = None
                last = None
        if start is not None and last is not None:
            blocks.append((start, last))
        return blocks


def parse_patch(patch: str | None) -> list[Hunk]:
    """Parse the hunks of a single-file patch.

    File headers (``diff --git``, ``---``, ``+++``, ``index``) are skipped, so
    both GitHub's per-file ``patch`` field and full ``difflib`` output are
    accepted. Lines before the first hunk header are ignored.
    """
    hunks: list[Hunk] = []
    current: Hunk | None = None
    old_lineno = 0
    new_lineno = 0

    for raw_line in split_lines(patch or ""):
        if raw_line.startswith("@@ "):
            current = _start_hunk(raw_line)
            hunks.append(current)
            old_lineno = current.old_start
            new_lineno = current.new_start
            continue

        if current is None:
            continue

        if raw_line.startswith("--- ") or raw_line.startswith("+++ "):
            if _hunk_is_complete(current):
                # Header of a following file in a multi-file diff.
                current = None
                continue

        if raw_line.startswith(" "):
            current.lines.append(DiffLine("context", raw_line[1:], old_lineno, new_lineno))
            old_lineno += 1
            new_lineno += 1
        elif raw_line.startswith("+"):
            current.lines.append(DiffLine("add", raw_line[1:], None, new_lineno))
            new_lineno += 1
        elif raw_line.startswith("-"):
            current.lines.append(DiffLine("delete", raw_line[1:], old_lineno, None))
            old_lineno += 1
        elif raw_line.startswith("\\"):
            current.lines.append(DiffLine("meta", raw_line[1:].strip(), None, None))
        elif raw_line.startswith("diff --git "):
            current = None
        else:
            # Blank lines appear in hand-edited patches; they carry no position.
            current.lines.append(DiffLine("meta", raw_line, None, None))

    return hunks


def _start_hunk(header: str) -> Hunk:
    match: Match[str] | None = HUNK_HEADER_RE.match(header)
    if match is None:
        raise ValueError(f"Invalid hunk header: {header}")

    old_count = int(match.group("old_count")) if match.group("old_count") else 1
    new_count = int(match.group("new_count")) if match.group("new_count") else 1
    return Hunk(
        old_start=int(match.group("old_start")),
        old_count=old_count,
        new_start=int(match.group("new_start")),
        new_count=new_count,
    )


def _hunk_is_complete(hunk: Hunk) -> bool:
    old_seen = sum(1 for line in hunk.lines if line.kind in ("context", "delete"))
    new_seen = sum(1 for line in hunk.lines if line.kind in ("context", "add"))
    return old_seen >= hunk.old_count and new_seen >= hunk.new_count
