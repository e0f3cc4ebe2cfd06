"""Map new-file line numbers into a pull request's diff.

GitHub review comments can only be anchored to lines that the pull request's
own diff displays: additions and context lines of the file's ``patch``.
"""

from __future__ import annotations

from formatguard.diff_parser import Hunk, parse_patch

NOT_ADDRESSABLE = 0


def locate(patch: str | None, target_line: int) -> int:
    """Return ``target_line`` if the PR diff shows it, else :data:`NOT_ADDRESSABLE`.

    Raises ``ValueError`` when the patch contains a malformed hunk header.
    """
    return locate_in_hunks(parse_patch(patch), target_line)


def locate_in_hunks(hunks: list[Hunk], target_line: int) -> int:
    for hunk in hunks:
        current = hunk.new_start
        for line in hunk.lines:
            if line.kind not in ("add", "context"):
                continue
            if current == target_line:
                return current
            current += 1
    return NOT_ADDRESSABLE
