"""Tests for unified diff parsing."""

import pytest

from formatguard.diff_parser import parse_patch, split_lines


def test_parse_github_patch_without_file_headers() -> None:
    patch = "\n".join(
        [
            "@@ -1,3 +1,4 @@",
            " import os",
            '-print("old")',
            '+print("new")',
            '+print("more")',
            " done()",
        ]
    )
    hunks = parse_patch(patch)
    assert len(hunks) == 1

    hunk = hunks[0]
    assert (hunk.old_start, hunk.old_count, hunk.new_start, hunk.new_count) == (1, 3, 1, 4)
    assert [line.kind for line in hunk.lines] == ["context", "delete", "add", "add", "context"]

    deleted = hunk.lines[1]
    assert deleted.content == 'print("old")'
    assert deleted.old_lineno == 2
    assert deleted.new_lineno is None

    added = hunk.lines[2]
    assert added.old_lineno is None
    assert added.new_lineno == 2
    assert hunk.lines[4].new_lineno == 4


def test_parse_skips_file_headers() -> None:
    diff_text = "\n".join(
        [
            "diff --git a/foo.txt b/foo.txt",
            "index 1234567..89abcde 100644",
            "--- a/foo.txt",
            "+++ b/foo.txt",
            "@@ -5 +5 @@",
            "-old",
            "+new",
        ]
    )
    hunks = parse_patch(diff_text)
    assert len(hunks) == 1
    assert (hunks[0].old_start, hunks[0].old_count, hunks[0].new_start, hunks[0].new_count) == (
        5,
        1,
        5,
        1,
    )
    assert [line.kind for line in hunks[0].lines] == ["delete", "add"]


def test_deleted_line_starting_with_dashes_is_not_a_header() -> None:
    hunks = parse_patch("@@ -1,2 +1,1 @@\n--- separator\n keep\n")
    assert [line.kind for line in hunks[0].lines] == ["delete", "context"]
    assert hunks[0].lines[0].content == "-- separator"


def test_multiple_hunks_track_their_own_numbering() -> None:
    hunks = parse_patch("@@ -1,2 +1,2 @@\n a\n+b\n@@ -10 +20 @@\n c\n")
    assert len(hunks) == 2
    assert hunks[1].lines[0].new_lineno == 20
    assert hunks[1].lines[0].old_lineno == 10


def test_no_newline_marker_is_meta() -> None:
    hunks = parse_patch("@@ -1 +1 @@\n-old\n+new\n\\ No newline at end of file\n")
    assert [line.kind for line in hunks[0].lines] == ["delete", "add", "meta"]
    assert hunks[0].lines[2].content == "No newline at end of file"


def test_change_blocks_split_on_context() -> None:
    hunk = parse_patch("@@ -1,5 +1,5 @@\n A\n-B\n+X\n C\n-D\n+Y\n E\n")[0]
    assert hunk.change_blocks() == [(1, 2), (4, 5)]


def test_change_blocks_empty_for_context_only_hunk() -> None:
    hunk = parse_patch("@@ -1,2 +1,2 @@\n a\n b\n")[0]
    assert hunk.change_blocks() == []


def test_empty_patch_has_no_hunks() -> None:
    assert parse_patch("") == []
    assert parse_patch(None) == []


def test_invalid_hunk_header_raises() -> None:
    with pytest.raises(ValueError, match="Invalid hunk header"):
        parse_patch("\n".join(["--- a/foo.txt", "+++ b/foo.txt", "@@ -x +1 @@", "-old", "+new"]))


def test_split_lines_breaks_on_newline_only() -> None:
    assert split_lines("a\x0cb\rc\n\nd\u2028e\n") == ["a\x0cb\rc", "", "d\u2028e"]
    assert split_lines("no newline") == ["no newline"]
    assert split_lines("") == []


def test_form_feed_and_carriage_return_stay_inside_their_lines() -> None:
    hunks = parse_patch("@@ -0,0 +1,3 @@\n+a = 1\n+\x0c\n+b = 1\rc  = 2")

    added = [(line.new_lineno, line.content) for line in hunks[0].lines]
    assert added == [(1, "a = 1"), (2, "\x0c"), (3, "b = 1\rc  = 2")]
