"""Output rendering tests."""

from __future__ import annotations

import json

import click

from formatguard.hunks import FormattingHunk, LineRange
from formatguard.output import render_human, render_json
from formatguard.reconcile import ReconcileReport
from formatguard.review import FileResult


def _hunk(anchor: int, start: int, end: int) -> FormattingHunk:
    return FormattingHunk(
        anchor_line=anchor,
        content="x = 1",
        original_line_range=LineRange(start, end),
        new_line_range=LineRange(start, end),
    )


def test_render_human_lists_violations_and_failures() -> None:
    files = [
        FileResult("src/a.py", hunks=[_hunk(4, 1, 7), _hunk(20, 20, 20)], differs=True),
        FileResult("src/b.py"),
        FileResult("src/c.py", differs=True),
        FileResult("src/d.py", error="formatter exited with 2"),
    ]

    output = click.unstyle(render_human(files))

    assert output.splitlines()[0] == "2 of 4 file(s) need formatting"
    assert "  line 4: reformat original lines 1-7" in output
    assert "  line 20: reformat around original line 20" in output
    assert "  whitespace at end of file differs" in output
    assert "- src/d.py: formatter exited with 2" in output
    assert "src/b.py" not in output
    assert "Review comments:" not in output


def test_render_human_includes_comment_summary() -> None:
    report = ReconcileReport(
        created=2, deleted=1, resolved=1, not_addressable=3, skipped_files=["gen.py"]
    )

    output = click.unstyle(render_human([FileResult("a.py")], report))

    assert "All 1 file(s) are formatted" in output
    assert "- created 2, updated 0, deleted 1, resolved 1, unchanged 0" in output
    assert "- 3 hunk(s) outside the PR diff were not posted" in output
    assert "- skipped gen.py" in output
    assert "failed" not in output


def test_render_json_shape() -> None:
    files = [
        FileResult("a.py", hunks=[_hunk(2, 1, 5)], differs=True),
        FileResult("b.py"),
        FileResult("c.py", error="unable to read c.py"),
    ]

    payload = json.loads(render_json(files, ReconcileReport(created=1)))

    assert payload["violations_found"] is True
    assert [item["formatted"] for item in payload["files"]] == [False, True, None]
    assert payload["files"][0]["hunks"] == [
        {"anchor_line": 2, "content": "x = 1", "original_lines": [1, 5], "new_lines": [1, 5]}
    ]
    assert payload["files"][2]["error"] == "unable to read c.py"
    assert payload["comments"]["created"] == 1
    assert payload["meta"]["generated_at"].endswith("Z")


def test_render_json_without_violations() -> None:
    payload = json.loads(render_json([FileResult("a.py")]))

    assert payload["violations_found"] is False
    assert "comments" not in payload
