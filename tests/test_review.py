"""End-to-end review runs against an in-memory pull request."""

from __future__ import annotations

import sys
from pathlib import Path

from formatguard.annotations import collect_annotations
from formatguard.config import AppConfig, FormatterConfig
from formatguard.diff_parser import split_lines
from formatguard.github import PullRequestFile
from formatguard.review import run_review, select_files
from tests.helpers_github import FakeReviewClient

COLLAPSE_SPACES = [
    sys.executable,
    "-c",
    "import sys; sys.stdout.write(sys.stdin.read().replace('  ', ' '))",
]


def _config() -> AppConfig:
    return AppConfig(
        formatter=FormatterConfig(command=COLLAPSE_SPACES, fix_command=["fmt", "{path}"])
    )


def _new_file_patch(content: str) -> str:
    lines = split_lines(content)
    return "\n".join([f"@@ -0,0 +1,{len(lines)} @@", *(f"+{line}" for line in lines)])


def test_select_files_filters_status_and_globs() -> None:
    files = [
        PullRequestFile("src/a.py", "", "modified"),
        PullRequestFile("src/gone.py", None, "removed"),
        PullRequestFile("docs/readme.md", "", "added"),
        PullRequestFile("build/gen.py", "", "added"),
    ]

    selected = select_files(files, include=["*.py"], exclude=["build/*"])

    assert [item.path for item in selected] == ["src/a.py"]


def test_review_posts_then_resolves_after_fix(tmp_path: Path) -> None:
    content = "a = 1\nb  = 2\nc = 3\n"
    (tmp_path / "mod.py").write_text(content, encoding="utf-8")
    client = FakeReviewClient([PullRequestFile("mod.py", _new_file_patch(content), "added")])

    first = run_review(client, _config(), root=tmp_path, commit_id="sha1")

    assert first.violation_files == ["mod.py"]
    assert first.hunk_count == 1
    assert first.report is not None and first.report.created == 1
    owned = collect_annotations(client.comments, "<!-- formatguard -->")
    assert [(a.path, a.line) for a in owned] == [("mod.py", 2)]
    assert "b = 2" in owned[0].body

    again = run_review(client, _config(), root=tmp_path, commit_id="sha1")
    assert again.report is not None and again.report.unchanged == 1
    assert again.report.created == again.report.deleted == 0

    fixed = "a = 1\nb = 2\nc = 3\n"
    (tmp_path / "mod.py").write_text(fixed, encoding="utf-8")
    client.files = [PullRequestFile("mod.py", _new_file_patch(fixed), "added")]
    client.calls.clear()

    final = run_review(client, _config(), root=tmp_path, commit_id="sha2")

    assert final.violation_files == []
    assert client.mutations() == [("reply", owned[0].id)]


def test_unreadable_file_is_reported_and_skipped(tmp_path: Path) -> None:
    client = FakeReviewClient([PullRequestFile("missing.py", "@@ -0,0 +1 @@\n+x", "added")])

    result = run_review(client, _config(), root=tmp_path, commit_id="sha1")

    assert result.files[0].error is not None
    assert result.violation_files == []
    assert client.mutations() == []


def test_removed_trailing_blank_line_is_suggested(tmp_path: Path) -> None:
    (tmp_path / "a.py").write_text("x = 1\n  \n", encoding="utf-8")
    strip_end = [
        sys.executable,
        "-c",
        "import sys; sys.stdout.write(sys.stdin.read().rstrip() + '\\n')",
    ]
    config = AppConfig(formatter=FormatterConfig(command=strip_end, fix_command=["fmt"]))
    client = FakeReviewClient([PullRequestFile("a.py", "@@ -0,0 +1,2 @@\n+x = 1\n+  ", "added")])

    result = run_review(client, config, root=tmp_path, commit_id="sha1")

    assert result.violation_files == ["a.py"]
    assert result.report is not None and result.report.created == 1


def test_form_feed_file_is_annotated_on_the_git_line(tmp_path: Path) -> None:
    content = "a = 1\n\x0c\nb  = 2\n"
    (tmp_path / "m.py").write_text(content, encoding="utf-8")
    client = FakeReviewClient([PullRequestFile("m.py", _new_file_patch(content), "added")])

    result = run_review(client, _config(), root=tmp_path, commit_id="sha1")

    assert result.report is not None and result.report.not_addressable == 0
    assert client.mutations() == [("create", ("m.py", 3))]
