"""Tests for running the formatter subprocess."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from formatguard.formatter import FormatterError, check_file, format_source

COLLAPSE_SPACES = [
    sys.executable,
    "-c",
    "import sys; sys.stdout.write(sys.stdin.read().replace('  ', ' '))",
]


def test_format_source_pipes_content_through_command() -> None:
    assert format_source(COLLAPSE_SPACES, "a.py", "x  =  1\n") == "x = 1\n"


def test_path_placeholder_is_substituted() -> None:
    echo_path = [sys.executable, "-c", "import sys; sys.stdout.write(sys.argv[1])", "{path}"]
    assert format_source(echo_path, "src/a.py", "") == "src/a.py"


def test_nonzero_exit_raises_with_stderr() -> None:
    failing = [sys.executable, "-c", "import sys; sys.stderr.write('cannot parse'); sys.exit(2)"]
    with pytest.raises(FormatterError, match="cannot parse"):
        format_source(failing, "a.py", "x")


def test_missing_executable_raises() -> None:
    with pytest.raises(FormatterError, match="not found"):
        format_source(["formatguard-no-such-formatter"], "a.py", "x")


def test_check_file_reports_violation(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.py").write_text("x  = 1\n", encoding="utf-8")

    checked = check_file(COLLAPSE_SPACES, tmp_path, "src/a.py")

    assert checked.has_violations is True
    assert checked.formatted == "x = 1\n"


def test_check_file_clean(tmp_path: Path) -> None:
    (tmp_path / "a.py").write_text("x = 1\n", encoding="utf-8")
    assert check_file(COLLAPSE_SPACES, tmp_path, "a.py").has_violations is False


def test_check_file_unreadable(tmp_path: Path) -> None:
    with pytest.raises(FormatterError, match="unable to read"):
        check_file(COLLAPSE_SPACES, tmp_path, "missing.py")


def test_check_file_preserves_line_endings(tmp_path: Path) -> None:
    (tmp_path / "a.py").write_bytes(b"x = 1\ry = 2\r\n\x0c\n")
    passthrough = [
        sys.executable,
        "-c",
        "import sys; sys.stdout.buffer.write(sys.stdin.buffer.read())",
    ]

    checked = check_file(passthrough, tmp_path, "a.py")

    assert checked.original == "x = 1\ry = 2\r\n\x0c\n"
    assert checked.has_violations is False
