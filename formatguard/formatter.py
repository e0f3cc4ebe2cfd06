"""Formatter subprocess helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from subprocess import CalledProcessError, run

logger = logging.getLogger(__name__)


class FormatterError(RuntimeError):
    """Raised when a file cannot be read or the formatter fails on it."""


@dataclass(frozen=True, slots=True)
class FileCheck:
    """Original and formatted contents of one file."""

    path: str
    original: str
    formatted: str

    @property
    def has_violations(self) -> bool:
        return self.original != self.formatted


def format_source(command: list[str], path: str, content: str, *, cwd: Path | None = None) -> str:
    """Pipe ``content`` through the formatter and return its stdout.

    The pipe is binary so that line endings pass through untranslated.
    """
    args = [arg.replace("{path}", path) for arg in command]
    try:
        completed = run(
            args,
            cwd=cwd,
            input=content.encode("utf-8"),
            check=True,
            capture_output=True,
        )
    except FileNotFoundError as exc:
        raise FormatterError(f"formatter executable not found: {args[0]}") from exc
    except CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
        raise FormatterError(stderr or f"{' '.join(args)} exited with {exc.returncode}") from exc

    try:
        return completed.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatterError(f"{args[0]} produced non UTF-8 output for {path}") from exc


def check_file(command: list[str], root: Path, path: str) -> FileCheck:
    """Read ``path`` relative to ``root`` and run the formatter on it."""
    try:
        original = (root / path).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FormatterError(f"unable to read {path}: {exc}") from exc

    formatted = format_source(command, path, original, cwd=root)
    logger.debug("%s: formatter output %s", path, "differs" if formatted != original else "matches")
    return FileCheck(path=path, original=original, formatted=formatted)
