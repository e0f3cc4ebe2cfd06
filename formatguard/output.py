"""Output rendering."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import click

from formatguard import __version__
from formatguard.hunks import FormattingHunk
from formatguard.reconcile import ReconcileReport
from formatguard.review import FileResult


def render_human(files: list[FileResult], report: ReconcileReport | None = None) -> str:
    """Render a compact colorized summary."""
    violating = [item for item in files if item.has_violations]
    failed = [item for item in files if item.error is not None]
    if violating:
        headline = click.style(
            f"{len(violating)} of {len(files)} file(s) need formatting", fg="red", bold=True
        )
    else:
        headline = click.style(f"All {len(files)} file(s) are formatted", fg="green", bold=True)
    lines: list[str] = [headline]

    for item in violating:
        lines.append(click.style(f"{item.path}:", bold=True))
        if not item.hunks:
            lines.append("  whitespace at end of file differs")
        for hunk in item.hunks:
            lines.append(f"  line {hunk.anchor_line}: {_summarize(hunk)}")

    if failed:
        lines.append(click.style("Not checked:", fg="yellow", bold=True))
        for item in failed:
            lines.append(f"- {item.path}: {item.error}")

    if report is not None:
        lines.append(click.style("Review comments:", bold=True))
        lines.append(
            f"- created {report.created}, updated {report.updated}, deleted {report.deleted}, "
            f"resolved {report.resolved}, unchanged {report.unchanged}"
        )
        if report.not_addressable:
            lines.append(f"- {report.not_addressable} hunk(s) outside the PR diff were not posted")
        if report.failed_operations:
            lines.append(f"- {report.failed_operations} GitHub operation(s) failed")
        for path in report.skipped_files:
            lines.append(f"- skipped {path}")
    return "\n".join(lines)


def render_json(files: list[FileResult], report: ReconcileReport | None = None) -> str:
    """Render stable JSON output for CI and automation."""
    return json.dumps(build_json_payload(files, report), sort_keys=True)


def build_json_payload(
    files: list[FileResult], report: ReconcileReport | None = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "violations_found": any(item.has_violations for item in files),
        "files": [_serialize_file(item) for item in files],
        "meta": {
            "generated_at": datetime.now(tz=UTC)
            .replace(microsecond=0)
            .isoformat()
            .replace("+00:00", "Z"),
            "version": __version__,
        },
    }
    if report is not None:
        payload["comments"] = report.to_dict()
    return payload


def _serialize_file(item: FileResult) -> dict[str, Any]:
    return {
        "path": item.path,
        "formatted": None if item.error is not None else not item.differs,
        "error": item.error,
        "hunks": [_serialize_hunk(hunk) for hunk in item.hunks],
    }


def _serialize_hunk(hunk: FormattingHunk) -> dict[str, Any]:
    return {
        "anchor_line": hunk.anchor_line,
        "content": hunk.content,
        "original_lines": [hunk.original_line_range.start, hunk.original_line_range.end],
        "new_lines": [hunk.new_line_range.start, hunk.new_line_range.end],
    }


def _summarize(hunk: FormattingHunk) -> str:
    start, end = hunk.original_line_range.start, hunk.original_line_range.end
    if end <= start:
        return f"reformat around original line {start}"
    return f"reformat original lines {start}-{end}"
