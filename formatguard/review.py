"""End-to-end pull request review run."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from formatguard.annotations import collect_annotations
from formatguard.config import AppConfig
from formatguard.formatter import FileCheck, FormatterError, check_file
from formatguard.github import PullRequestFile, ReviewClient
from formatguard.hunks import FormattingHunk, extract_formatting_hunks
from formatguard.reconcile import AnnotationReconciler, ReconcileReport

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FileResult:
    """Formatting state of one checked file."""

    path: str
    hunks: list[FormattingHunk] = field(default_factory=list)
    differs: bool = False
    error: str | None = None

    @property
    def has_violations(self) -> bool:
        # A file can differ only in its trailing newline and yield no hunks.
        return self.error is None and self.differs


@dataclass(slots=True)
class ReviewResult:
    """Outcome of a review run: the verdict input and what was posted."""

    files: list[FileResult]
    report: ReconcileReport | None = None

    @property
    def violation_files(self) -> list[str]:
        return [item.path for item in self.files if item.has_violations]

    @property
    def hunk_count(self) -> int:
        return sum(len(item.hunks) for item in self.files if item.has_violations)


def select_files(
    files: Iterable[PullRequestFile], *, include: list[str], exclude: list[str]
) -> list[PullRequestFile]:
    """Keep non-removed files matching the include globs and none of the excludes."""
    selected: list[PullRequestFile] = []
    for item in files:
        if item.status == "removed":
            continue
        if include and not any(fnmatch.fnmatch(item.path, pattern) for pattern in include):
            continue
        if exclude and any(fnmatch.fnmatch(item.path, pattern) for pattern in exclude):
            continue
        selected.append(item)
    return selected


def check_paths(paths: Iterable[str], *, root: Path, config: AppConfig) -> list[FileResult]:
    """Run the formatter over ``paths`` and extract hunks, one file at a time."""
    results: list[FileResult] = []
    for path in paths:
        try:
            checked: FileCheck = check_file(config.formatter.command, root, path)
        except FormatterError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            results.append(FileResult(path=path, error=str(exc)))
            continue
        hunks = (
            extract_formatting_hunks(checked.original, checked.formatted, path)
            if checked.has_violations
            else []
        )
        if hunks:
            logger.info("%s: %d formatting hunk(s)", path, len(hunks))
        results.append(FileResult(path=path, hunks=hunks, differs=checked.has_violations))
    return results


def run_review(
    client: ReviewClient,
    config: AppConfig,
    *,
    root: Path,
    commit_id: str,
) -> ReviewResult:
    """Check the PR's changed files and bring its review comments up to date."""
    pr_files = client.list_pr_files()
    selected = select_files(pr_files, include=config.include, exclude=config.exclude)
    logger.info("Checking %d of %d changed file(s)", len(selected), len(pr_files))

    results = check_paths((item.path for item in selected), root=root, config=config)
    annotations = collect_annotations(client.list_review_comments(), config.comments.marker)
    logger.debug("Found %d existing formatguard comment(s)", len(annotations))

    reconciler = AnnotationReconciler.from_config(client, config)
    report = reconciler.reconcile(
        {item.path: item.hunks for item in results if item.has_violations},
        pr_files,
        annotations,
        commit_id=commit_id,
        unchecked_paths=[item.path for item in results if item.error is not None],
    )
    return ReviewResult(files=results, report=report)
