"""Keep tool-owned review comments in step with the current formatting violations.

Every run compares what should be on the pull request (one suggestion per
diff-visible formatting hunk) with what is there (unresolved tool-owned
annotations) and issues only the difference:

* an annotation whose ``(line, body)`` no longer matches a wanted suggestion is
  deleted, or edited in place under the ``update`` policy;
* a wanted suggestion with no exact match is created;
* annotations on files that are now clean are answered with a reply and left
  in place, so the review thread keeps its history.

Running twice against an unchanged pull request issues no calls the second time.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field

from formatguard.annotations import (
    DEFAULT_MARKER,
    DEFAULT_RESOLVED_REPLY,
    Annotation,
    render_annotation_body,
)
from formatguard.config import AppConfig
from formatguard.coordinates import NOT_ADDRESSABLE, locate_in_hunks
from formatguard.diff_parser import parse_patch
from formatguard.github import GitHubError, PullRequestFile, ReviewClient
from formatguard.hunks import FormattingHunk

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DesiredAnnotation:
    """A suggestion that should exist on the pull request."""

    line: int
    body: str


@dataclass(slots=True)
class FileActions:
    """Planned mutations for one file."""

    path: str
    keep: list[Annotation] = field(default_factory=list)
    delete: list[Annotation] = field(default_factory=list)
    update: list[tuple[Annotation, DesiredAnnotation]] = field(default_factory=list)
    create: list[DesiredAnnotation] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not (self.delete or self.update or self.create)


@dataclass(slots=True)
class ReconcileReport:
    """What a reconciliation pass did."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    resolved: int = 0
    unchanged: int = 0
    not_addressable: int = 0
    failed_operations: int = 0
    skipped_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "resolved": self.resolved,
            "unchanged": self.unchanged,
            "not_addressable": self.not_addressable,
            "failed_operations": self.failed_operations,
            "skipped_files": list(self.skipped_files),
        }


def plan_file_actions(
    path: str,
    desired: Iterable[DesiredAnnotation],
    existing: Iterable[Annotation],
    *,
    on_change: str = "recreate",
) -> FileActions:
    """Diff wanted suggestions against the file's unresolved annotations."""
    wanted: dict[int, DesiredAnnotation] = {}
    for item in desired:
        wanted.setdefault(item.line, item)

    actions = FileActions(path=path)
    matched: set[int] = set()
    stale: list[Annotation] = []
    for annotation in existing:
        if annotation.path != path or annotation.resolved:
            continue
        target = wanted.get(annotation.line)
        if target is not None and target.body == annotation.body and target.line not in matched:
            matched.add(target.line)
            actions.keep.append(annotation)
        else:
            stale.append(annotation)

    missing = [item for line, item in wanted.items() if line not in matched]
    if on_change == "update":
        for item in missing:
            reusable = next((a for a in stale if a.line == item.line), None)
            if reusable is None:
                actions.create.append(item)
                continue
            stale.remove(reusable)
            actions.update.append((reusable, item))
    else:
        actions.create.extend(missing)

    actions.delete.extend(stale)
    return actions


class AnnotationReconciler:
    """Apply planned annotation changes through a :class:`ReviewClient`."""

    def __init__(
        self,
        client: ReviewClient,
        *,
        fix_command: list[str],
        marker: str = DEFAULT_MARKER,
        resolved_reply: str = DEFAULT_RESOLVED_REPLY,
        on_change: str = "recreate",
    ) -> None:
        self.client = client
        self.fix_command = fix_command
        self.marker = marker
        self.resolved_reply = resolved_reply
        self.on_change = on_change

    @classmethod
    def from_config(cls, client: ReviewClient, config: AppConfig) -> AnnotationReconciler:
        return cls(
            client,
            fix_command=config.formatter.fix_command,
            marker=config.comments.marker,
            resolved_reply=config.comments.resolved_reply,
            on_change=config.comments.on_change,
        )

    def reconcile(
        self,
        violations: Mapping[str, list[FormattingHunk]],
        pr_files: Iterable[PullRequestFile],
        annotations: list[Annotation],
        *,
        commit_id: str,
        unchecked_paths: Collection[str] = (),
    ) -> ReconcileReport:
        """Reconcile every violating file, then resolve annotations on clean files.

        ``unchecked_paths`` are files whose state is unknown this run (they
        could not be read or formatted); their annotations are left untouched.
        """
        report = ReconcileReport()
        patches = {item.path: item.patch for item in pr_files}

        for path, hunks in violations.items():
            if not hunks:
                continue
            if path not in patches or not patches[path]:
                logger.warning("Cannot annotate %s: file not found in PR diff", path)
                report.skipped_files.append(path)
                continue
            existing = [a for a in annotations if a.path == path]
            self.reconcile_file(path, hunks, patches[path] or "", existing, commit_id, report)

        skip = set(violations) | set(unchecked_paths)
        self.resolve_fixed(annotations, skip, report)
        return report

    def reconcile_file(
        self,
        path: str,
        hunks: list[FormattingHunk],
        patch: str,
        existing: list[Annotation],
        commit_id: str,
        report: ReconcileReport,
    ) -> None:
        try:
            pr_hunks = parse_patch(patch)
        except ValueError as exc:
            logger.warning("Cannot annotate %s: %s", path, exc)
            report.skipped_files.append(path)
            return

        desired: list[DesiredAnnotation] = []
        for hunk in hunks:
            line = locate_in_hunks(pr_hunks, hunk.anchor_line)
            if line == NOT_ADDRESSABLE:
                logger.debug(
                    "Skipping hunk at line %d in %s: not in PR diff", hunk.anchor_line, path
                )
                report.not_addressable += 1
                continue
            body = render_annotation_body(
                hunk.content, path, marker=self.marker, fix_command=self.fix_command
            )
            desired.append(DesiredAnnotation(line=line, body=body))

        actions = plan_file_actions(path, desired, existing, on_change=self.on_change)
        report.unchanged += len(actions.keep)
        if actions.is_noop:
            logger.debug("%s: %d annotation(s) already current", path, len(actions.keep))
            return

        logger.info(
            "%s: deleting %d, updating %d, creating %d annotation(s)",
            path,
            len(actions.delete),
            len(actions.update),
            len(actions.create),
        )
        for annotation in actions.delete:
            try:
                self.client.delete_review_comment(comment_id=annotation.id)
            except GitHubError as exc:
                logger.warning("Failed to delete comment %d: %s", annotation.id, exc)
                report.failed_operations += 1
            else:
                report.deleted += 1

        for annotation, item in actions.update:
            try:
                self.client.update_review_comment(comment_id=annotation.id, body=item.body)
            except GitHubError as exc:
                logger.warning("Failed to update comment %d: %s", annotation.id, exc)
                report.failed_operations += 1
            else:
                report.updated += 1

        for item in actions.create:
            try:
                self.client.create_review_comment(
                    path=path, line=item.line, body=item.body, commit_id=commit_id
                )
            except GitHubError as exc:
                logger.warning("Failed to create comment at %s:%d: %s", path, item.line, exc)
                report.failed_operations += 1
            else:
                report.created += 1

    def resolve_fixed(
        self,
        annotations: list[Annotation],
        skip_paths: Collection[str],
        report: ReconcileReport,
    ) -> None:
        """Reply to unresolved annotations on files with no remaining violations."""
        to_resolve = [a for a in annotations if not a.resolved and a.path not in skip_paths]
        if not to_resolve:
            logger.debug("No comments to resolve")
            return

        logger.info("Resolving %d comment(s) for fixed files", len(to_resolve))
        for annotation in to_resolve:
            try:
                self.client.create_reply(comment_id=annotation.id, body=self.resolved_reply)
            except GitHubError as exc:
                logger.warning("Failed to resolve comment %d: %s", annotation.id, exc)
                report.failed_operations += 1
            else:
                report.resolved += 1
