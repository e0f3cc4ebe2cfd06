"""GitHub pull request review comment transport.

The reconciler only depends on :class:`ReviewClient`. :class:`GhCliReviewClient`
implements it on top of the ``gh`` CLI, which takes care of authentication
(``GH_TOKEN`` / ``GITHUB_TOKEN``) and API host selection.
"""

from __future__ import annotations

import json
import logging
import random
import subprocess
import time
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = ("502", "503", "504")


class GitHubError(RuntimeError):
    """Raised when a GitHub API call fails."""


class CommentPermissionError(GitHubError):
    """Token lacks pull-requests: write permission."""


class TransientGitHubError(GitHubError):
    """GitHub API kept returning a 5xx error after all retries."""


@dataclass(frozen=True, slots=True)
class PullRequestFile:
    """A file changed by the pull request, as GitHub reports it."""

    path: str
    patch: str | None
    status: str = "modified"


class ReviewClient(Protocol):
    """Pull request operations the reconciler needs."""

    def list_pr_files(self) -> list[PullRequestFile]:
        """Return the files changed by the pull request."""

    def list_review_comments(self) -> list[dict[str, Any]]:
        """Return every review comment on the pull request."""

    def create_review_comment(self, *, path: str, line: int, body: str, commit_id: str) -> None:
        """Comment on a line of the right-hand side of the diff."""

    def update_review_comment(self, *, comment_id: int, body: str) -> None:
        """Replace a review comment's body."""

    def delete_review_comment(self, *, comment_id: int) -> None:
        """Delete a review comment."""

    def create_reply(self, *, comment_id: int, body: str) -> None:
        """Reply to a review comment thread."""


class GhCliReviewClient:
    """:class:`ReviewClient` backed by ``gh api``."""

    def __init__(
        self,
        repo: str,
        pr_number: int,
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        self.repo = repo
        self.pr_number = pr_number
        self.max_retries = max_retries
        self.base_delay = base_delay

    def list_pr_files(self) -> list[PullRequestFile]:
        files: list[PullRequestFile] = []
        for item in self._paginate(f"repos/{self.repo}/pulls/{self.pr_number}/files?per_page=100"):
            filename = item.get("filename")
            if not isinstance(filename, str) or not filename.strip():
                continue
            patch = item.get("patch")
            files.append(
                PullRequestFile(
                    path=filename,
                    patch=patch if isinstance(patch, str) else None,
                    status=str(item.get("status") or "modified"),
                )
            )
        return files

    def list_review_comments(self) -> list[dict[str, Any]]:
        return self._paginate(f"repos/{self.repo}/pulls/{self.pr_number}/comments?per_page=100")

    def create_review_comment(self, *, path: str, line: int, body: str, commit_id: str) -> None:
        self._api(
            "POST",
            f"repos/{self.repo}/pulls/{self.pr_number}/comments",
            {"body": body, "commit_id": commit_id, "path": path, "line": line, "side": "RIGHT"},
        )

    def update_review_comment(self, *, comment_id: int, body: str) -> None:
        self._api("PATCH", f"repos/{self.repo}/pulls/comments/{comment_id}", {"body": body})

    def delete_review_comment(self, *, comment_id: int) -> None:
        self._api("DELETE", f"repos/{self.repo}/pulls/comments/{comment_id}")

    def create_reply(self, *, comment_id: int, body: str) -> None:
        self._api(
            "POST",
            f"repos/{self.repo}/pulls/{self.pr_number}/comments/{comment_id}/replies",
            {"body": body},
        )

    def _paginate(self, endpoint: str) -> list[dict[str, Any]]:
        # --paginate without --slurp does not produce valid JSON.
        result = self._run_gh(["api", "--paginate", "--slurp", endpoint])
        try:
            pages = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise GitHubError(f"invalid JSON from {endpoint}: {exc}") from exc
        if not isinstance(pages, list):
            return []
        items: list[dict[str, Any]] = []
        for page in pages:
            if isinstance(page, list):
                items.extend(item for item in page if isinstance(item, dict))
        return items

    def _api(self, method: str, endpoint: str, payload: dict[str, Any] | None = None) -> None:
        args = ["api", "-X", method, endpoint]
        if payload is not None:
            args.extend(["--input", "-"])
        self._run_gh(args, input_text=json.dumps(payload) if payload is not None else None)

    def _run_gh(
        self, args: list[str], *, input_text: str | None = None
    ) -> subprocess.CompletedProcess[str]:
        """Run a gh command, retrying transient 5xx failures with exponential backoff."""
        for attempt in range(self.max_retries):
            try:
                result = subprocess.run(
                    ["gh", *args],
                    input=input_text,
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except FileNotFoundError as exc:
                raise GitHubError("gh CLI not found on PATH") from exc
            except OSError as exc:
                raise GitHubError(f"unable to run gh: {exc}") from exc

            if result.returncode == 0:
                return result

            stderr = (result.stderr or "").strip()
            lowered = stderr.lower()
            if any(s in lowered for s in ("403", "resource not accessible", "insufficient")):
                raise CommentPermissionError(
                    "token lacks pull-requests: write permission "
                    f"(gh {' '.join(args[:4])}): {stderr}"
                )

            if _is_transient_error(lowered):
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2**attempt) + random.uniform(0, 0.5)
                    logger.warning(
                        "GitHub API error (attempt %d/%d), retrying in %.1fs",
                        attempt + 1,
                        self.max_retries,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise TransientGitHubError(
                    f"GitHub API returned transient error after {self.max_retries} attempts: "
                    f"{stderr}"
                )

            raise GitHubError(stderr or f"gh {' '.join(args)} failed")

        raise GitHubError("gh retry loop exited without a result")


def _is_transient_error(stderr: str) -> bool:
    # gh prints "(HTTP 503)"; raw API errors print "HTTP 503".
    return any(f"http {code}" in stderr for code in TRANSIENT_STATUS_CODES)
