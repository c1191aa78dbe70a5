"""Centralized GitHub client using PyGithub.

All GitHub API calls go through this module. Every call here is
read-only.
"""

import functools
import logging
import os
from collections.abc import Iterable
from typing import Any

from github import Github

from triagectl.jobs import is_same_author
from triagectl.records import JobRecord

logger = logging.getLogger(__name__)

# Issue events whose commit_id is a merge point of the PR. A PR that was
# reverted and relanded has more than one.
_MERGE_EVENTS = frozenset({"merged", "closed"})


@functools.lru_cache(maxsize=1)
def get_client() -> Github:
    """Create a Github client from GITHUB_TOKEN or GH_TOKEN env var.

    Cached for the lifetime of the process since the token comes from
    environment variables which don't change during a run.
    """
    return Github(_get_token())


def _get_token() -> str:
    """Return the GitHub token from environment."""
    token = os.environ.get("GITHUB_TOKEN") or os.environ.get("GH_TOKEN")
    if not token:
        raise RuntimeError(
            "GitHub token not found. Set GITHUB_TOKEN or GH_TOKEN environment variable."
        )
    return token


def _validate_repo(repo_slug: str) -> None:
    """Validate that repo_slug is in 'owner/name' format."""
    if not repo_slug or repo_slug.count("/") != 1:
        raise ValueError(
            f"Invalid repo format: '{repo_slug}'. Expected 'owner/name'."
        )


def _check_rate_limit(client: Github) -> None:
    """Log a warning if the GitHub API rate limit is running low."""
    try:
        rate = client.get_rate_limit().core
    except Exception as e:
        logger.debug("Could not read GitHub rate limit: %s", e)
        return
    if rate.remaining < 50:
        logger.warning(
            "GitHub API rate limit low: %d/%d remaining, resets at %s",
            rate.remaining, rate.limit, rate.reset,
        )


# ---------------------------------------------------------------------------
# Cached lookups
# ---------------------------------------------------------------------------

_repo_cache: dict[tuple, Any] = {}


def _cached(key: tuple, fn):
    """Return cached result or call fn(), cache it, and return it."""
    if key in _repo_cache:
        return _repo_cache[key]
    result = fn()
    _repo_cache[key] = result
    return result


def get_commit_author_email(repo_slug: str, sha: str) -> str | None:
    """Return the author email of a commit. Cached by (repo, sha)."""
    def _fetch():
        _validate_repo(repo_slug)
        client = get_client()
        commit = client.get_repo(repo_slug).get_commit(sha)
        author = commit.commit.author
        return author.email if author is not None else None

    return _cached(("author", repo_slug, sha), _fetch)


def get_pr_merge_commits(repo_slug: str, pr_number: int) -> set[str]:
    """Return the SHAs of every commit that merged (or closed) the PR.

    Includes superseded merge commits from revert/reland cycles.
    """
    _validate_repo(repo_slug)
    client = get_client()
    issue = client.get_repo(repo_slug).get_issue(pr_number)

    commits = set()
    for event in issue.get_events():
        if event.event in _MERGE_EVENTS and event.commit_id:
            commits.add(event.commit_id)

    _check_rate_limit(client)
    logger.debug("PR #%d has %d merge commit(s)", pr_number, len(commits))
    return commits


def fetch_issue_labels(repo_slug: str, number: int) -> list[str]:
    """Return the label names on an issue or PR."""
    _validate_repo(repo_slug)
    client = get_client()
    issue = client.get_repo(repo_slug).get_issue(number)
    return [label.name for label in issue.labels]


class PullRequestHistory:
    """GitHub-backed merge-commit and author lookups for one PR."""

    def __init__(self, repo_slug: str, pr_number: int):
        _validate_repo(repo_slug)
        self.repo_slug = repo_slug
        self.pr_number = pr_number

    def merge_commits(self, job: JobRecord) -> Iterable[str]:
        return get_pr_merge_commits(self.repo_slug, self.pr_number)

    def author_email(self, job: JobRecord) -> str | None:
        if not job.head_sha:
            return None
        return get_commit_author_email(self.repo_slug, job.head_sha)

    def same_author(self, job: JobRecord, candidate: JobRecord) -> bool:
        return is_same_author(job, candidate, self.author_email)
