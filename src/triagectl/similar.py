"""Decide whether a failed job has already failed the same way elsewhere.

A failure counts as already seen when the same failure occurred on a
different job, commit and branch inside the search window, first on a
commit that is not one of this PR's own (reverted) merge commits, and by
a different author.

Candidates are evaluated strictly in the order the search returns them
(oldest first) and one at a time, so the author lookup, which costs a
GitHub request, only runs for candidates that passed every cheap check.
"""

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from triagectl.classify import (
    DEFAULT_CONFIG,
    ClassifierConfig,
    is_excluded_from_flakiness,
)
from triagectl.jobs import is_same_failure
from triagectl.records import JobRecord
from triagectl.revert import is_failure_from_prev_merge_commit
from triagectl.search import MAX_SIZE, OLDEST_FIRST, FailureSearch, SearchQuery
from triagectl.window import (
    DEFAULT_LOOKBACK_HOURS,
    MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES,
    select_window,
)

logger = logging.getLogger(__name__)

EXCLUDED = "excluded"
NO_RESULTS = "no-results"
REVERT_CONTAMINATED = "revert-contaminated"
EXHAUSTED = "exhausted"
MATCHED = "matched"

# Per-candidate outcomes
_ABORT = "abort"
_SKIP = "skip"
_ACCEPT = "accept"


class CorrelationError(RuntimeError):
    """A collaborator failed, so no verdict could be reached."""


@dataclass(frozen=True)
class Verdict:
    match: JobRecord | None
    reason: str
    inspected: int = 0

    @property
    def found(self) -> bool:
        return self.match is not None

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "reason": self.reason,
            "inspected": self.inspected,
            "match": self.match.to_dict() if self.match is not None else None,
        }


def _is_other_job(job: JobRecord, candidate: JobRecord) -> bool:
    """Only different jobs on a different commit and branch can corroborate."""
    return (
        job.id != candidate.id
        and job.head_sha != candidate.head_sha
        and job.head_branch != candidate.head_branch
    )


class SimilarFailureFinder:
    """Search the failure history for an earlier occurrence of a job's failure.

    merge_commits(job) returns the SHAs the job's PR was ever merged at.
    same_author(job, candidate) and same_failure(job, candidate) compare
    two records. Collaborator exceptions are re-raised as CorrelationError.
    """

    def __init__(
        self,
        search: FailureSearch,
        merge_commits: Callable[[JobRecord], Iterable[str]],
        same_author: Callable[[JobRecord, JobRecord], bool],
        same_failure: Callable[[JobRecord, JobRecord], bool] = is_same_failure,
        config: ClassifierConfig = DEFAULT_CONFIG,
        max_size: int = MAX_SIZE,
        max_search_hours: int = MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES,
    ):
        self.search = search
        self.merge_commits = merge_commits
        self.same_author = same_author
        self.same_failure = same_failure
        self.config = config
        self.max_size = max_size
        self.max_search_hours = max_search_hours

    def find(
        self,
        job: JobRecord,
        base_commit_date: datetime | str | None = None,
        lookback_hours: int = DEFAULT_LOOKBACK_HOURS,
    ) -> Verdict:
        if is_excluded_from_flakiness(job, self.config):
            logger.debug("Job %s (%s) is excluded from flakiness", job.id, job.name)
            return Verdict(match=None, reason=EXCLUDED)

        selection = select_window(
            job, base_commit_date, lookback_hours, self.max_search_hours,
        )
        if not selection.accepted:
            return Verdict(match=None, reason=selection.rejection)

        window = selection.window
        query = SearchQuery(
            failure_captures=tuple(job.failure_captures),
            job_name=job.job_name,
            name=job.name,
            start=window.start,
            end=window.end,
            max_size=self.max_size,
            sort_order=OLDEST_FIRST,
        )
        records = self._call("similar failure search", self.search.query, query)
        if not records:
            logger.debug("No similar failures in window for job %s", job.id)
            return Verdict(match=None, reason=NO_RESULTS)

        merge_commits = set(
            self._call("merge commit lookup", self.merge_commits, job)
        )

        inspected = 0
        for candidate, outcome in self._evaluate(job, records, merge_commits):
            inspected += 1
            if outcome == _ABORT:
                logger.info(
                    "Job %s: failure first seen on merge commit %s of the "
                    "same PR, not flaky",
                    job.id, candidate.head_sha,
                )
                return Verdict(
                    match=None, reason=REVERT_CONTAMINATED, inspected=inspected,
                )
            if outcome == _ACCEPT:
                logger.info(
                    "Job %s: similar failure found in job %s (%s)",
                    job.id, candidate.id, candidate.html_url or candidate.name,
                )
                return Verdict(match=candidate, reason=MATCHED, inspected=inspected)

        logger.debug(
            "Job %s: none of %d candidate(s) matched", job.id, inspected,
        )
        return Verdict(match=None, reason=EXHAUSTED, inspected=inspected)

    def _evaluate(
        self,
        job: JobRecord,
        records: list[JobRecord],
        merge_commits: set[str],
    ) -> Iterator[tuple[JobRecord, str]]:
        """Yield (candidate, outcome) in search order, stopping after an abort."""
        for candidate in records:
            if is_failure_from_prev_merge_commit(candidate, merge_commits):
                yield candidate, _ABORT
                return
            if not _is_other_job(job, candidate):
                yield candidate, _SKIP
                continue
            if not self._call(
                "failure comparison", self.same_failure, job, candidate,
            ):
                yield candidate, _SKIP
                continue
            # Last: costs one request per record without a known author.
            # Same-author failures can't be told apart from a shared cause yet.
            if self._call("author lookup", self.same_author, job, candidate):
                yield candidate, _SKIP
                continue
            yield candidate, _ACCEPT

    @staticmethod
    def _call(what: str, fn, *args):
        try:
            return fn(*args)
        except CorrelationError:
            raise
        except Exception as e:
            raise CorrelationError(f"{what} failed: {e}") from e


def has_similar_failures(
    job: JobRecord,
    finder: SimilarFailureFinder,
    base_commit_date: datetime | str | None = None,
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS,
) -> JobRecord | None:
    """Return the first earlier occurrence of job's failure, or None."""
    return finder.find(job, base_commit_date, lookback_hours).match
