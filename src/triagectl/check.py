#!/usr/bin/env python3
"""Check a failed job against the failure history and write a verdict.

Loads the job record from JSON, searches for an earlier occurrence of
the same failure, and writes the verdict as JSON.
"""

import json
import logging

from triagectl.config import Settings, load_settings
from triagectl.github import PullRequestHistory
from triagectl.records import load_records, parse_timestamp
from triagectl.search import InMemoryFailureSearch, OpenSearchFailureSearch
from triagectl.similar import CorrelationError, SimilarFailureFinder

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1
STATUS_NO_MATCH = 20


def load_job(job_path: str):
    """Load exactly one job record from a JSON file."""
    with open(job_path) as f:
        records = load_records(json.load(f))
    if len(records) != 1:
        raise ValueError(
            f"Expected one job record in {job_path}, found {len(records)}"
        )
    return records[0]


def build_search(settings: Settings, history_path: str | None = None):
    """Use the local history file when given, otherwise the search store."""
    if history_path:
        with open(history_path) as f:
            records = load_records(json.load(f))
        logger.info("Loaded %d historical records from %s",
                    len(records), history_path)
        return InMemoryFailureSearch(records)
    return OpenSearchFailureSearch(settings.search_url, settings.search_index)


def write_verdict(verdict: dict, output_path: str | None) -> None:
    text = json.dumps(verdict, indent=2)
    if output_path:
        with open(output_path, "w") as f:
            f.write(text + "\n")
        logger.info("Wrote %s", output_path)
    else:
        print(text)


def run(
    repo: str,
    pr_number: int,
    job_path: str,
    base_commit_date: str | None = None,
    lookback_hours: int | None = None,
    history_path: str | None = None,
    output: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Run one similar-failure check. Returns status code."""
    try:
        settings = settings or load_settings()
        job = load_job(job_path)
        base = parse_timestamp(base_commit_date)
        search = build_search(settings, history_path)
        history = PullRequestHistory(repo, pr_number)
    except (OSError, ValueError, TypeError) as e:
        logger.error("%s", e)
        return STATUS_ERROR

    finder = SimilarFailureFinder(
        search,
        merge_commits=history.merge_commits,
        same_author=history.same_author,
        config=settings.classifier_config(),
        max_search_hours=settings.max_search_hours,
    )

    lookback = lookback_hours if lookback_hours is not None else settings.lookback_hours
    logger.info(
        "Checking job %s (%s) on %s#%d, lookback %d hours...",
        job.id, job.name, repo, pr_number, lookback,
    )

    try:
        verdict = finder.find(job, base, lookback)
    except CorrelationError as e:
        logger.error("Similar failure check failed: %s", e)
        return STATUS_ERROR

    write_verdict(verdict.to_dict(), output)

    if not verdict.found:
        logger.info("No similar failure found (%s)", verdict.reason)
        return STATUS_NO_MATCH
    return STATUS_OK
