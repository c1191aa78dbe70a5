#!/usr/bin/env python3
"""Failure classifier predicates for a single job record.

An infra flaky job is a failed job without any failure line and runner.
It shows up as an empty job without any logs on GitHub; the failure can
only be seen in the workflow summary tab.

Only records with a workflow ID are workflow jobs. Workflow runs never
match the job-level predicates, so a workflow that GitHub failed to
start is not waved through as flaky.
"""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from triagectl.records import JobRecord, load_records

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1

# Lint-style jobs are deterministic enough that flakiness detection on
# them produces more noise than signal.
EXCLUDED_FROM_FLAKINESS = (
    "lint",
    "linux-docs",
    "ghstack-mergeability-check",
    "backwards_compat",
)

# Job name -> labels that suppress its failures on a PR.
SUPPRESSED_JOB_BY_LABELS = MappingProxyType({
    "bc_linter": ("suppress-bc-linter", "suppress-api-compatibility-check"),
})


@dataclass(frozen=True)
class ClassifierConfig:
    excluded_from_flakiness: tuple[str, ...] = EXCLUDED_FROM_FLAKINESS
    suppressed_job_by_labels: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: SUPPRESSED_JOB_BY_LABELS,
    )


DEFAULT_CONFIG = ClassifierConfig()


def is_infra_flaky(job: JobRecord) -> bool:
    """Return True for a failed workflow job with no failure lines and no runner."""
    return (
        job.conclusion == "failure"
        and job.is_workflow_job
        and not job.has_failure_lines
        and not job.runner_name
    )


def is_log_classifier_failed(
    job: JobRecord, has_log: Callable[[JobRecord], bool],
) -> bool:
    """Return True when a failed job has no classifier output or no raw log.

    Covers both a missing log in the artifact store and the log classifier
    never being triggered. has_log is only called for failed workflow jobs.
    """
    if not job.is_workflow_job:
        return False
    if job.conclusion != "failure":
        return False
    if not job.has_failure_lines:
        return True
    return not has_log(job)


def is_excluded_from_flakiness(
    job: JobRecord, config: ClassifierConfig = DEFAULT_CONFIG,
) -> bool:
    if not job.name:
        return False
    name = job.name.lower()
    return any(exclude.lower() in name for exclude in config.excluded_from_flakiness)


def get_suppressed_labels(
    job: JobRecord,
    labels: list[str],
    config: ClassifierConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Return the PR labels that suppress failures of this job."""
    if not job.job_name or job.job_name not in config.suppressed_job_by_labels:
        return []
    present = set(labels)
    return [
        label for label in config.suppressed_job_by_labels[job.job_name]
        if label in present
    ]


def classify(
    job: JobRecord,
    has_log: Callable[[JobRecord], bool] | None = None,
    config: ClassifierConfig = DEFAULT_CONFIG,
) -> dict:
    """Evaluate every predicate for a job.

    With has_log=None the log artifact is assumed to exist, so only the
    failure lines decide the log-classifier check.
    """
    return {
        "id": job.id,
        "name": job.name,
        "infra_flaky": is_infra_flaky(job),
        "log_classifier_failed": is_log_classifier_failed(
            job, has_log if has_log is not None else lambda _: True,
        ),
        "excluded_from_flakiness": is_excluded_from_flakiness(job, config),
    }


def run(
    job_path: str,
    check_log: bool = True,
    config: ClassifierConfig = DEFAULT_CONFIG,
    log_url_template: str | None = None,
) -> int:
    """Print predicate results for each record in job_path. Returns status code."""
    from triagectl.artifacts import DEFAULT_LOG_URL_TEMPLATE, has_log

    try:
        with open(job_path) as f:
            records = load_records(json.load(f))
    except (OSError, ValueError, TypeError) as e:
        logger.error("Failed to load job records from %s: %s", job_path, e)
        return STATUS_ERROR

    template = log_url_template or DEFAULT_LOG_URL_TEMPLATE
    has_log_fn = (
        (lambda job: has_log(job, url_template=template)) if check_log else None
    )

    results = []
    try:
        for job in records:
            results.append(classify(job, has_log_fn, config))
    except RuntimeError as e:
        logger.error("Log artifact check failed: %s", e)
        return STATUS_ERROR

    print(json.dumps(results if len(results) != 1 else results[0], indent=2))
    return STATUS_OK
