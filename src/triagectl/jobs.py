"""Comparisons between two job records."""

import re
from collections.abc import Callable

from triagectl.records import JobRecord

# "test (default, 1, 3, linux.2xlarge)" -> "test (default)"
_SHARD_SUFFIX_RE = re.compile(r"\(([^,()]+), \d+, \d+, [^()]+\)$")


def remove_job_name_suffix(name: str) -> str:
    """Drop shard numbers and runner type from a job name's config suffix."""
    return _SHARD_SUFFIX_RE.sub(r"(\1)", name.strip())


def _job_identity(record: JobRecord) -> str | None:
    # The display name carries the workflow ("pull / ...", "trunk / ..."),
    # which differs between a PR and trunk run of the same job.
    name = record.job_name or record.name
    return remove_job_name_suffix(name) if name else None


def is_same_failure(job: JobRecord, candidate: JobRecord) -> bool:
    """Return True if both records look like the same failure.

    Shards of the same job count as the same job. Failure context is only
    compared when both records have one.
    """
    job_identity = _job_identity(job)
    if not job_identity or job_identity != _job_identity(candidate):
        return False
    if not job.failure_captures or not candidate.failure_captures:
        return False
    if job.failure_captures != candidate.failure_captures:
        return False

    if job.failure_context and candidate.failure_context:
        return job.failure_context == candidate.failure_context
    return True


def is_same_author(
    job: JobRecord,
    candidate: JobRecord,
    resolve_email: Callable[[JobRecord], str | None],
) -> bool:
    """Return True if both records were authored by the same person.

    Missing author emails are resolved once per record and cached on it.
    Unknown authors never count as the same.
    """
    for record in (job, candidate):
        if not record.author_email:
            record.author_email = resolve_email(record)

    if not job.author_email or not candidate.author_email:
        return False
    return job.author_email.lower() == candidate.author_email.lower()
