"""Revert guard.

A PR that broke trunk is reverted and relanded. Its legit failures could
then find "similar" failures on trunk that were caused by its own earlier
merge commit. A failure first seen on one of those merge commits is not
independent evidence of flakiness.
"""

from collections.abc import Iterable

from triagectl.records import JobRecord


def is_failure_from_prev_merge_commit(
    candidate: JobRecord, merge_commits: Iterable[str],
) -> bool:
    """Return True if candidate ran on one of the subject PR's merge commits."""
    if not candidate.head_sha:
        return False
    return candidate.head_sha in set(merge_commits)
