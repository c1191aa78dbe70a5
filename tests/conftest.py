"""Shared fixtures and helpers for triagectl tests."""

from triagectl.records import JobRecord


def make_job(**overrides):
    """Build a failed workflow JobRecord with sensible defaults.

    Accepts the same keys as JobRecord.from_dict (snake_case or the
    search index's camelCase names).
    """
    data = {
        "id": "1",
        "workflow_id": "100",
        "job_name": "linux-jammy-py3.10 / test (default, 1, 3, linux.2xlarge)",
        "name": "pull / linux-jammy-py3.10 / test (default, 1, 3, linux.2xlarge)",
        "conclusion": "failure",
        "head_sha": "aaa",
        "head_branch": "pr-1",
        "completed_at": "2024-01-10T01:00:00Z",
        "head_sha_timestamp": "2024-01-10T00:00:00Z",
        "failure_captures": ["RuntimeError: X"],
        "failure_lines": ["RuntimeError: X"],
        "runner_name": "i-0123456789",
        "author_email": "alice@example.com",
    }
    data.update(overrides)
    return JobRecord.from_dict(data)


def make_candidate(**overrides):
    """Build a historical trunk failure matching make_job()'s failure."""
    data = {
        "id": "2",
        "head_sha": "bbb",
        "head_branch": "main",
        "completed_at": "2024-01-09T12:30:00Z",
        "head_sha_timestamp": "2024-01-09T12:00:00Z",
        "job_name": "linux-jammy-py3.10 / test (default, 2, 3, linux.2xlarge)",
        "name": "trunk / linux-jammy-py3.10 / test (default, 2, 3, linux.2xlarge)",
        "author_email": "bob@example.com",
    }
    data.update(overrides)
    return make_job(**data)


class FakeSearch:
    """FailureSearch returning canned records and recording queries."""

    def __init__(self, records=None, error=None):
        self.records = list(records or [])
        self.error = error
        self.queries = []

    def query(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.records)


class FakeHistory:
    """Merge-commit and author collaborators that record their calls."""

    def __init__(self, merge_commits=(), error=None):
        self.commits = set(merge_commits)
        self.error = error
        self.merge_commit_calls = 0
        self.author_calls = []

    def merge_commits(self, job):
        self.merge_commit_calls += 1
        if self.error is not None:
            raise self.error
        return self.commits

    def same_author(self, job, candidate):
        self.author_calls.append(candidate.id)
        return (job.author_email or "").lower() == (
            candidate.author_email or ""
        ).lower()


# Sample data constants

SAMPLE_SEARCH_HIT = {
    "_id": "9001",
    "_source": {
        "workflowId": 555,
        "id": 9001,
        "jobName": "linux-jammy-py3.10 / test (default, 2, 3, linux.2xlarge)",
        "name": "trunk / linux-jammy-py3.10 / test (default, 2, 3, linux.2xlarge)",
        "conclusion": "failure",
        "time": "2024-01-09T12:30:00Z",
        "htmlUrl": "https://github.com/org/repo/actions/runs/1/job/9001",
        "sha": "bbb",
        "branch": "main",
        "failureCaptures": ["RuntimeError: X"],
        "failureLines": ["RuntimeError: X"],
        "failureContext": None,
        "authorEmail": "",
    },
}
