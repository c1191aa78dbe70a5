"""Normalized job records.

Search hits, GitHub payloads and CLI input files all come through
JobRecord.from_dict. Sentinel timestamps ("", "0") become None when a
record is built, however it is built. Everything downstream treats None
as absent.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

# Values that mean "no timestamp" in the search store.
_MISSING_TIMESTAMPS = (None, "", "0", 0)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns None for the missing-value sentinels. Naive datetimes are
    assumed to be UTC.
    """
    if value in _MISSING_TIMESTAMPS:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text or text == "0":
            return None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: '{value}'") from e
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _optional_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None]


@dataclass
class JobRecord:
    """One executed CI job (or workflow run, when workflow_id is None)."""

    id: str
    workflow_id: str | None = None
    job_name: str | None = None
    name: str | None = None
    conclusion: str | None = None
    head_sha: str | None = None
    head_branch: str | None = None
    completed_at: datetime | None = None
    head_sha_timestamp: datetime | None = None
    failure_captures: list[str] = field(default_factory=list)
    failure_lines: list[str] | None = None
    failure_context: list[str] | None = None
    runner_name: str | None = None
    author_email: str | None = None
    html_url: str | None = None

    def __post_init__(self):
        self.completed_at = parse_timestamp(self.completed_at)
        self.head_sha_timestamp = parse_timestamp(self.head_sha_timestamp)

    @property
    def is_workflow_job(self) -> bool:
        return self.workflow_id is not None

    @property
    def has_failure_lines(self) -> bool:
        return bool(self.failure_lines) and "".join(self.failure_lines) != ""

    @classmethod
    def from_dict(cls, data: dict, default_id: Any = None) -> "JobRecord":
        """Build a record from a snake_case or camelCase mapping.

        Accepts the field names used by the failed-jobs search index
        (sha, branch, time, failureCaptures, ...) as well as the
        snake_case names written by to_dict.
        """
        job_id = _first(data, "id")
        if job_id is None:
            job_id = default_id
        if job_id is None:
            raise ValueError("Job record has no id")

        return cls(
            id=str(job_id),
            workflow_id=_optional_str(_first(data, "workflow_id", "workflowId")),
            job_name=_optional_str(_first(data, "job_name", "jobName")),
            name=_optional_str(_first(data, "name")),
            conclusion=_optional_str(_first(data, "conclusion")),
            head_sha=_optional_str(_first(data, "head_sha", "sha")) or None,
            head_branch=_optional_str(_first(data, "head_branch", "branch")) or None,
            completed_at=_first(data, "completed_at", "time"),
            head_sha_timestamp=_first(data, "head_sha_timestamp", "headShaTimestamp"),
            failure_captures=_optional_list(
                _first(data, "failure_captures", "failureCaptures")
            ) or [],
            failure_lines=_optional_list(
                _first(data, "failure_lines", "failureLines")
            ),
            failure_context=_optional_list(
                _first(data, "failure_context", "failureContext")
            ),
            runner_name=_optional_str(_first(data, "runner_name", "runnerName")),
            author_email=_optional_str(_first(data, "author_email", "authorEmail")),
            html_url=_optional_str(_first(data, "html_url", "htmlUrl")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "job_name": self.job_name,
            "name": self.name,
            "conclusion": self.conclusion,
            "head_sha": self.head_sha,
            "head_branch": self.head_branch,
            "completed_at": format_timestamp(self.completed_at),
            "head_sha_timestamp": format_timestamp(self.head_sha_timestamp),
            "failure_captures": list(self.failure_captures),
            "failure_lines": self.failure_lines,
            "failure_context": self.failure_context,
            "runner_name": self.runner_name,
            "author_email": self.author_email,
            "html_url": self.html_url,
        }


def load_records(data: Any) -> list[JobRecord]:
    """Load one record or a list of records from decoded JSON."""
    if isinstance(data, dict):
        return [JobRecord.from_dict(data)]
    records = [JobRecord.from_dict(item) for item in data]
    logger.debug("Loaded %d job records", len(records))
    return records
