"""Historical failure search.

The decision engine depends on results sorted oldest first: the first
record is the first time the failure was observed in the window, which is
what the revert guard needs to check against the PR's own merge commits.
Every FailureSearch implementation must honor SearchQuery.sort_order.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import requests

from triagectl.records import JobRecord, format_timestamp

logger = logging.getLogger(__name__)

MAX_SIZE = 1000
OLDEST_FIRST = "asc"
NEWEST_FIRST = "desc"

DEFAULT_INDEX = "torchci-failed-jobs"
DEFAULT_TIMEOUT = 30


class SearchError(RuntimeError):
    """The search store could not be queried."""


@dataclass(frozen=True)
class SearchQuery:
    failure_captures: tuple[str, ...]
    job_name: str | None
    name: str | None
    start: datetime
    end: datetime
    max_size: int = MAX_SIZE
    sort_order: str = OLDEST_FIRST


class FailureSearch(Protocol):
    def query(self, query: SearchQuery) -> list[JobRecord]:
        """Return records matching the query's failure signature in its window."""
        ...


def build_query_body(query: SearchQuery) -> dict:
    """Build an OpenSearch request body for a similar-failure query.

    All failure captures must match. Job names are not filtered here: the
    same failure on a different job still counts and is checked later by
    the engine.
    """
    if query.sort_order not in (OLDEST_FIRST, NEWEST_FIRST):
        raise ValueError(f"Invalid sort order: '{query.sort_order}'")

    return {
        "size": query.max_size,
        "sort": [{"time": {"order": query.sort_order}}],
        "query": {
            "bool": {
                "must": [
                    {
                        "match": {
                            "failure_captures": {
                                "query": " ".join(query.failure_captures),
                                "operator": "and",
                            },
                        },
                    },
                ],
                "filter": [
                    {
                        "range": {
                            "time": {
                                "gte": format_timestamp(query.start),
                                "lt": format_timestamp(query.end),
                            },
                        },
                    },
                ],
            },
        },
    }


class OpenSearchFailureSearch:
    """FailureSearch over the _search REST endpoint of an OpenSearch index."""

    def __init__(
        self,
        endpoint: str,
        index: str = DEFAULT_INDEX,
        session: requests.Session | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        if not endpoint:
            raise ValueError("Search endpoint is not configured")
        self.endpoint = endpoint.rstrip("/")
        self.index = index
        self.session = session or requests.Session()
        self.timeout = timeout

    def query(self, query: SearchQuery) -> list[JobRecord]:
        if not query.failure_captures:
            return []

        url = f"{self.endpoint}/{self.index}/_search"
        body = build_query_body(query)
        try:
            resp = self.session.post(url, json=body, timeout=self.timeout)
            resp.raise_for_status()
            hits = resp.json().get("hits", {}).get("hits", [])
        except (requests.RequestException, ValueError) as e:
            raise SearchError(f"Similar failure search failed ({url}): {e}") from e

        records = [
            JobRecord.from_dict(hit.get("_source", {}), default_id=hit.get("_id"))
            for hit in hits
        ]
        logger.debug(
            "Search for %s returned %d records", query.name, len(records),
        )
        return records


def _record_time(record: JobRecord) -> datetime | None:
    if record.completed_at is not None:
        return record.completed_at
    return record.head_sha_timestamp


class InMemoryFailureSearch:
    """FailureSearch over a list of records, matching captures exactly.

    Records are placed in time by completed_at, or by their head commit
    timestamp when they have none.
    """

    def __init__(self, records: list[JobRecord]):
        self.records = list(records)

    def query(self, query: SearchQuery) -> list[JobRecord]:
        captures = list(query.failure_captures)
        matches = [
            r for r in self.records
            if captures
            and r.failure_captures == captures
            and _record_time(r) is not None
            and query.start <= _record_time(r) < query.end
        ]
        matches.sort(
            key=_record_time,
            reverse=query.sort_order == NEWEST_FIRST,
        )
        return matches[:query.max_size]
