"""Search window selection for similar-failure queries.

The window ends at the job's head commit timestamp, never at the job's
completed_at: a reverted PR whose job is rerun later would otherwise get
the wrong end date.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from triagectl.records import JobRecord, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_HOURS = 24

# If the base commit is too old, don't query for similar failures because
# it increases the risk of misclassification. Can be relaxed once the log
# classifier is more accurate.
MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES = 7 * 24

NO_ANCHOR = "no-anchor"
WINDOW_TOO_WIDE = "window-too-wide"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    @property
    def hours(self) -> int:
        """Span in whole hours, truncated toward zero."""
        return int((self.end - self.start).total_seconds() / 3600)

    def __contains__(self, when: datetime) -> bool:
        return self.start <= when < self.end


@dataclass(frozen=True)
class WindowSelection:
    window: TimeWindow | None = None
    rejection: str | None = None

    @property
    def accepted(self) -> bool:
        return self.window is not None


def select_window(
    job: JobRecord,
    base_commit_date: datetime | str | None = None,
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS,
    max_search_hours: int = MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES,
) -> WindowSelection:
    """Compute the window to search for similar failures of job.

    The start is anchored on the base commit when one is known, so a PR
    on an old base searches back to where its base branched off.
    """
    end = job.head_sha_timestamp
    if end is None:
        logger.debug("Job %s has no head commit timestamp", job.id)
        return WindowSelection(rejection=NO_ANCHOR)

    base = parse_timestamp(base_commit_date)
    start = (base if base is not None else end) - timedelta(hours=lookback_hours)
    window = TimeWindow(start=start, end=end)

    if window.hours > max_search_hours:
        logger.info(
            "Not searching similar failures for job %s: window of %d hours "
            "exceeds %d hours (base commit too old)",
            job.id, window.hours, max_search_hours,
        )
        return WindowSelection(rejection=WINDOW_TOO_WIDE)

    return WindowSelection(window=window)
