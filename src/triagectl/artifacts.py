"""Raw job log existence checks against the log artifact store."""

import logging

import requests

from triagectl.records import JobRecord

logger = logging.getLogger(__name__)

DEFAULT_LOG_URL_TEMPLATE = "https://ossci-raw-job-status.s3.amazonaws.com/log/{job_id}"
DEFAULT_TIMEOUT = 10


class ArtifactError(RuntimeError):
    """The log artifact store could not be reached."""


def has_log(
    job: JobRecord,
    url_template: str = DEFAULT_LOG_URL_TEMPLATE,
    session: requests.Session | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> bool:
    """Return True if a raw log blob exists for the job.

    Missing objects answer 404 (or 403 on buckets without list access).
    """
    url = url_template.format(job_id=job.id)
    http = session or requests
    try:
        resp = http.head(url, allow_redirects=True, timeout=timeout)
    except requests.RequestException as e:
        raise ArtifactError(f"Log lookup failed for job {job.id}: {e}") from e

    if resp.status_code == 200:
        return True
    if resp.status_code in (403, 404):
        logger.debug("No log for job %s (HTTP %d)", job.id, resp.status_code)
        return False
    raise ArtifactError(
        f"Log lookup failed for job {job.id}: HTTP {resp.status_code}"
    )
