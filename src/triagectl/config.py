"""Runtime settings read from environment variables."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from triagectl.artifacts import DEFAULT_LOG_URL_TEMPLATE
from triagectl.classify import EXCLUDED_FROM_FLAKINESS, ClassifierConfig
from triagectl.search import DEFAULT_INDEX
from triagectl.window import (
    DEFAULT_LOOKBACK_HOURS,
    MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES,
)


@dataclass(frozen=True)
class Settings:
    search_url: str = ""
    search_index: str = DEFAULT_INDEX
    log_url_template: str = DEFAULT_LOG_URL_TEMPLATE
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS
    max_search_hours: int = MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES
    excluded_jobs: tuple[str, ...] = EXCLUDED_FROM_FLAKINESS

    def classifier_config(self) -> ClassifierConfig:
        return ClassifierConfig(excluded_from_flakiness=self.excluded_jobs)


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name, "").strip()
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{value}'") from e
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got {parsed}")
    return parsed


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from TRIAGECTL_* environment variables."""
    env = os.environ if environ is None else environ

    excluded = EXCLUDED_FROM_FLAKINESS
    raw_excluded = env.get("TRIAGECTL_EXCLUDED_JOBS")
    if raw_excluded is not None:
        excluded = tuple(s.strip() for s in raw_excluded.split(",") if s.strip())

    return Settings(
        search_url=env.get("TRIAGECTL_SEARCH_URL", ""),
        search_index=env.get("TRIAGECTL_SEARCH_INDEX") or DEFAULT_INDEX,
        log_url_template=(
            env.get("TRIAGECTL_LOG_URL_TEMPLATE") or DEFAULT_LOG_URL_TEMPLATE
        ),
        lookback_hours=_int_env(
            env, "TRIAGECTL_LOOKBACK_HOURS", DEFAULT_LOOKBACK_HOURS,
        ),
        max_search_hours=_int_env(
            env, "TRIAGECTL_MAX_SEARCH_HOURS",
            MAX_SEARCH_HOURS_FOR_QUERYING_SIMILAR_FAILURES,
        ),
        excluded_jobs=excluded,
    )
