"""Tests for triagectl.classify -- job predicates and label suppression."""

import json
from types import MappingProxyType
from unittest.mock import patch

import pytest

from conftest import make_job

from triagectl.classify import (
    STATUS_ERROR,
    STATUS_OK,
    ClassifierConfig,
    classify,
    get_suppressed_labels,
    is_excluded_from_flakiness,
    is_infra_flaky,
    is_log_classifier_failed,
    run,
)


def _infra_flaky_job(**overrides):
    data = {"failure_lines": None, "runner_name": None}
    data.update(overrides)
    return make_job(**data)


def _fail_if_called(job):
    raise AssertionError("has_log should not be called")


# ---------------------------------------------------------------------------
# is_infra_flaky
# ---------------------------------------------------------------------------

class TestIsInfraFlaky:
    def test_failed_job_without_logs_or_runner(self):
        assert is_infra_flaky(_infra_flaky_job()) is True

    def test_empty_lines_and_runner_count_as_absent(self):
        job = _infra_flaky_job(failure_lines=[""], runner_name="")
        assert is_infra_flaky(job) is True

    def test_not_failure(self):
        assert is_infra_flaky(_infra_flaky_job(conclusion="cancelled")) is False

    def test_workflow_run(self):
        job = _infra_flaky_job()
        job.workflow_id = None
        assert is_infra_flaky(job) is False

    def test_has_failure_lines(self):
        assert is_infra_flaky(_infra_flaky_job(failure_lines=["boom"])) is False

    def test_has_runner(self):
        assert is_infra_flaky(_infra_flaky_job(runner_name="i-123")) is False


# ---------------------------------------------------------------------------
# is_log_classifier_failed
# ---------------------------------------------------------------------------

class TestIsLogClassifierFailed:
    def test_workflow_run_never_checks_log(self):
        job = make_job(failure_lines=None)
        job.workflow_id = None
        assert is_log_classifier_failed(job, _fail_if_called) is False

    def test_success_is_false(self):
        job = make_job(conclusion="success")
        assert is_log_classifier_failed(job, _fail_if_called) is False

    def test_no_failure_lines(self):
        job = make_job(failure_lines=None)
        assert is_log_classifier_failed(job, lambda j: True) is True

    def test_no_log(self):
        assert is_log_classifier_failed(make_job(), lambda j: False) is True

    def test_lines_and_log(self):
        assert is_log_classifier_failed(make_job(), lambda j: True) is False


# ---------------------------------------------------------------------------
# is_excluded_from_flakiness
# ---------------------------------------------------------------------------

class TestIsExcludedFromFlakiness:
    @pytest.mark.parametrize("name", [
        "Lint / lintrunner",
        "pull / linux-docs / build-docs-python-false",
        "ghstack-mergeability-check",
        "trunk / BACKWARDS_COMPAT",
    ])
    def test_excluded_names(self, name):
        assert is_excluded_from_flakiness(make_job(name=name)) is True

    def test_regular_job(self):
        assert is_excluded_from_flakiness(make_job()) is False

    def test_no_name(self):
        assert is_excluded_from_flakiness(make_job(name=None)) is False

    def test_config_override(self):
        config = ClassifierConfig(excluded_from_flakiness=("Jammy",))
        assert is_excluded_from_flakiness(make_job(), config) is True
        assert is_excluded_from_flakiness(make_job(name="lint"), config) is False


# ---------------------------------------------------------------------------
# get_suppressed_labels
# ---------------------------------------------------------------------------

class TestGetSuppressedLabels:
    def test_matching_labels(self):
        job = make_job(job_name="bc_linter")
        labels = ["ciflow/trunk", "suppress-api-compatibility-check"]
        assert get_suppressed_labels(job, labels) == [
            "suppress-api-compatibility-check",
        ]

    def test_table_order(self):
        job = make_job(job_name="bc_linter")
        labels = ["suppress-api-compatibility-check", "suppress-bc-linter"]
        assert get_suppressed_labels(job, labels) == [
            "suppress-bc-linter", "suppress-api-compatibility-check",
        ]

    def test_job_not_in_table(self):
        assert get_suppressed_labels(make_job(), ["suppress-bc-linter"]) == []

    def test_no_job_name(self):
        job = make_job(job_name=None)
        assert get_suppressed_labels(job, ["suppress-bc-linter"]) == []

    def test_config_override(self):
        config = ClassifierConfig(
            suppressed_job_by_labels=MappingProxyType({"docs": ("skip-docs",)}),
        )
        job = make_job(job_name="docs")
        assert get_suppressed_labels(job, ["skip-docs"], config) == ["skip-docs"]


# ---------------------------------------------------------------------------
# classify / run
# ---------------------------------------------------------------------------

class TestClassify:
    def test_without_log_check(self):
        result = classify(_infra_flaky_job())
        assert result["infra_flaky"] is True
        assert result["log_classifier_failed"] is True
        assert result["excluded_from_flakiness"] is False


class TestRun:
    def test_prints_results(self, tmp_path, capsys):
        path = tmp_path / "job.json"
        path.write_text(json.dumps(make_job().to_dict()))

        with patch("triagectl.artifacts.has_log", return_value=False):
            rc = run(str(path))

        assert rc == STATUS_OK
        result = json.loads(capsys.readouterr().out)
        assert result["id"] == "1"
        assert result["log_classifier_failed"] is True

    def test_skip_log_check(self, tmp_path, capsys):
        path = tmp_path / "job.json"
        path.write_text(json.dumps([make_job().to_dict(), {"id": 2}]))

        with patch("triagectl.artifacts.has_log") as mock_has_log:
            rc = run(str(path), check_log=False)

        assert rc == STATUS_OK
        mock_has_log.assert_not_called()
        assert len(json.loads(capsys.readouterr().out)) == 2

    def test_missing_file(self, tmp_path):
        assert run(str(tmp_path / "nope.json")) == STATUS_ERROR
