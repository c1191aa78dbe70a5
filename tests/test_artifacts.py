"""Tests for triagectl.artifacts -- raw log existence checks."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import make_job

from triagectl.artifacts import ArtifactError, has_log


def _response(status):
    resp = MagicMock()
    resp.status_code = status
    return resp


class TestHasLog:
    def test_exists(self):
        with patch("triagectl.artifacts.requests.head",
                   return_value=_response(200)) as mock_head:
            assert has_log(make_job(id="77")) is True
        url = mock_head.call_args.args[0]
        assert url == "https://ossci-raw-job-status.s3.amazonaws.com/log/77"

    @pytest.mark.parametrize("status", [403, 404])
    def test_missing(self, status):
        with patch("triagectl.artifacts.requests.head",
                   return_value=_response(status)):
            assert has_log(make_job()) is False

    def test_custom_template_and_session(self):
        session = MagicMock()
        session.head.return_value = _response(200)
        assert has_log(make_job(id="5"), "https://logs/{job_id}.txt", session)
        assert session.head.call_args.args[0] == "https://logs/5.txt"

    def test_server_error_raises(self):
        with patch("triagectl.artifacts.requests.head",
                   return_value=_response(500)):
            with pytest.raises(ArtifactError, match="HTTP 500"):
                has_log(make_job())

    def test_connection_error_raises(self):
        with patch("triagectl.artifacts.requests.head",
                   side_effect=requests.ConnectionError("refused")):
            with pytest.raises(ArtifactError, match="refused"):
                has_log(make_job())
