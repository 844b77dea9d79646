"""Tests for the shared HTTP helpers."""

import io
from unittest.mock import MagicMock, patch

import pytest
import requests

from common.http_client import download, get_json, robust_get
from errors import FetchFailed


def _response(status_code, text="", chunks=()):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {}
    resp.text = text
    resp.iter_content.return_value = list(chunks)
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


@patch("common.http_client.time.sleep")
class TestRobustGet:
    """Retry behavior of robust_get."""

    @patch("common.http_client.requests.get")
    def test_success_first_try(self, mock_get, mock_sleep):
        mock_get.return_value = _response(200, "ok")

        assert robust_get("https://example.com/x") == (200, {}, "ok")
        mock_sleep.assert_not_called()
        assert mock_get.call_args.kwargs["headers"]["User-Agent"] == "GCPBuildpacks"

    @patch("common.http_client.requests.get")
    def test_retries_server_errors(self, mock_get, mock_sleep):
        mock_get.side_effect = [_response(503), _response(200, "ok")]

        status, _, text = robust_get("https://example.com/x")

        assert (status, text) == (200, "ok")
        assert mock_get.call_count == 2
        assert mock_sleep.call_count == 1

    @patch("common.http_client.requests.get")
    def test_client_errors_are_not_retried(self, mock_get, mock_sleep):
        mock_get.return_value = _response(404)

        status, _, _ = robust_get("https://example.com/x")

        assert status == 404
        assert mock_get.call_count == 1

    @patch("common.http_client.requests.get")
    def test_all_attempts_fail(self, mock_get, mock_sleep):
        mock_get.side_effect = requests.Timeout("slow")

        status, headers, text = robust_get("https://example.com/x")

        assert status == 0
        assert headers == {}
        assert "timeout" in text
        assert mock_get.call_count == 3

    @patch("common.http_client.requests.get")
    def test_get_json_parses_body(self, mock_get, mock_sleep):
        mock_get.return_value = _response(200, '["1.0.0"]')
        assert get_json("https://example.com/v.json") == (200, {}, ["1.0.0"])

    @patch("common.http_client.requests.get")
    def test_get_json_bad_body(self, mock_get, mock_sleep):
        mock_get.return_value = _response(200, "<html>")
        assert get_json("https://example.com/v.json")[2] is None


@patch("common.http_client.time.sleep")
class TestDownload:
    """Streaming downloads."""

    @patch("common.http_client.requests.get")
    def test_streams_chunks(self, mock_get, mock_sleep):
        mock_get.return_value = _response(200, chunks=[b"abc", b"", b"def"])
        out = io.BytesIO()

        assert download("https://example.com/a.tar.gz", out) == 6
        assert out.getvalue() == b"abcdef"
        assert mock_get.call_args.kwargs["stream"] is True

    @patch("common.http_client.requests.get")
    def test_not_found_raises_immediately(self, mock_get, mock_sleep):
        mock_get.return_value = _response(404)

        with pytest.raises(FetchFailed) as excinfo:
            download("https://example.com/a.tar.gz", io.BytesIO())

        assert excinfo.value.status_code == 404
        assert mock_get.call_count == 1

    @patch("common.http_client.requests.get")
    def test_retry_discards_partial_bytes(self, mock_get, mock_sleep):
        broken = _response(200)
        broken.iter_content.side_effect = requests.ConnectionError("reset")
        mock_get.side_effect = [broken, _response(200, chunks=[b"full"])]
        out = io.BytesIO(b"stale")

        download("https://example.com/a.tar.gz", out)

        assert out.getvalue() == b"full"

    @patch("common.http_client.requests.get")
    def test_gives_up_after_retries(self, mock_get, mock_sleep):
        mock_get.return_value = _response(502)

        with pytest.raises(FetchFailed) as excinfo:
            download("https://example.com/a.tar.gz", io.BytesIO())

        assert excinfo.value.status_code == 502
        assert mock_get.call_count == 3
