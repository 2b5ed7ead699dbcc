"""Tests for the requests-based page fetcher."""

from unittest.mock import MagicMock

import pytest
import requests

from vaultclip.exceptions import FetchError
from vaultclip.http import FetchedPage, RequestsPageFetcher
from vaultclip.models import FetchConfig


def _response(body=b"<html><body><p>Hi</p></body></html>", status=200, headers=None, url="https://example.com/"):
    response = MagicMock()
    response.status_code = status
    response.headers = {"Content-Type": "text/html; charset=utf-8"} if headers is None else headers
    response.url = url
    response.iter_content.return_value = [body[i : i + 8] for i in range(0, len(body), 8)]
    return response


def _fetcher(response, config=None):
    session = MagicMock()
    session.get.return_value = response
    return RequestsPageFetcher(config or FetchConfig(), session=session), session


class TestRequestsPageFetcher:
    """Tests for RequestsPageFetcher."""

    def test_fetch_success(self):
        """Test a plain 200 response."""
        fetcher, session = _fetcher(_response())

        page = fetcher.fetch("https://example.com/")

        assert page == FetchedPage(
            html="<html><body><p>Hi</p></body></html>",
            url="https://example.com/",
            status_code=200,
            content_type="text/html; charset=utf-8",
        )

    def test_request_options(self):
        """Test headers, timeout and redirect handling."""
        config = FetchConfig(user_agent="TestAgent/1.0", timeout=7)
        fetcher, session = _fetcher(_response(), config)

        fetcher.fetch("https://example.com/")

        kwargs = session.get.call_args.kwargs
        assert kwargs["headers"]["User-Agent"] == "TestAgent/1.0"
        assert "text/html" in kwargs["headers"]["Accept"]
        assert kwargs["timeout"] == 7
        assert kwargs["allow_redirects"] is True
        assert kwargs["stream"] is True

    def test_redirect_reports_final_url(self):
        """Test that the final URL after redirects is returned."""
        fetcher, _ = _fetcher(_response(url="https://www.example.com/final"))

        assert fetcher.fetch("https://example.com/start").url == "https://www.example.com/final"

    def test_http_error_status(self):
        """Test that non-2xx responses raise with the status code."""
        response = _response(status=404)
        fetcher, _ = _fetcher(response)

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch("https://example.com/missing")

        assert exc_info.value.status_code == 404
        response.close.assert_called_once()

    def test_network_error(self):
        """Test that connection errors become FetchError."""
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        fetcher = RequestsPageFetcher(session=session)

        with pytest.raises(FetchError, match="Could not fetch"):
            fetcher.fetch("https://example.com/")

    def test_timeout(self):
        """Test that timeouts become FetchError."""
        session = MagicMock()
        session.get.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(FetchError):
            RequestsPageFetcher(session=session).fetch("https://example.com/")

    def test_declared_size_limit(self):
        """Test rejection from the Content-Length header."""
        response = _response(headers={"Content-Length": "5000"})
        fetcher, _ = _fetcher(response, FetchConfig(max_html_bytes=1000))

        with pytest.raises(FetchError, match="too large"):
            fetcher.fetch("https://example.com/")
        response.iter_content.assert_not_called()

    def test_streamed_size_limit(self):
        """Test rejection while streaming an undeclared body."""
        fetcher, _ = _fetcher(_response(body=b"x" * 100, headers={}), FetchConfig(max_html_bytes=50))

        with pytest.raises(FetchError, match="too large"):
            fetcher.fetch("https://example.com/")

    def test_unlimited_size(self):
        """Test that a zero limit disables the check."""
        body = b"<p>" + b"x" * 500 + b"</p>"
        fetcher, _ = _fetcher(_response(body=body, headers={"Content-Length": "507"}), FetchConfig(max_html_bytes=0))

        assert len(fetcher.fetch("https://example.com/").html) == 507

    def test_read_error(self):
        """Test that errors while streaming become FetchError."""
        response = _response()
        response.iter_content.side_effect = requests.exceptions.ChunkedEncodingError("broken")
        fetcher, _ = _fetcher(response)

        with pytest.raises(FetchError, match="Could not read"):
            fetcher.fetch("https://example.com/")

    def test_header_charset(self):
        """Test decoding with the Content-Type charset."""
        body = "<p>café</p>".encode("latin-1")
        fetcher, _ = _fetcher(_response(body=body, headers={"Content-Type": "text/html; charset=ISO-8859-1"}))

        assert fetcher.fetch("https://example.com/").html == "<p>café</p>"

    def test_meta_charset_fallback(self):
        """Test decoding with the page's own declaration."""
        body = '<meta charset="windows-1252"><p>“quoted”</p>'.encode("cp1252")
        fetcher, _ = _fetcher(_response(body=body, headers={"Content-Type": "text/html"}))

        assert "“quoted”" in fetcher.fetch("https://example.com/").html

    def test_unknown_header_charset(self):
        """Test that a bogus header charset falls back to detection."""
        assert RequestsPageFetcher.decode(b"<p>ok</p>", "text/html; charset=bogus") == "<p>ok</p>"

    def test_context_manager_closes_own_session(self, monkeypatch):
        """Test that only a session the fetcher created is closed."""
        given = MagicMock()
        with RequestsPageFetcher(session=given):
            pass
        given.close.assert_not_called()

        created = MagicMock()
        monkeypatch.setattr(requests, "Session", lambda: created)
        with RequestsPageFetcher():
            pass
        created.close.assert_called_once()
