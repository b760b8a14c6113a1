"""Tests for the media fetcher."""

import httpx
import pytest

from media_decrypt.core.config import FetchConfig
from media_decrypt.core.exceptions import FetchError, is_retriable_error
from media_decrypt.fetch import MediaFetcher

MEDIA_URL = "https://mmg.example.net/d/f/encrypted.enc"


def _fetcher(handler, max_attempts: int = 3) -> MediaFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return MediaFetcher(
        FetchConfig(timeout_seconds=5, max_attempts=max_attempts),
        client=client,
        backoff_max_seconds=0,
    )


class TestMediaFetcher:
    """Tests for MediaFetcher."""

    def test_fetch_returns_body(self) -> None:
        """A 200 response body is returned as bytes."""
        with _fetcher(lambda request: httpx.Response(200, content=b"blob")) as fetcher:
            assert fetcher.fetch(MEDIA_URL) == b"blob"

    def test_retries_server_errors(self) -> None:
        """5xx responses are retried until one succeeds."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=b"blob")

        with _fetcher(handler) as fetcher:
            assert fetcher.fetch(MEDIA_URL) == b"blob"
        assert len(calls) == 3

    def test_gives_up_after_max_attempts(self) -> None:
        """The last FetchError is raised once attempts are exhausted."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(500)

        with _fetcher(handler, max_attempts=2) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                fetcher.fetch(MEDIA_URL)

        assert len(calls) == 2
        assert exc_info.value.status_code == 500
        assert exc_info.value.url == MEDIA_URL
        assert exc_info.value.attempts == 2
        assert exc_info.value.details["attempts"] == 2

    def test_client_errors_not_retried(self) -> None:
        """4xx responses other than 429 fail immediately."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        with _fetcher(handler) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                fetcher.fetch(MEDIA_URL)

        assert len(calls) == 1
        assert exc_info.value.status_code == 404
        assert exc_info.value.attempts == 1

    def test_timeout_is_retried_then_raised(self) -> None:
        """Timeouts map to FetchError without a status code."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with _fetcher(handler) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                fetcher.fetch(MEDIA_URL)

        assert len(calls) == 3
        assert exc_info.value.status_code is None
        assert exc_info.value.attempts == 3
        assert "timed out" in exc_info.value.message

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _fetcher(handler, max_attempts=1) as fetcher:
            with pytest.raises(FetchError):
                fetcher.fetch(MEDIA_URL)

    def test_follows_redirects(self) -> None:
        """Redirects are followed when the client allows it."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/start":
                return httpx.Response(302, headers={"Location": "https://cdn.example.net/final"})
            return httpx.Response(200, content=b"final")

        client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)
        with MediaFetcher(client=client, backoff_max_seconds=0) as fetcher:
            assert fetcher.fetch("https://cdn.example.net/start") == b"final"


class TestIsRetriableError:
    """Tests for retry classification."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (FetchError("transport"), True),
            (FetchError("server", status_code=502), True),
            (FetchError("throttled", status_code=429), True),
            (FetchError("missing", status_code=404), False),
            (ValueError("other"), False),
        ],
    )
    def test_classification(self, error: Exception, expected: bool) -> None:
        assert is_retriable_error(error) is expected
