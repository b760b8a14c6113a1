"""
Encrypted media fetcher.

Downloads encrypted media blobs over HTTP with a bounded timeout and a
small retry budget for transient failures.
"""

import logging

import httpx
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from media_decrypt.core.config import FetchConfig
from media_decrypt.core.exceptions import FetchError, is_retriable_error

logger = logging.getLogger(__name__)


class MediaFetcher:
    """
    HTTP client for encrypted media downloads.

    Retries on:
    - Connection errors and timeouts
    - 429 and 5xx responses

    Other 4xx responses fail immediately.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        client: httpx.Client | None = None,
        backoff_max_seconds: float = 10.0,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Fetch configuration (default: FetchConfig())
            client: Preconfigured httpx client (tests pass a MockTransport client)
            backoff_max_seconds: Upper bound for the exponential backoff
        """
        self._config = config or FetchConfig()
        self._client = client or httpx.Client(
            timeout=self._config.timeout_seconds,
            follow_redirects=True,
        )
        self._backoff_max_seconds = backoff_max_seconds

    def fetch(self, url: str) -> bytes:
        """
        Download the encrypted blob at url.

        Args:
            url: Media URL

        Returns:
            Response body bytes

        Raises:
            FetchError: If every attempt fails
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._config.max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0, max=self._backoff_max_seconds),
            retry=retry_if_exception(is_retriable_error),
            reraise=True,
        )
        attempts = 0

        def attempt() -> bytes:
            nonlocal attempts
            attempts += 1
            return self._fetch_once(url)

        try:
            data = retrying(attempt)
        except FetchError as e:
            raise FetchError(
                e.message,
                url=url,
                status_code=e.status_code,
                attempts=attempts,
            ) from e
        logger.info(f"Downloaded {len(data)} bytes of encrypted media in {attempts} attempt(s)")
        return data

    def _fetch_once(self, url: str) -> bytes:
        """Single download attempt, mapping httpx errors to FetchError."""
        try:
            response = self._client.get(url, timeout=self._config.timeout_seconds)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(f"Media download returned HTTP {status_code}")
            raise FetchError(
                f"Media download failed with HTTP {status_code}",
                url=url,
                status_code=status_code,
            ) from e
        except httpx.TimeoutException as e:
            logger.warning(f"Media download timed out after {self._config.timeout_seconds}s")
            raise FetchError(
                f"Media download timed out after {self._config.timeout_seconds}s",
                url=url,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Media download transport error: {e}")
            raise FetchError(f"Media download failed: {e}", url=url) from e

        return response.content

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, *args):
        """Context manager exit."""
        self.close()
