"""
HTTP fetcher: url -> markup string.

Network errors, timeouts and non-2xx responses raise FetchError. There are no
internal retries; the caller decides what a failed fetch means.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from .document import decode_markup
from .exceptions import FetchError
from .logger import get_module_logger

logger = get_module_logger("fetcher")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_TIMEOUT = 30.0


def _default_timeout() -> float:
    try:
        return float(os.getenv("SCRAPER_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        logger.warning("Invalid SCRAPER_TIMEOUT, using default")
        return DEFAULT_TIMEOUT


class BaseFetcher(ABC):
    """Anything that can turn a URL into markup."""

    @abstractmethod
    def fetch(self, url: str) -> str:
        """
        Fetch the markup at url.

        Raises:
            FetchError: when the page cannot be retrieved
        """


class HttpFetcher(BaseFetcher):
    """httpx-based fetcher."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        client: Optional[httpx.Client] = None
    ):
        self.timeout = timeout or _default_timeout()
        self.user_agent = user_agent or os.getenv("SCRAPER_USER_AGENT", DEFAULT_USER_AGENT)
        self._client = client

    def fetch(self, url: str) -> str:
        logger.info(f"Fetching {url}")
        try:
            if self._client is not None:
                response = self._get(self._client, url)
            else:
                with httpx.Client(follow_redirects=True) as client:
                    response = self._get(client, url)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Fetch failed for {url}: HTTP {status}")
            raise FetchError(
                f"Request failed with status code {status}",
                url=url,
                status_code=status
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Fetch failed for {url}: {e}")
            raise FetchError(str(e) or type(e).__name__, url=url) from e

        # Without a charset in the Content-Type header, trust the page's <meta>
        if response.charset_encoding is None:
            return decode_markup(response.content)
        return response.text

    def _get(self, client: httpx.Client, url: str) -> httpx.Response:
        response = client.get(
            url,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response
