"""
Static HTTP fetcher for listing and detail pages.

One request per call, no automatic retries: callers decide whether a
failure means falling back to another fetch strategy.
"""
import os
import logging
import itertools
from typing import Dict, Optional

import httpx

from core.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.getenv("CRAWL_FETCH_TIMEOUT", "8"))

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.8,en-US;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


class HTTPClient:
    """Fetches HTML with a per-request timeout and rotating User-Agent"""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = httpx.Timeout(timeout if timeout is not None else DEFAULT_TIMEOUT)
        self._user_agents = itertools.cycle(USER_AGENTS)
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        headers = dict(BASE_HEADERS)
        headers["User-Agent"] = next(self._user_agents)
        return headers

    async def fetch(self, url: str) -> str:
        """
        GET a page and return its body as text.

        Raises:
            NetworkError: on non-2xx status, timeout or connection failure
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=self._get_headers(),
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.TimeoutException as e:
            logger.warning(f"[net] Timeout fetching {url}: {e}")
            raise NetworkError(f"Timeout after {self.timeout.read}s", url=url) from e
        except httpx.HTTPError as e:
            logger.warning(f"[net] Request failed for {url}: {e}")
            raise NetworkError(f"Request failed: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            logger.warning(f"[net] HTTP {response.status_code} for {url}")
            raise NetworkError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                url=url,
                status_code=response.status_code,
            )

        logger.debug(f"[net] Fetched {url} ({len(response.content)} bytes)")
        return response.text


_http_client: Optional[HTTPClient] = None


def get_http_client() -> HTTPClient:
    global _http_client
    if _http_client is None:
        _http_client = HTTPClient()
    return _http_client


async def fetch(url: str) -> str:
    return await get_http_client().fetch(url)
