"""
Typed errors raised by the campaign ingestion pipeline.

Deadline resolution never raises; an unknown deadline is a data-quality
concern handled by the fallback strategy, not an error.
"""
from typing import Optional


class CrawlerError(Exception):
    """Base class for ingestion errors"""


class NetworkError(CrawlerError):
    """Fetch failed: non-2xx status, timeout, connection or browser failure"""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(CrawlerError):
    """Listing page could not be turned into candidate records"""


class PersistenceError(CrawlerError):
    """Storage is unreachable or rejected the batch write"""

    def __init__(self, message: str, saved: int = 0):
        super().__init__(message)
        self.saved = saved


class CrawlTimeoutError(CrawlerError):
    """A source crawl exceeded the run ceiling"""

    def __init__(self, source: str, timeout_seconds: float):
        super().__init__(f"Crawl of {source} exceeded {timeout_seconds:.0f}s")
        self.source = source
        self.timeout_seconds = timeout_seconds
