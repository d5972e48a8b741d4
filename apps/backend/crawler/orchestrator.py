"""
Runs source crawls sequentially and isolates their failures.

The whole run shares one time budget (CRAWL_RUN_TIMEOUT); a source that
overruns what is left of it gets a CrawlTimeoutError result and the
remaining sources still run if budget remains.
"""
import time
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from app.config import CrawlSettings, get_settings
from core.errors import CrawlTimeoutError
from core.models import Source, SourceResult
from core.net import HTTPClient
from crawler.browser_crawler import BrowserSession
from crawler.campaign_crawler import CampaignCrawler
from crawler.sources import SourceConfig, get_source_config

logger = logging.getLogger(__name__)

SOURCE_ORDER: Sequence[Source] = (Source.REVIEWPLACE, Source.REVIEWNOTE, Source.REVU)


class CrawlOrchestrator:
    """Sequential multi-source crawl runner"""

    def __init__(
        self,
        settings: Optional[CrawlSettings] = None,
        crawler_factory: Optional[Callable[[SourceConfig], CampaignCrawler]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.crawler_factory = crawler_factory or self._default_crawler
        self.sleep = sleep
        self._http_client = HTTPClient(timeout=self.settings.fetch_timeout)

    def _default_crawler(self, config: SourceConfig) -> CampaignCrawler:
        category = self.settings.reviewplace_category if config.source == Source.REVIEWPLACE else None
        return CampaignCrawler(
            config,
            http_client=self._http_client,
            use_browser=self.settings.use_browser,
            browser_factory=lambda: BrowserSession(self.settings.render_timeout_ms),
            category=category,
        )

    def _delay_after(self, source: Source) -> float:
        if self.settings.inter_source_delay is not None:
            return self.settings.inter_source_delay
        return get_source_config(source).delay_after_seconds

    async def run_one(self, source: Source, timeout: Optional[float] = None,
                      now: Optional[datetime] = None) -> SourceResult:
        timeout = self.settings.run_timeout if timeout is None else timeout
        started = time.time()
        try:
            crawler = self.crawler_factory(get_source_config(source))
            return await asyncio.wait_for(crawler.crawl(now), timeout=timeout)
        except asyncio.TimeoutError:
            error = CrawlTimeoutError(source.value, timeout)
            logger.error(f"[orchestrator] {error}")
            return SourceResult(
                source=source.value,
                success=False,
                duration_ms=int((time.time() - started) * 1000),
                error=str(error),
            )
        except Exception as e:
            logger.error(f"[orchestrator] Crawl of {source.value} failed: {e}", exc_info=True)
            return SourceResult(
                source=source.value,
                success=False,
                duration_ms=int((time.time() - started) * 1000),
                error=str(e),
            )

    async def run_all(self, sources: Sequence[Source] = SOURCE_ORDER,
                      now: Optional[datetime] = None) -> List[SourceResult]:
        results: List[SourceResult] = []
        started = time.time()

        for index, source in enumerate(sources):
            remaining = self.settings.run_timeout - (time.time() - started)
            if remaining <= 0:
                error = CrawlTimeoutError(source.value, self.settings.run_timeout)
                logger.error(f"[orchestrator] Run budget spent before {source.value}")
                results.append(SourceResult(source=source.value, success=False, error=str(error)))
                continue

            logger.info(f"[orchestrator] Crawling {source.value} ({index + 1}/{len(sources)})")
            result = await self.run_one(source, timeout=remaining, now=now)
            results.append(result)

            if index < len(sources) - 1:
                delay = self._delay_after(source)
                if delay > 0:
                    await self.sleep(delay)

        succeeded = sum(1 for r in results if r.success)
        logger.info(f"[orchestrator] Run finished: {succeeded}/{len(results)} sources succeeded")
        return results


def summarize(results: Sequence[SourceResult]) -> Dict[str, int]:
    return {
        "total": len(results),
        "successful": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
        "totalItems": sum(r.count for r in results),
        "totalSaved": sum(r.saved for r in results),
        "totalDuration": sum(r.duration_ms for r in results),
    }
