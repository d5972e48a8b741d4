"""
Single-source crawl: fetch listing -> parse -> resolve deadlines ->
quality report -> dedupe -> upsert.
"""
import time
import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from core.data_quality import QualityMonitor, get_quality_monitor
from core.dates import now_local, to_local
from core.deadline import DeadlineResolver
from core.dedupe import dedupe
from core.errors import NetworkError, ParseError, PersistenceError
from core.models import CandidateRecord, SourceResult
from core.net import HTTPClient, get_http_client
from crawler.browser_crawler import BrowserSession
from crawler.parser import CampaignParser
from crawler.sources import SourceConfig
from pipeline.db_insert import CampaignUpsert

logger = logging.getLogger(__name__)


class CampaignCrawler:
    """Runs the ingestion pipeline for one source"""

    def __init__(
        self,
        config: SourceConfig,
        http_client: Optional[HTTPClient] = None,
        resolver: Optional[DeadlineResolver] = None,
        monitor: Optional[QualityMonitor] = None,
        sink: Optional[CampaignUpsert] = None,
        use_browser: bool = True,
        browser_factory: Callable[[], BrowserSession] = BrowserSession,
        category: Optional[str] = None,
    ):
        self.config = config
        self.http_client = http_client or get_http_client()
        self.resolver = resolver or DeadlineResolver(http_client=self.http_client)
        self.monitor = monitor or get_quality_monitor()
        self.sink = sink
        self.use_browser = use_browser
        self.browser_factory = browser_factory
        self.parser = CampaignParser(config)
        self.listing_url = config.listing_url_for(category)
        self.name = config.source.value

    async def _collect_rendered(self) -> List[CandidateRecord]:
        async with self.browser_factory() as session:
            html = await session.fetch_rendered(
                self.listing_url,
                settle_ms=self.config.settle_ms,
                scroll_steps=self.config.scroll_steps,
            )
        return self.parser.parse(html)

    async def _collect(self) -> List[CandidateRecord]:
        if self.config.rendered_first and self.use_browser:
            try:
                records = await self._collect_rendered()
                if records:
                    return records
                logger.info(f"[crawler] {self.name}: rendered page had no campaigns, trying static fetch")
            except (NetworkError, ParseError) as e:
                logger.warning(f"[crawler] {self.name}: rendered fetch failed ({e}), trying static fetch")

        html = await self.http_client.fetch(self.listing_url)
        return self.parser.parse(html)

    async def crawl(self, now: Optional[datetime] = None) -> SourceResult:
        """
        Crawl the source once.

        Network and parse failures end the crawl with success=False.
        A storage failure keeps success=True and reports the error with the
        number of rows committed before it (0 when the database is unreachable).
        """
        started = time.time()
        now = to_local(now) if now else now_local()
        logger.info(f"[crawler] {self.name}: crawling {self.listing_url}")

        try:
            records = await self._collect()
        except (NetworkError, ParseError) as e:
            logger.error(f"[crawler] {self.name}: {type(e).__name__}: {e}")
            return SourceResult(
                source=self.name,
                success=False,
                duration_ms=int((time.time() - started) * 1000),
                error=str(e),
            )

        for record in records:
            resolution = await self.resolver.resolve(record.source, record.listing_text, record.detail_url, now)
            record.attach_resolution(resolution)

        report = self.monitor.analyze(records, allow_zero_reward=self.config.allow_zero_reward, now=now)
        if report.critical_alerts():
            logger.warning(f"[crawler] {self.name}: critical quality alerts\n{report.summary()}")
        records = dedupe(records)

        saved = 0
        error = None
        if records:
            sink = self.sink or CampaignUpsert()
            try:
                saved = await asyncio.to_thread(sink.save, records, now)
            except PersistenceError as e:
                saved = e.saved
                error = str(e)
                logger.error(f"[crawler] {self.name}: persistence failed: {e}")

        duration_ms = int((time.time() - started) * 1000)
        logger.info(
            f"[crawler] {self.name}: {len(records)} campaigns, {saved} saved, "
            f"score {report.quality_score:.1f} in {duration_ms}ms"
        )
        return SourceResult(
            source=self.name,
            success=True,
            count=len(records),
            duration_ms=duration_ms,
            saved=saved,
            validation=report,
            error=error,
            records=records,
        )
