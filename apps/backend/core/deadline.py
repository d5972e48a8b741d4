"""
Deadline resolution for campaign candidates.

An ordered list of strategies is tried by DeadlineResolver until one
produces a deadline:

1. ListPageStrategy   - patterns over the item's own listing text
2. DetailPageStrategy - fetch the detail page, scan its date sections
3. FallbackStrategy   - source-specific default offset (always succeeds)

resolve() never raises. Every resolution records which strategy won.
"""
import os
import re
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from core.dates import (
    day_of_month_deadline,
    days_from_now,
    end_of_day,
    month_day_deadline,
    now_local,
    safe_date,
    to_local,
)
from core.errors import NetworkError
from core.models import DeadlineMethod, DeadlineResolution, Source
from core.net import HTTPClient, get_http_client
from crawler.sources import SOURCE_CONFIGS, COMMON_DETAIL_SELECTORS, fallback_days_for

logger = logging.getLogger(__name__)

MIN_REMAINING_DAYS = 1
MAX_REMAINING_DAYS = 365
MAX_SECTION_ELEMENTS = 200
DEFAULT_MAX_DETAIL_FETCHES = int(os.getenv("CRAWL_MAX_DETAIL_FETCHES", "30"))

Converter = Callable[[re.Match, datetime], Optional[datetime]]


@dataclass(frozen=True)
class DatePattern:
    name: str
    regex: "re.Pattern"
    convert: Converter


def _relative_days(match: re.Match, now: datetime) -> Optional[datetime]:
    days = int(match.group(1))
    if not MIN_REMAINING_DAYS <= days <= MAX_REMAINING_DAYS:
        return None
    return days_from_now(days, now)


def _month_day(match: re.Match, now: datetime) -> Optional[datetime]:
    return month_day_deadline(int(match.group(1)), int(match.group(2)), now)


def _day_of_month(match: re.Match, now: datetime) -> Optional[datetime]:
    return day_of_month_deadline(int(match.group(1)), now)


def _full_date(match: re.Match, now: datetime) -> Optional[datetime]:
    target = safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    if target is None:
        return None
    if target < now.date() or target > now.date() + timedelta(days=MAX_REMAINING_DAYS):
        return None
    return end_of_day(target, now.tzinfo)


def _range_end(match: re.Match, now: datetime) -> Optional[datetime]:
    return month_day_deadline(int(match.group(3)), int(match.group(4)), now)


def _range_start(match: re.Match, now: datetime) -> Optional[datetime]:
    """Range start in the year of the range end; None once the start has passed."""
    end = _range_end(match, now)
    if end is None:
        return None
    month, day = int(match.group(1)), int(match.group(2))
    year = end.year - 1 if (month, day) > (end.month, end.day) else end.year
    start = safe_date(year, month, day)
    if start is None or start < now.date():
        return None
    return end_of_day(start, now.tzinfo)


def _p(name: str, pattern: str, convert: Converter, flags: int = 0) -> DatePattern:
    return DatePattern(name, re.compile(pattern, flags), convert)


# Order matters: first match wins
LIST_PAGE_PATTERNS: Tuple[DatePattern, ...] = (
    _p("d_minus", r"(?<![A-Za-z])D[_\s]*-[_\s]*(\d{1,3})(?!\d)", _relative_days, re.IGNORECASE),
    _p("days_left", r"마감\s*(\d{1,3})\s*일\s*남음", _relative_days),
    _p("days_left", r"(\d{1,3})\s*일\s*남음", _relative_days),
    _p("days_left", r"남은\s*(\d{1,3})\s*일", _relative_days),
    _p("days_before", r"마감\s*(\d{1,3})\s*일\s*전", _relative_days),
    _p("days_after", r"(\d{1,3})\s*일\s*후\s*마감", _relative_days),
    _p("full_date", r"(\d{4})[.\-](\d{1,2})[.\-](\d{1,2})", _full_date),
    _p("month_day", r"(\d{1,2})\.(\d{1,2})\s*마감", _month_day),
    _p("month_day", r"(\d{1,2})/(\d{1,2})\s*마감", _month_day),
    _p("month_day", r"(\d{1,2})-(\d{1,2})\s*마감", _month_day),
    _p("month_day", r"(\d{1,2})월\s*(\d{1,2})일", _month_day),
    _p("day_of_month", r"(?<![\d월])(\d{1,2})일\s*마감", _day_of_month),
)

_RANGE = r"(\d{1,2})[./](\d{1,2})\s*~\s*(\d{1,2})[./](\d{1,2})"

RECRUITMENT_PATTERNS: Tuple[DatePattern, ...] = (
    _p("recruitment", r"체험단\s*신청기간[:\s]*" + _RANGE, _range_end),
    _p("recruitment", r"모집기간[:\s]*" + _RANGE, _range_end),
    _p("recruitment", r"신청기간[:\s]*" + _RANGE, _range_end),
)

# Review period is only a proxy: its start approximates the application close
REVIEW_PATTERNS: Tuple[DatePattern, ...] = (
    _p("review_period", r"리뷰\s*등록기간[:\s(]*" + _RANGE, _range_start),
)

# Unlabelled "(8.21 ~ 8.28)"; only trusted after every labelled period
BARE_RANGE_PATTERNS: Tuple[DatePattern, ...] = (
    _p("bare_range", r"\((\d{1,2})[./\-](\d{1,2})\s*~\s*(\d{1,2})[./\-](\d{1,2})\)", _range_end),
)


def match_patterns(text: str, patterns: Sequence[DatePattern], now: datetime) -> Optional[Tuple[datetime, str]]:
    """First pattern whose match converts to a usable deadline."""
    if not text:
        return None
    for pattern in patterns:
        for match in pattern.regex.finditer(text):
            deadline = pattern.convert(match, now)
            if deadline is not None:
                return deadline, match.group(0).strip()
    return None


@dataclass
class ResolutionContext:
    source: Optional[Source]
    listing_text: str
    detail_url: Optional[str]
    now: datetime


class DeadlineStrategy:
    method: DeadlineMethod

    async def apply(self, ctx: ResolutionContext) -> Optional[DeadlineResolution]:
        raise NotImplementedError


class ListPageStrategy(DeadlineStrategy):
    method = DeadlineMethod.LIST_PAGE

    def __init__(self, patterns: Sequence[DatePattern] = LIST_PAGE_PATTERNS):
        self.patterns = patterns

    async def apply(self, ctx: ResolutionContext) -> Optional[DeadlineResolution]:
        found = match_patterns(ctx.listing_text, self.patterns, ctx.now)
        if not found:
            return None
        deadline, text = found
        return DeadlineResolution(deadline=deadline, method=self.method, matched_text=text)


class DetailPageStrategy(DeadlineStrategy):
    """Fetches the detail page and scans date sections, recruitment period first"""
    method = DeadlineMethod.DETAIL_PAGE

    def __init__(self, http_client: Optional[HTTPClient] = None, max_fetches: Optional[int] = None):
        self.http_client = http_client
        self.max_fetches = DEFAULT_MAX_DETAIL_FETCHES if max_fetches is None else max_fetches
        self.fetch_count = 0
        self.pattern_groups: Tuple[Tuple[DatePattern, ...], ...] = (
            RECRUITMENT_PATTERNS,
            LIST_PAGE_PATTERNS,
            REVIEW_PATTERNS,
            BARE_RANGE_PATTERNS,
        )

    def _sections(self, html: str, source: Optional[Source]) -> List[str]:
        soup = BeautifulSoup(html, "lxml")
        config = SOURCE_CONFIGS.get(source) if source else None
        selectors = config.detail_selectors if config else COMMON_DETAIL_SELECTORS

        sections: List[str] = []
        seen = set()
        for selector in selectors:
            for element in soup.select(selector)[:MAX_SECTION_ELEMENTS]:
                text = element.get_text(" ", strip=True)
                if text and text not in seen:
                    seen.add(text)
                    sections.append(text)
        body = soup.body or soup
        body_text = body.get_text(" ", strip=True)
        if body_text and body_text not in seen:
            sections.append(body_text)
        return sections

    async def apply(self, ctx: ResolutionContext) -> Optional[DeadlineResolution]:
        if not ctx.detail_url or not ctx.detail_url.startswith(("http://", "https://")):
            return None
        if self.fetch_count >= self.max_fetches:
            logger.debug(f"[deadline] Detail fetch budget spent, skipping {ctx.detail_url}")
            return None

        self.fetch_count += 1
        client = self.http_client or get_http_client()
        try:
            html = await client.fetch(ctx.detail_url)
        except NetworkError as e:
            logger.info(f"[deadline] Detail page unavailable for {ctx.detail_url}: {e}")
            return None

        sections = self._sections(html, ctx.source)
        for group in self.pattern_groups:
            for text in sections:
                found = match_patterns(text, group, ctx.now)
                if found:
                    deadline, matched = found
                    return DeadlineResolution(deadline=deadline, method=self.method, matched_text=matched)
        return None


class FallbackStrategy(DeadlineStrategy):
    method = DeadlineMethod.FALLBACK

    async def apply(self, ctx: ResolutionContext) -> Optional[DeadlineResolution]:
        days = fallback_days_for(ctx.source)
        return DeadlineResolution(deadline=days_from_now(days, ctx.now), method=self.method)


class DeadlineResolver:
    """Runs deadline strategies in order; the first to return a resolution wins"""

    def __init__(self, strategies: Optional[Sequence[DeadlineStrategy]] = None, http_client: Optional[HTTPClient] = None):
        if strategies is None:
            strategies = [ListPageStrategy(), DetailPageStrategy(http_client), FallbackStrategy()]
        self.strategies = list(strategies)

    async def resolve(
        self,
        source: Optional[Source],
        listing_text: str,
        detail_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DeadlineResolution:
        ctx = ResolutionContext(
            source=source,
            listing_text=listing_text or "",
            detail_url=detail_url,
            now=to_local(now) if now else now_local(),
        )
        for strategy in self.strategies:
            try:
                resolution = await strategy.apply(ctx)
            except Exception as e:
                logger.warning(f"[deadline] {type(strategy).__name__} failed for {detail_url}: {e}")
                continue
            if resolution is not None:
                logger.debug(f"[deadline] {resolution.method.value} -> {resolution.deadline.date()} ({detail_url})")
                return resolution

        # Strategies were overridden without a fallback
        days = fallback_days_for(source)
        logger.warning(f"[deadline] No strategy resolved {detail_url}, using {days}-day default")
        return DeadlineResolution(deadline=days_from_now(days, ctx.now), method=DeadlineMethod.FALLBACK)
