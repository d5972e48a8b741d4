"""
Listing-page parser shared by all campaign sources.

The per-source differences live entirely in SourceConfig; this module
turns a listing document into CandidateRecords and silently drops items
that are navigation links, brand pages or store names.
"""
import re
import logging
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from core.errors import ParseError
from core.models import CandidateRecord
from crawler.sources import SourceConfig

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3

EXCLUDED_PATHS = [
    "/brandzone/", "/brands/", "/company/", "/about/", "/faq", "/guide",
    "/policy", "/terms", "/mypage", "/login", "/signup", "/search", "/notice",
]

# Store or brand names that link to a shop page rather than a campaign
STORE_NAME_PATTERNS = [
    re.compile(r"^[가-힣]+다방$"),
    re.compile(r"^[가-힣]+카페$"),
    re.compile(r"^[가-힣]+점$"),
    re.compile(r"^[가-힣]{2,6}$"),
]

CAMPAIGN_KEYWORDS = ["체험", "캠페인", "리뷰", "모집", "신청", "참여", "이벤트", "혜택"]

AMOUNT_PATTERN = re.compile(r"\d{1,3}(?:,\d{3})*\s*[P포원]")


def has_campaign_keyword(text: str) -> bool:
    return any(keyword in text for keyword in CAMPAIGN_KEYWORDS)


def is_excluded(url: str, title: str, item_text: str) -> bool:
    """True for items that are not campaigns."""
    lowered = url.lower()
    if any(path in lowered for path in EXCLUDED_PATHS):
        return True
    if not has_campaign_keyword(item_text):
        compact = title.strip()
        if any(pattern.match(compact) for pattern in STORE_NAME_PATTERNS):
            return True
    return False


def parse_reward(text: str, pattern: str) -> int:
    match = re.search(pattern, text)
    if not match:
        return 0
    try:
        return int(match.group(1).replace(",", ""))
    except (IndexError, ValueError):
        return 0


class CampaignParser:
    """Extract candidate campaigns from a listing document"""

    def __init__(self, config: SourceConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{config.source.short_name}")

    def _select_items(self, soup: BeautifulSoup) -> List[Tag]:
        for selector in self.config.item_selectors:
            items = soup.select(selector)
            if items:
                self.logger.debug(f"[parser] {len(items)} items via {selector}")
                return items
        return []

    def _extract_title(self, item: Tag) -> Optional[str]:
        for selector in self.config.title_selectors:
            element = item.select_one(selector)
            if element:
                title = element.get_text(" ", strip=True)
                if title:
                    return title
        return None

    def _extract_url(self, item: Tag) -> Optional[str]:
        link = item if item.name == "a" and item.get("href") else item.find("a", href=True)
        if not link:
            return None
        href = link.get("href", "").strip()
        if not href or href.startswith("#") or href.startswith("javascript:"):
            return None
        return urljoin(self.config.base_url + "/", href)

    def _extract_description(self, text: str) -> Optional[str]:
        if not self.config.description_pattern:
            return None
        match = re.search(self.config.description_pattern, text)
        if not match:
            return None
        description = AMOUNT_PATTERN.sub("", match.group(1))
        description = re.sub(r"\s+", " ", description).strip(" ,/")
        return description or None

    def _reward_acceptable(self, reward: int) -> bool:
        if self.config.allow_zero_reward:
            return reward >= 0
        return reward >= max(self.config.min_reward, 1)

    def parse(self, html: str) -> List[CandidateRecord]:
        """
        Parse a listing document.

        Raises:
            ParseError: the document is empty or not parseable
        """
        if not html or not html.strip():
            raise ParseError(f"Empty document for {self.config.source.value}")
        try:
            soup = BeautifulSoup(html, "lxml")
        except Exception as e:
            raise ParseError(f"Unparseable document for {self.config.source.value}: {e}") from e

        records: List[CandidateRecord] = []
        seen_urls = set()

        for item in self._select_items(soup):
            try:
                text = item.get_text("\n", strip=True)
                title = self._extract_title(item)
                if not title or len(title) < MIN_TITLE_LENGTH:
                    continue

                url = self._extract_url(item)
                if not url or not re.search(self.config.url_pattern, url):
                    continue
                if url in seen_urls:
                    continue
                if is_excluded(url, title, text):
                    self.logger.debug(f"[parser] Excluded {title!r} ({url})")
                    continue

                reward = parse_reward(text, self.config.reward_pattern)
                if not self._reward_acceptable(reward):
                    continue

                seen_urls.add(url)
                records.append(CandidateRecord(
                    title=title,
                    reward_amount=reward,
                    detail_url=url,
                    source=self.config.source,
                    description=self._extract_description(text),
                    listing_text=text,
                ))
            except Exception as e:
                self.logger.warning(f"[parser] Skipping malformed item: {e}")
                continue

        self.logger.info(f"[parser] {self.config.source.value}: {len(records)} candidates")
        return records


def parse(html: str, config: SourceConfig) -> List[CandidateRecord]:
    return CampaignParser(config).parse(html)
