"""
Per-site crawl configuration.

Each supported site has one immutable SourceConfig; look them up with
get_source_config(Source.X). Selector lists are ordered: the first selector
that matches anything wins.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from urllib.parse import quote

from core.models import Source

DEFAULT_REVIEWPLACE_CATEGORY = "제품"
DEFAULT_REVU_CATEGORY = "오늘오픈"

# Shared amount pattern; group 1 is the number with thousands separators
REWARD_PATTERN = r"(\d{1,3}(?:,\d{3})*)\s*[P포원]"

COMMON_DETAIL_SELECTORS: Tuple[str, ...] = (
    ".campaign-info",
    ".detail-info",
    ".info-section",
    ".date-info",
    ".deadline",
    ".period",
    "p",
    "div",
    "span",
    "strong",
)


@dataclass(frozen=True)
class SourceConfig:
    source: Source
    base_url: str
    listing_url: str
    item_selectors: Tuple[str, ...]
    title_selectors: Tuple[str, ...]
    reward_pattern: str
    url_pattern: str
    min_reward: int = 1
    allow_zero_reward: bool = False
    rendered_first: bool = False
    settle_ms: int = 0
    scroll_steps: int = 0
    fallback_days: int = 7
    description_pattern: Optional[str] = None
    detail_selectors: Tuple[str, ...] = COMMON_DETAIL_SELECTORS
    delay_after_seconds: float = 0.0

    def listing_url_for(self, category: Optional[str] = None) -> str:
        if "{category}" not in self.listing_url:
            return self.listing_url
        default = DEFAULT_REVIEWPLACE_CATEGORY if self.source == Source.REVIEWPLACE else DEFAULT_REVU_CATEGORY
        return self.listing_url.format(category=quote(category or default))


SOURCE_CONFIGS: Dict[Source, SourceConfig] = {
    Source.REVIEWPLACE: SourceConfig(
        source=Source.REVIEWPLACE,
        base_url="https://www.reviewplace.co.kr",
        listing_url="https://www.reviewplace.co.kr/pr/?ct1={category}",
        item_selectors=('a[href*="/pr/?id="]',),
        title_selectors=("h3", ".title", "p"),
        reward_pattern=r"(\d{1,3}(?:,\d{3})*)\s*P",
        url_pattern=r"/pr/\?id=",
        min_reward=1,
        fallback_days=7,
        description_pattern=r"제공내역[:\s]*([^\n]+)",
        detail_selectors=(".campaign-detail", ".pr-info") + COMMON_DETAIL_SELECTORS,
        delay_after_seconds=2.0,
    ),
    Source.REVIEWNOTE: SourceConfig(
        source=Source.REVIEWNOTE,
        base_url="https://www.reviewnote.co.kr",
        listing_url="https://www.reviewnote.co.kr/campaigns",
        item_selectors=(
            'a[href*="/campaigns/"]',
            'a[href*="/campaign/"]',
            ".campaign-item",
            ".list-item",
        ),
        title_selectors=("h3", ".title", ".campaign-title", "p"),
        reward_pattern=REWARD_PATTERN,
        url_pattern=r"/campaign",
        min_reward=0,
        allow_zero_reward=True,
        rendered_first=True,
        settle_ms=10000,
        scroll_steps=10,
        fallback_days=14,
        detail_selectors=(".campaign-content", ".store-info") + COMMON_DETAIL_SELECTORS,
        delay_after_seconds=3.0,
    ),
    Source.REVU: SourceConfig(
        source=Source.REVU,
        base_url="https://www.revu.net",
        listing_url="https://www.revu.net/category/{category}",
        item_selectors=(
            'a[href*="/campaign/"]',
            ".campaign-card",
            ".product-item",
            "[data-campaign]",
        ),
        title_selectors=("h3", ".title", ".product-name", ".campaign-title"),
        reward_pattern=REWARD_PATTERN,
        url_pattern=r"/campaign",
        min_reward=1,
        rendered_first=True,
        settle_ms=5000,
        fallback_days=10,
        detail_selectors=(".product-info", ".campaign-meta") + COMMON_DETAIL_SELECTORS,
    ),
}

UNKNOWN_SOURCE_FALLBACK_DAYS = 7


def get_source_config(source: Source) -> SourceConfig:
    return SOURCE_CONFIGS[source]


def fallback_days_for(source: Optional[Source]) -> int:
    if source is None or source not in SOURCE_CONFIGS:
        return UNKNOWN_SOURCE_FALLBACK_DAYS
    return SOURCE_CONFIGS[source].fallback_days
