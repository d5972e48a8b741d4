"""
Tests for the listing-page parser and per-source configs.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ParseError
from core.models import Source
from crawler.parser import CampaignParser, is_excluded, parse_reward
from crawler.sources import SOURCE_CONFIGS, get_source_config, REWARD_PATTERN


REVIEWPLACE_HTML = """
<html><body>
  <div class="list">
    <a href="/pr/?id=101">
      <span class="title">브랜드 체험단 모집</span>
      <span>제공내역: 스킨케어 세트 10,000P</span>
      <span>D-5</span>
    </a>
    <a href="/pr/?id=102">
      <span class="title">무료 시식 리뷰 이벤트</span>
      <span>포인트 없음</span>
    </a>
    <a href="/pr/?id=103">
      <span class="title">홍대카페</span>
      <span>5,000P</span>
    </a>
    <a href="/pr/?id=104">
      <span class="title">ab</span>
      <span>5,000P</span>
    </a>
    <a href="/pr/?id=101">
      <span class="title">브랜드 체험단 모집</span>
      <span>10,000P</span>
    </a>
  </div>
</body></html>
"""


class TestSourceConfigs:

    def test_every_source_has_a_config(self):
        for source in Source:
            assert get_source_config(source).source == source

    def test_configs_are_immutable(self):
        config = get_source_config(Source.REVU)
        with pytest.raises(Exception):
            config.base_url = "https://example.com"

    def test_listing_url_category(self):
        config = get_source_config(Source.REVIEWPLACE)
        assert config.listing_url_for("식품").startswith("https://www.reviewplace.co.kr/pr/?ct1=")
        assert "%EC%A0%9C%ED%92%88" in config.listing_url_for()
        assert get_source_config(Source.REVIEWNOTE).listing_url_for() == "https://www.reviewnote.co.kr/campaigns"

    def test_fallback_days(self):
        assert SOURCE_CONFIGS[Source.REVIEWPLACE].fallback_days == 7
        assert SOURCE_CONFIGS[Source.REVIEWNOTE].fallback_days == 14
        assert SOURCE_CONFIGS[Source.REVU].fallback_days == 10


class TestHelpers:

    def test_parse_reward(self):
        assert parse_reward("리워드 12,500P", REWARD_PATTERN) == 12500
        assert parse_reward("30,000원 상당", REWARD_PATTERN) == 30000
        assert parse_reward("리워드 없음", REWARD_PATTERN) == 0

    def test_excluded_paths(self):
        assert is_excluded("https://www.revu.net/about/campaign", "회사 소개 캠페인", "회사 소개 캠페인")
        assert is_excluded("https://www.revu.net/faq/campaign", "자주 묻는 질문 모음", "")

    def test_store_names_need_campaign_keyword(self):
        assert is_excluded("https://www.revu.net/campaign/1", "성수다방", "성수다방")
        assert not is_excluded("https://www.revu.net/campaign/1", "성수다방", "성수다방 체험단 모집")


class TestCampaignParser:

    def test_reviewplace_listing(self):
        parser = CampaignParser(get_source_config(Source.REVIEWPLACE))
        records = parser.parse(REVIEWPLACE_HTML)

        assert len(records) == 1
        record = records[0]
        assert record.title == "브랜드 체험단 모집"
        assert record.reward_amount == 10000
        assert record.detail_url == "https://www.reviewplace.co.kr/pr/?id=101"
        assert record.source == Source.REVIEWPLACE
        assert record.description == "스킨케어 세트"
        assert "D-5" in record.listing_text

    def test_zero_reward_allowed_for_reviewnote(self):
        html = """
        <div>
          <a href="/campaigns/7"><span class="title">방문 체험단 모집</span><span>D-3</span></a>
        </div>
        """
        records = CampaignParser(get_source_config(Source.REVIEWNOTE)).parse(html)
        assert len(records) == 1
        assert records[0].reward_amount == 0
        assert records[0].detail_url == "https://www.reviewnote.co.kr/campaigns/7"
        assert records[0].description is None

    def test_second_item_selector_used_when_first_matches_nothing(self):
        html = """
        <div>
          <a href="/campaign/55"><span class="title">신제품 리뷰 캠페인</span><span>3,000P</span></a>
        </div>
        """
        records = CampaignParser(get_source_config(Source.REVIEWNOTE)).parse(html)
        assert [r.detail_url for r in records] == ["https://www.reviewnote.co.kr/campaign/55"]

    def test_url_must_match_pattern(self):
        html = """
        <div class="campaign-card"><a href="/event/1"><span class="title">여름 이벤트 체험단</span></a>5,000P</div>
        """
        assert CampaignParser(get_source_config(Source.REVU)).parse(html) == []

    def test_excluded_item_is_dropped(self):
        html = """
        <div>
          <a href="/campaigns/101"><span class="title">브랜드 체험단 모집</span><span>10,000P</span></a>
          <a href="/about/campaigns/"><span class="title">회사 소개 캠페인 안내</span><span>0P</span></a>
        </div>
        """
        records = CampaignParser(get_source_config(Source.REVIEWNOTE)).parse(html)
        assert len(records) == 1
        assert records[0].reward_amount == 10000

    def test_empty_document_raises(self):
        with pytest.raises(ParseError):
            CampaignParser(get_source_config(Source.REVU)).parse("   ")

    def test_page_without_items(self):
        assert CampaignParser(get_source_config(Source.REVU)).parse("<html><body><p>점검 중</p></body></html>") == []
