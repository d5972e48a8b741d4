"""
Pre-Upsert Validation Module
Makes every candidate safe to write before it reaches the database.

- Required fields are never null: empty titles get a placeholder, missing
  deadlines get the source default.
- remaining_days is always >= 1.
- Titles that look like footer text, menu labels or bare store names are
  flagged is_invalid (the row is still stored; the UI hides it).
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from core.dates import days_from_now, now_local, to_local
from core.models import CandidateRecord, Source
from crawler.sources import fallback_days_for

logger = logging.getLogger(__name__)

TITLE_PLACEHOLDER = "제목 없음"
MIN_SAFE_REMAINING_DAYS = 1


class TitleClassifier:
    """Flags titles that are not campaign names and scores title quality 0-100"""

    MIN_LENGTH = 3
    MAX_LENGTH = 100

    COMPANY_INFO_PATTERNS = [
        r"info@", r"mailto:", r"©.*\d{4}", r"주식회사", r"대표\s*:", r"사업자등록번호",
        r"통신판매업신고", r"개인정보처리방침", r"이용약관", r"고객센터",
        r"[\w.+-]+@[\w-]+\.[\w.]+", r"\d{2,3}-\d{3,4}-\d{4}",
        r"[가-힣]+(시|도)\s+[가-힣]+(구|군)\s+[가-힣0-9]+(로|길)",
    ]
    UI_PATTERNS = [
        r"^(제품|캠페인|체험단|리뷰|신청|참여|이벤트)$",
        r"^[가-힣]{1,3}(다방|카페|점)$",
        r"검색|필터|정렬|카테고리",
        r"로그인|회원가입|마이페이지",
        r"^(전체|선택|확인|취소|삭제)$",
        r"^[A-Za-z]{1,10}$",
    ]
    MEANINGLESS_PATTERNS = [
        r"^[a-zA-Z0-9]{1,10}$",
        r"[가-힣]{20,}",
        r"(.)\1{5,}",
        r"^[^가-힣a-zA-Z]*$",
    ]
    KEYWORDS = [
        "체험", "캠페인", "리뷰", "모집", "신청", "참여", "이벤트", "혜택", "무료", "제공",
        "선착순", "당첨", "증정", "할인", "쿠폰", "포인트", "서비스", "상품", "제품",
        "브랜드", "매장", "방문",
    ]
    SCORE_KEYWORDS = ["체험", "캠페인", "리뷰", "모집", "신청"]

    def invalid_reason(self, title: Optional[str]) -> Optional[str]:
        if not title:
            return "empty"
        text = title.strip()
        if len(text) < self.MIN_LENGTH or len(text) > self.MAX_LENGTH:
            return "length"
        for pattern in self.COMPANY_INFO_PATTERNS:
            if re.search(pattern, text):
                return "company_info"
        for pattern in self.UI_PATTERNS:
            if re.search(pattern, text):
                return "ui_text"
        for pattern in self.MEANINGLESS_PATTERNS:
            if re.search(pattern, text):
                return "meaningless"
        if not any(k in text for k in self.KEYWORDS):
            if len(text) < 8 or re.match(r"^[가-힣]{2,6}$", text):
                return "no_keyword"
        return None

    def is_invalid(self, title: Optional[str]) -> bool:
        return self.invalid_reason(title) is not None

    def score(self, title: Optional[str]) -> int:
        if not title:
            return 0
        text = title.strip()
        score = 50
        if 10 <= len(text) <= 50:
            score += 20
        if any(k in text for k in self.SCORE_KEYWORDS):
            score += 15
        if re.search(r"[가-힣]{2,}", text):
            score += 10
        if re.search(r"[\d\[\]()]", text):
            score += 5
        if len(text) < 5:
            score -= 30
        if len(text) > 80:
            score -= 20
        if re.search(r"(.)\1{3,}", text):
            score -= 25
        return max(0, min(100, score))


class PreUpsertValidator:
    """
    Null-safety pass for campaign rows.
    """

    def __init__(self, classifier: Optional[TitleClassifier] = None):
        self.classifier = classifier or TitleClassifier()

    def prepare(self, record: CandidateRecord, now: Optional[datetime] = None) -> Tuple[Dict[str, Any], List[str]]:
        """
        Map a candidate to a storable row.

        Returns:
            Tuple of (row, issues); issues are data-quality notes, never fatal
        """
        now = to_local(now) if now else now_local()
        issues: List[str] = []

        title = (record.title or "").strip()
        if not title:
            title = TITLE_PLACEHOLDER
            issues.append(f"Empty title replaced with placeholder ({record.detail_url})")
        elif len(title) < 5:
            issues.append(f"Short title: {title!r}")

        if not isinstance(record.source, Source):
            issues.append(f"Unknown source {record.source!r}")
        fallback_days = fallback_days_for(record.source if isinstance(record.source, Source) else None)

        deadline = record.resolved_deadline
        if deadline is None:
            deadline = days_from_now(fallback_days, now)
            issues.append(f"Missing deadline replaced with {fallback_days}-day default")

        remaining = record.remaining_days(now)
        if remaining is None:
            remaining = fallback_days
        elif remaining < MIN_SAFE_REMAINING_DAYS:
            remaining = MIN_SAFE_REMAINING_DAYS

        detail_url = (record.detail_url or "").strip()
        if not detail_url.startswith(("http://", "https://")):
            issues.append(f"Detail URL is not http(s): {detail_url!r}")

        invalid_reason = self.classifier.invalid_reason(title)
        title_score = self.classifier.score(title)
        if invalid_reason:
            logger.info(f"[validator] Title flagged invalid ({invalid_reason}, score {title_score}): {title!r}")
        else:
            logger.debug(f"[validator] Title score {title_score}: {title!r}")

        row = {
            "title": title,
            "description": record.description,
            "reward_points": max(0, int(record.reward_amount or 0)),
            "deadline": deadline,
            "remaining_days": remaining,
            "detail_url": detail_url,
            "source_site": record.source.value if isinstance(record.source, Source) else str(record.source),
            "is_hidden": False,
            "is_invalid": invalid_reason is not None,
            "extracted_at": now,
        }
        for issue in issues:
            logger.warning(f"[validator] {issue}")
        return row, issues


_validator: Optional[PreUpsertValidator] = None


def get_validator() -> PreUpsertValidator:
    global _validator
    if _validator is None:
        _validator = PreUpsertValidator()
    return _validator
