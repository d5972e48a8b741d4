import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.dedupe import dedupe, normalize_title
from core.models import CandidateRecord, Source


def _record(title, reward, url):
    return CandidateRecord(title=title, reward_amount=reward, detail_url=url, source=Source.REVIEWPLACE)


def test_normalize_title():
    assert normalize_title("  [서울] 브랜드   체험단 모집! ") == "서울 브랜드 체험단 모집"
    assert normalize_title("") == ""


def test_duplicates_collapse_first_wins():
    records = [
        _record("브랜드 체험단 모집", 10000, "https://www.reviewplace.co.kr/pr/?id=1"),
        _record("브랜드  체험단 모집!", 10000, "https://www.reviewplace.co.kr/pr/?id=2"),
        _record("브랜드 체험단 모집", 20000, "https://www.reviewplace.co.kr/pr/?id=3"),
    ]

    result = dedupe(records)

    assert [r.detail_url for r in result] == [
        "https://www.reviewplace.co.kr/pr/?id=1",
        "https://www.reviewplace.co.kr/pr/?id=3",
    ]


def test_no_duplicates_unchanged():
    records = [_record("A 체험단", 1, "u1"), _record("B 체험단", 1, "u2")]
    assert dedupe(records) == records
