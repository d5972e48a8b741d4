"""
In-batch duplicate collapsing.

The same campaign often appears more than once on a listing page (a card
link and a banner link, say). Duplicates are keyed by normalized title and
reward; the first occurrence is kept. Duplicates against storage are not
handled here: the upsert key (source_site, campaign_id) resolves those.
"""
import re
import logging
import unicodedata
from typing import Iterable, List, Tuple

from core.models import CandidateRecord

logger = logging.getLogger(__name__)


def normalize_title(title: str) -> str:
    if not title:
        return ""
    text = unicodedata.normalize("NFKC", title).lower()
    text = re.sub(r"[^\w\s]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def dedupe_key(record: CandidateRecord) -> Tuple[str, int]:
    return normalize_title(record.title), record.reward_amount


def dedupe(records: Iterable[CandidateRecord]) -> List[CandidateRecord]:
    kept: List[CandidateRecord] = []
    seen = set()
    removed = 0
    for record in records:
        key = dedupe_key(record)
        if key in seen:
            removed += 1
            logger.debug(f"[dedupe] Dropping duplicate {record.title!r} ({record.detail_url})")
            continue
        seen.add(key)
        kept.append(record)

    if removed:
        logger.info(f"[dedupe] Collapsed {removed} duplicates, {len(kept)} remain")
    return kept
