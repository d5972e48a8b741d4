"""
Campaign upsert sink.

Writes candidates to the campaigns table with a single
INSERT ... ON CONFLICT (source_site, campaign_id) DO UPDATE per record.
Each record is committed on its own; a bad record is rolled back and
skipped, a lost connection aborts the rest of the batch.
"""

import re
import logging
import hashlib
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import psycopg2
from psycopg2.extras import RealDictCursor
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.errors import PersistenceError
from core.models import CandidateRecord, Source
from core.pre_upsert_validator import PreUpsertValidator, get_validator

logger = logging.getLogger(__name__)

CONNECT_ATTEMPTS = 3

UPSERT_COLUMNS = [
    'campaign_id',
    'source_site',
    'title',
    'description',
    'reward_points',
    'deadline',
    'remaining_days',
    'detail_url',
    'is_hidden',
    'is_invalid',
    'extracted_at',
]

# Tried in order; the first match scoped to the record's source wins
CAMPAIGN_ID_PATTERNS = {
    Source.REVIEWPLACE: [re.compile(r'pr/\?id=(\d+)')],
    Source.REVIEWNOTE: [re.compile(r'campaigns?/(\d+)')],
    Source.REVU: [re.compile(r'campaigns?/([a-zA-Z0-9]+)')],
}
QUERY_ID_PATTERN = re.compile(r'[?&]id=([a-zA-Z0-9]+)')


def _source_prefix(source) -> str:
    if isinstance(source, Source):
        return source.short_name
    return str(source or 'unknown').split('.')[0] or 'unknown'


def generate_campaign_id(source, url: str) -> str:
    """
    Stable identifier for a campaign detail URL.

    Same (source, url) always yields the same id, so repeated crawls update
    the existing row instead of inserting a new one.
    """
    prefix = _source_prefix(source)
    url = (url or '').strip()

    for pattern in CAMPAIGN_ID_PATTERNS.get(source, []):
        match = pattern.search(url)
        if match:
            return f"{prefix}-{match.group(1)}"

    match = QUERY_ID_PATTERN.search(url)
    if match:
        return f"{prefix}-{match.group(1)}"

    source_key = source.value if isinstance(source, Source) else str(source)
    digest = hashlib.sha256(f"{source_key}|{url}".encode('utf-8')).hexdigest()[:16]
    return f"{prefix}-{digest}"


class CampaignUpsert:
    """Idempotent campaign writer"""

    def __init__(self, db_url: Optional[str] = None, table: Optional[str] = None,
                 validator: Optional[PreUpsertValidator] = None):
        from app.db_config import db_config
        self.db_url = db_config.db_url if db_url is None else db_url
        self.table = table or db_config.campaigns_table
        self.validator = validator or get_validator()
        self.last_failed = 0

    @retry(
        stop=stop_after_attempt(CONNECT_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(psycopg2.OperationalError),
        reraise=True
    )
    def _connect(self):
        return psycopg2.connect(self.db_url, connect_timeout=5)

    def _get_db_conn(self):
        if not self.db_url:
            raise PersistenceError("Database not configured (SUPABASE_DB_URL / DATABASE_URL)")
        try:
            return self._connect()
        except psycopg2.Error as e:
            logger.error(f"[upsert] Failed to connect to database: {e}")
            raise PersistenceError(f"Database connection failed: {e}") from e

    def _upsert_sql(self) -> str:
        columns = ', '.join(UPSERT_COLUMNS)
        placeholders = ', '.join(['%s'] * len(UPSERT_COLUMNS))
        updates = ', '.join(
            f"{col} = EXCLUDED.{col}" for col in UPSERT_COLUMNS if col not in ('campaign_id', 'source_site')
        )
        return (
            f"INSERT INTO {self.table} ({columns}, updated_at) "
            f"VALUES ({placeholders}, NOW()) "
            f"ON CONFLICT (source_site, campaign_id) DO UPDATE SET {updates}, updated_at = NOW() "
            f"RETURNING id"
        )

    def collapse_collisions(self, records: Sequence[CandidateRecord]) -> List[CandidateRecord]:
        """Drop records whose campaign_id already appeared earlier in the batch."""
        seen: Dict[str, CandidateRecord] = {}
        kept = []
        for record in records:
            campaign_id = generate_campaign_id(record.source, record.detail_url)
            if campaign_id in seen:
                logger.warning(
                    f"[upsert] campaign_id collision {campaign_id}: keeping {seen[campaign_id].detail_url}, "
                    f"dropping {record.detail_url}"
                )
                continue
            seen[campaign_id] = record
            kept.append(record)
        return kept

    def save(self, records: Sequence[CandidateRecord], now: Optional[datetime] = None) -> int:
        """
        Upsert records one at a time.

        Returns:
            Number of records written

        Raises:
            PersistenceError: database unreachable, or the connection dropped
                mid-batch (carries the number already committed)
        """
        self.last_failed = 0
        if not records:
            return 0

        records = self.collapse_collisions(records)
        sql = self._upsert_sql()
        saved = 0

        conn = self._get_db_conn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                for record in records:
                    try:
                        row, _ = self.validator.prepare(record, now)
                        row['campaign_id'] = generate_campaign_id(record.source, row['detail_url'])
                        cur.execute(sql, [row[col] for col in UPSERT_COLUMNS])
                        conn.commit()
                        saved += 1
                    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                        logger.error(f"[upsert] Connection lost after {saved} records: {e}")
                        raise PersistenceError(f"Connection lost during batch write: {e}", saved=saved) from e
                    except psycopg2.Error as e:
                        conn.rollback()
                        self.last_failed += 1
                        logger.warning(f"[upsert] Skipping {record.detail_url}: {e}")
                    except (KeyError, TypeError, ValueError) as e:
                        self.last_failed += 1
                        logger.warning(f"[upsert] Could not map {record.detail_url}: {e}")
        finally:
            try:
                conn.close()
            except psycopg2.Error:
                pass

        logger.info(f"[upsert] Saved {saved}/{len(records)} campaigns to {self.table} ({self.last_failed} failed)")
        return saved
