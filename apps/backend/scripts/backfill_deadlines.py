"""
Backfill null deadlines and non-positive remaining_days on stored campaigns
with the source default (reviewplace 7, reviewnote 14, revu 10 days).
"""

import os
import sys
import argparse
from pathlib import Path

import psycopg2
from psycopg2.extras import RealDictCursor
from dotenv import load_dotenv

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.dates import days_from_now, now_local, remaining_days
from core.models import Source
from crawler.sources import fallback_days_for


def plan_fix(row, now):
    """New (deadline, remaining_days) for a row, or None when it is fine."""
    deadline = row['deadline']
    if deadline is None:
        days = fallback_days_for(Source.from_name(row['source_site'] or ''))
        return days_from_now(days, now), days

    days = remaining_days(deadline, now)
    if row['remaining_days'] is None or row['remaining_days'] <= 0 or row['remaining_days'] != max(days, 1):
        return deadline, max(days, 1)
    return None


def backfill_deadlines(limit: int = 1000, dry_run: bool = False):
    """
    Args:
        limit: Maximum number of rows to inspect
        dry_run: If True, don't update database
    """
    db_url = os.getenv('SUPABASE_DB_URL') or os.getenv('DATABASE_URL')
    if not db_url:
        print("ERROR: SUPABASE_DB_URL or DATABASE_URL environment variable is not set")
        sys.exit(1)
    table = os.getenv('CAMPAIGNS_TABLE', 'campaigns')

    conn = psycopg2.connect(db_url)
    now = now_local()
    updated = 0
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT id, source_site, deadline, remaining_days
                FROM {table}
                WHERE deadline IS NULL OR remaining_days IS NULL OR remaining_days <= 0
                LIMIT %s
                """,
                (limit,)
            )
            rows = cur.fetchall()
            print(f"Found {len(rows)} campaigns needing a deadline fix")

            for row in rows:
                fix = plan_fix(row, now)
                if fix is None:
                    continue
                deadline, days = fix
                print(f"  {row['id']} ({row['source_site']}): deadline={deadline.date()} remaining_days={days}")
                if not dry_run:
                    cur.execute(
                        f"UPDATE {table} SET deadline = %s, remaining_days = %s, updated_at = NOW() WHERE id = %s",
                        (deadline, days, row['id'])
                    )
                updated += 1

        if dry_run:
            conn.rollback()
            print(f"Dry run: {updated} rows would be updated")
        else:
            conn.commit()
            print(f"Updated {updated} rows")
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


if __name__ == '__main__':
    load_dotenv()

    parser = argparse.ArgumentParser(description='Fill missing campaign deadlines with source defaults')
    parser.add_argument('--limit', type=int, default=1000, help='Maximum number of rows to inspect')
    parser.add_argument('--dry-run', action='store_true', help='Dry run mode (no database updates)')
    args = parser.parse_args()

    backfill_deadlines(limit=args.limit, dry_run=args.dry_run)
