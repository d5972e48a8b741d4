"""
Report detail URLs stored more than once. Read-only.
"""

import os
import sys
import argparse

import psycopg2
from psycopg2.extras import RealDictCursor
from dotenv import load_dotenv


def get_db_url():
    """Get database URL from environment"""
    db_url = os.getenv("SUPABASE_DB_URL") or os.getenv("DATABASE_URL")
    if not db_url:
        print("Error: SUPABASE_DB_URL or DATABASE_URL not set")
        sys.exit(1)
    return db_url


def find_duplicates(conn, table: str, limit: int):
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"""
            SELECT detail_url,
                   COUNT(*) AS copies,
                   ARRAY_AGG(source_site || ':' || campaign_id ORDER BY campaign_id) AS keys
            FROM {table}
            GROUP BY detail_url
            HAVING COUNT(*) > 1
            ORDER BY copies DESC
            LIMIT %s
            """,
            (limit,)
        )
        return cur.fetchall()


def check_duplicates(limit: int = 100):
    table = os.getenv("CAMPAIGNS_TABLE", "campaigns")
    conn = psycopg2.connect(get_db_url())
    try:
        rows = find_duplicates(conn, table, limit)
        if not rows:
            print("No duplicate detail URLs found.")
            return

        print("=" * 80)
        print(f"{len(rows)} detail URLs stored more than once")
        print("=" * 80)
        for row in rows:
            print(f"{row['copies']}x {row['detail_url']}")
            for key in row['keys']:
                print(f"    {key}")
    finally:
        conn.close()


if __name__ == '__main__':
    load_dotenv()

    parser = argparse.ArgumentParser(description='List detail URLs shared by several campaign rows')
    parser.add_argument('--limit', type=int, default=100, help='Maximum URLs to report')
    args = parser.parse_args()

    check_duplicates(limit=args.limit)
