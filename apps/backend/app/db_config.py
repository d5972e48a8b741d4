"""
Database configuration module.
Uses SUPABASE_DB_URL (Supabase pooler connection string) when present and
falls back to DATABASE_URL for local Postgres.
"""

import os
import logging
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def mask_db_url(url: str) -> str:
    """Connection string with the password hidden, for logs."""
    try:
        parsed = urlparse(url.replace('[', '').replace(']', ''))
        return f"{parsed.scheme}://{parsed.username}:***@{parsed.hostname}:{parsed.port or 5432}{parsed.path}"
    except Exception:
        return "<unparseable>"


class DBConfig:
    """Resolves the Postgres connection string from the environment"""

    def __init__(self):
        self.supabase_db_url = os.getenv("SUPABASE_DB_URL")
        self.database_url = os.getenv("DATABASE_URL")
        self.campaigns_table = os.getenv("CAMPAIGNS_TABLE", "campaigns")

        if self.supabase_db_url and self.database_url:
            logger.info("[db_config] Both SUPABASE_DB_URL and DATABASE_URL set; using SUPABASE_DB_URL")

        url = self.db_url
        if url:
            logger.info(f"[db_config] Database configured: {mask_db_url(url)}")
        else:
            logger.warning("[db_config] SUPABASE_DB_URL / DATABASE_URL not set - campaigns will not be saved")

    @property
    def db_url(self) -> Optional[str]:
        url = self.supabase_db_url or self.database_url
        if url:
            # Supabase dashboard copies hosts as [host]
            url = url.replace('[', '').replace(']', '')
        return url

    @property
    def is_db_enabled(self) -> bool:
        return bool(self.db_url)


# Global instance
db_config = DBConfig()
