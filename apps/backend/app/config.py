import os
from typing import Optional

from app.db_config import db_config
from core.dates import DEFAULT_TIMEZONE


def _env_bool(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class CrawlSettings:
    """Environment-driven settings for crawl runs and the trigger endpoint"""

    def __init__(self):
        self.env = os.getenv("MOREREVIEW_ENV", "dev").lower()
        self.cron_secret: Optional[str] = os.getenv("CRON_SECRET")
        self.fetch_timeout = float(os.getenv("CRAWL_FETCH_TIMEOUT", "8"))
        self.render_timeout_ms = int(os.getenv("CRAWL_RENDER_TIMEOUT_MS", "20000"))
        # Overrides every per-source delay when set
        delay = os.getenv("CRAWL_INTER_SOURCE_DELAY")
        self.inter_source_delay: Optional[float] = float(delay) if delay else None
        self.run_timeout = float(os.getenv("CRAWL_RUN_TIMEOUT", "480"))
        self.use_browser = _env_bool("CRAWL_USE_BROWSER")
        self.timezone = DEFAULT_TIMEZONE
        self.rate_limit_crawl = os.getenv("RATE_LIMIT_CRAWL", "5/minute")
        self.rate_limit_default = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
        self.reviewplace_category = os.getenv("REVIEWPLACE_CATEGORY", "제품")

    @property
    def is_production(self) -> bool:
        return self.env == "production"


class Capabilities:
    @staticmethod
    def is_db_enabled() -> bool:
        return db_config.is_db_enabled

    @staticmethod
    def is_browser_enabled() -> bool:
        return get_settings().use_browser


_settings: Optional[CrawlSettings] = None


def get_settings() -> CrawlSettings:
    global _settings
    if _settings is None:
        _settings = CrawlSettings()
    return _settings
