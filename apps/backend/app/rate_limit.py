"""
Rate limiting.

`limiter` is the app-wide slowapi limiter for public endpoints.
RateLimitStore is the sliding-window limiter for the crawl trigger: the app
constructs one, puts it on app.state, and calls sweep() from its maintenance
hook to drop idle keys. Counters are per process.
"""
import os
import time
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Tuple

from fastapi import HTTPException, Request
from limits import parse as parse_limit
from slowapi import Limiter
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
RATE_LIMIT_CRAWL = os.getenv("RATE_LIMIT_CRAWL", "5/minute")
IDLE_EXPIRY_SECONDS = 24 * 3600

limiter = Limiter(key_func=get_remote_address, default_limits=[RATE_LIMIT_DEFAULT])


@dataclass(frozen=True)
class RateLimitRule:
    limit: int
    window_seconds: int

    @classmethod
    def parse(cls, value: str) -> "RateLimitRule":
        """'5/minute', '100 per hour' and other slowapi-style strings."""
        item = parse_limit(value)
        return cls(limit=item.amount, window_seconds=item.get_expiry())


@dataclass
class RateLimitEntry:
    hits: Deque[float] = field(default_factory=deque)
    blocked_until: float = 0.0
    last_seen: float = 0.0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimitStore:
    """Sliding-window request counter keyed by 'identity:path'"""

    def __init__(self, default_rule: Optional[RateLimitRule] = None,
                 path_rules: Optional[Dict[str, RateLimitRule]] = None):
        self.default_rule = default_rule or RateLimitRule.parse(RATE_LIMIT_DEFAULT)
        self.path_rules = dict(path_rules or {})
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def rule_for(self, path: str) -> RateLimitRule:
        return self.path_rules.get(path, self.default_rule)

    def hit(self, identity: str, path: str, now: Optional[float] = None) -> RateLimitDecision:
        now = time.time() if now is None else now
        rule = self.rule_for(path)
        key = f"{identity}:{path}"

        with self._lock:
            entry = self._entries.setdefault(key, RateLimitEntry())
            entry.last_seen = now

            window_start = now - rule.window_seconds
            while entry.hits and entry.hits[0] <= window_start:
                entry.hits.popleft()

            if entry.blocked_until > now:
                retry_after = max(1, int(entry.blocked_until - now + 0.999))
                return RateLimitDecision(False, rule.limit, 0, entry.blocked_until, retry_after)

            if len(entry.hits) >= rule.limit:
                entry.blocked_until = entry.hits[0] + rule.window_seconds
                retry_after = max(1, int(entry.blocked_until - now + 0.999))
                logger.warning(f"[rate_limit] {key} exceeded {rule.limit}/{rule.window_seconds}s")
                return RateLimitDecision(False, rule.limit, 0, entry.blocked_until, retry_after)

            entry.hits.append(now)
            reset_at = entry.hits[0] + rule.window_seconds
            return RateLimitDecision(True, rule.limit, rule.limit - len(entry.hits), reset_at)

    def sweep(self, now: Optional[float] = None, max_idle: float = IDLE_EXPIRY_SECONDS) -> int:
        """Remove keys idle for longer than max_idle seconds; returns how many."""
        now = time.time() if now is None else now
        with self._lock:
            stale = [key for key, entry in self._entries.items()
                     if now - entry.last_seen > max_idle and entry.blocked_until <= now]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info(f"[rate_limit] Swept {len(stale)} idle keys")
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> Dict[str, Tuple[int, bool]]:
        now = time.time()
        with self._lock:
            return {key: (len(e.hits), e.blocked_until > now) for key, e in self._entries.items()}


def build_rate_limit_store(default_limit: Optional[str] = None, crawl_limit: Optional[str] = None) -> RateLimitStore:
    return RateLimitStore(
        default_rule=RateLimitRule.parse(default_limit or RATE_LIMIT_DEFAULT),
        path_rules={"/crawl": RateLimitRule.parse(crawl_limit or RATE_LIMIT_CRAWL)},
    )


def enforce_rate_limit(request: Request) -> RateLimitDecision:
    """FastAPI dependency: raises 429 when the caller is over the limit."""
    store: RateLimitStore = request.app.state.rate_limit_store
    decision = store.hit(get_remote_address(request), request.url.path)
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests",
            headers=decision.headers(),
        )
    return decision
