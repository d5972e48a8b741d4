"""
Tests for the crawl-trigger rate limiter.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.rate_limit import RateLimitRule, RateLimitStore, IDLE_EXPIRY_SECONDS


@pytest.fixture
def store():
    return RateLimitStore(
        default_rule=RateLimitRule(limit=2, window_seconds=60),
        path_rules={"/crawl": RateLimitRule(limit=1, window_seconds=60)},
    )


def test_parse_rule():
    assert RateLimitRule.parse("5/minute") == RateLimitRule(limit=5, window_seconds=60)
    assert RateLimitRule.parse("100/hour") == RateLimitRule(limit=100, window_seconds=3600)


def test_limit_then_block(store):
    assert store.hit("1.2.3.4", "/health", now=0).allowed
    second = store.hit("1.2.3.4", "/health", now=1)
    assert second.allowed
    assert second.remaining == 0

    third = store.hit("1.2.3.4", "/health", now=2)
    assert not third.allowed
    assert third.retry_after == 58
    headers = third.headers()
    assert headers["Retry-After"] == "58"
    assert headers["X-RateLimit-Limit"] == "2"
    assert headers["X-RateLimit-Remaining"] == "0"


def test_keys_are_identity_and_path(store):
    assert store.hit("1.2.3.4", "/crawl", now=0).allowed
    assert not store.hit("1.2.3.4", "/crawl", now=1).allowed
    assert store.hit("5.6.7.8", "/crawl", now=1).allowed
    assert store.hit("1.2.3.4", "/health", now=1).allowed


def test_window_slides(store):
    store.hit("ip", "/health", now=0)
    store.hit("ip", "/health", now=1)
    assert not store.hit("ip", "/health", now=30).allowed
    assert store.hit("ip", "/health", now=61.5).allowed


def test_sweep_removes_idle_keys(store):
    store.hit("old", "/crawl", now=0)
    store.hit("recent", "/crawl", now=IDLE_EXPIRY_SECONDS)

    removed = store.sweep(now=IDLE_EXPIRY_SECONDS + 10)

    assert removed == 1
    assert len(store) == 1
    assert "recent:/crawl" in store.snapshot()
