"""
Shared-secret gate for the scheduled crawl trigger.
Production requires `Authorization: Bearer <CRON_SECRET>`; other
environments let every call through.
"""
import os
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def is_dev_mode() -> bool:
    """Anything other than MOREREVIEW_ENV=production skips the secret check."""
    return os.getenv("MOREREVIEW_ENV", "dev").lower() != "production"


def get_cron_secret() -> Optional[str]:
    return os.getenv("CRON_SECRET")


def verify_bearer(authorization: Optional[str], secret: Optional[str]) -> bool:
    if not authorization or not secret:
        return False
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return False
    return hmac.compare_digest(token.strip().encode(), secret.encode())


def cron_auth_required(request: Request) -> bool:
    """
    FastAPI dependency for the crawl trigger.

    Raises:
        HTTPException(401): production call without the right bearer token
    """
    if is_dev_mode():
        return True

    secret = get_cron_secret()
    if not secret:
        logger.error("[cron_auth] CRON_SECRET is not set; rejecting crawl trigger")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not verify_bearer(request.headers.get("authorization"), secret):
        client_ip = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent", "unknown")
        logger.warning(f"[cron_auth] Unauthorized crawl trigger from {client_ip} ({user_agent})")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return True
