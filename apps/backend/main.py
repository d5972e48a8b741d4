from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from contextlib import asynccontextmanager
from datetime import datetime
import asyncio
import os
import time
import logging
import traceback

from app.config import Capabilities, get_settings
from app.crawl import router as crawl_router
from app.rate_limit import limiter, build_rate_limit_store, RATE_LIMIT_DEFAULT
from core.models import Source
from security.cron_auth import is_dev_mode
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = int(os.getenv("RATE_LIMIT_SWEEP_INTERVAL", "3600"))
STARTED_AT = time.time()


async def rate_limit_maintenance(app: FastAPI):
    """Periodically drop idle rate-limit keys."""
    while True:
        await asyncio.sleep(SWEEP_INTERVAL_SECONDS)
        app.state.rate_limit_store.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application lifecycle events."""
    settings = get_settings()
    logger.info(f"[morereview] env: MOREREVIEW_ENV={settings.env}, timezone={settings.timezone}")
    if settings.is_production and not settings.cron_secret:
        logger.warning("[morereview] CRON_SECRET not set; /crawl will reject every call")
    if not Capabilities.is_db_enabled():
        logger.warning("[morereview] No database configured; crawls will report saved=0")

    app.state.rate_limit_store = build_rate_limit_store(settings.rate_limit_default, settings.rate_limit_crawl)
    sweeper = asyncio.create_task(rate_limit_maintenance(app))

    yield

    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass


app = FastAPI(title="MoreReview Ingestion API", version="0.1.0", lifespan=lifespan)

# Add rate limiter state
app.state.limiter = limiter
app.state.rate_limit_store = build_rate_limit_store()

# Rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Error masking middleware
@app.middleware("http")
async def error_masking_middleware(request: Request, call_next):
    """Mask detailed errors in production; show full errors in dev."""
    try:
        response = await call_next(request)
        return response
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error: {str(e)}")
        if is_dev_mode():
            logger.error(traceback.format_exc())
            return JSONResponse(
                status_code=500,
                content={
                    "status": "error",
                    "error": str(e),
                    "traceback": traceback.format_exc()
                }
            )
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "error": "An internal error occurred. Please try again later."
            }
        )


app.include_router(crawl_router)


@app.get("/health")
@limiter.limit(RATE_LIMIT_DEFAULT)
async def health(request: Request):
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "uptime": round(time.time() - STARTED_AT, 1),
        "sources": [source.value for source in Source],
        "db": Capabilities.is_db_enabled(),
        "browser": Capabilities.is_browser_enabled(),
    }
