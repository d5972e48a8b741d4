"""
Crawl trigger endpoint, called by the scheduler (GET or POST /crawl).
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from app.rate_limit import enforce_rate_limit
from core.models import Source
from crawler.orchestrator import CrawlOrchestrator, summarize
from security.cron_auth import cron_auth_required

logger = logging.getLogger(__name__)
router = APIRouter()


class CrawlSummary(BaseModel):
    total: int
    successful: int
    failed: int
    totalItems: int
    totalSaved: int
    totalDuration: int


class SourceResultOut(BaseModel):
    source: str
    success: bool
    count: int
    duration: int
    saved: int
    validation: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class CrawlResponse(BaseModel):
    success: bool
    mode: str
    summary: CrawlSummary
    results: List[SourceResultOut]
    timestamp: str


def get_orchestrator(request: Request) -> CrawlOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = CrawlOrchestrator()
        request.app.state.orchestrator = orchestrator
    return orchestrator


async def _run(mode: str, orchestrator: CrawlOrchestrator) -> CrawlResponse:
    mode = (mode or "all").strip().lower()
    if mode == "all":
        results = await orchestrator.run_all()
    else:
        source = Source.from_name(mode)
        if source is None:
            valid = ", ".join(["all"] + [s.short_name for s in Source])
            raise HTTPException(status_code=400, detail=f"Unknown mode '{mode}'. Use one of: {valid}")
        results = [await orchestrator.run_one(source)]

    summary = summarize(results)
    logger.info(f"[crawl] mode={mode} {summary}")
    return CrawlResponse(
        success=any(r.success for r in results),
        mode=mode,
        summary=CrawlSummary(**summary),
        results=[SourceResultOut(**r.to_dict()) for r in results],
        timestamp=datetime.utcnow().isoformat() + "Z",
    )


@router.get("/crawl", response_model=CrawlResponse)
async def trigger_crawl_get(
    mode: str = Query("all", description="'all' or a single source: reviewplace, reviewnote, revu"),
    _rate: Any = Depends(enforce_rate_limit),
    _auth: bool = Depends(cron_auth_required),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    return await _run(mode, orchestrator)


@router.post("/crawl", response_model=CrawlResponse)
async def trigger_crawl_post(
    mode: str = Query("all"),
    _rate: Any = Depends(enforce_rate_limit),
    _auth: bool = Depends(cron_auth_required),
    orchestrator: CrawlOrchestrator = Depends(get_orchestrator),
):
    return await _run(mode, orchestrator)
