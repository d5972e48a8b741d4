"""
Records passed between crawl stages.

CandidateRecord is produced by the source parser and enriched with a
DeadlineResolution; QualityReport summarizes one crawl batch; SourceResult
is what the orchestrator returns per source.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.dates import remaining_days


class Source(str, Enum):
    """Crawled campaign sites (value is the stored source_site)"""
    REVIEWPLACE = "reviewplace.co.kr"
    REVIEWNOTE = "reviewnote.co.kr"
    REVU = "revu.net"

    @property
    def short_name(self) -> str:
        return self.value.split(".")[0]

    @classmethod
    def from_name(cls, name: str) -> Optional["Source"]:
        """Resolve 'revu', 'revu.net' or 'REVU' to a Source, None if unknown."""
        if not name:
            return None
        key = name.strip().lower()
        for source in cls:
            if key in (source.value, source.short_name, source.name.lower()):
                return source
        return None


class DeadlineMethod(str, Enum):
    LIST_PAGE = "listPage"
    DETAIL_PAGE = "detailPage"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class DeadlineResolution:
    deadline: datetime
    method: DeadlineMethod
    matched_text: Optional[str] = None

    def remaining_days(self, now: Optional[datetime] = None) -> int:
        return remaining_days(self.deadline, now)


@dataclass
class CandidateRecord:
    title: str
    reward_amount: int
    detail_url: str
    source: Source
    description: Optional[str] = None
    raw_deadline_text: Optional[str] = None
    resolution: Optional[DeadlineResolution] = None
    listing_text: str = ""

    @property
    def resolved_deadline(self) -> Optional[datetime]:
        return self.resolution.deadline if self.resolution else None

    @property
    def deadline_method(self) -> Optional[DeadlineMethod]:
        return self.resolution.method if self.resolution else None

    def attach_resolution(self, resolution: DeadlineResolution):
        self.resolution = resolution
        if resolution.matched_text and not self.raw_deadline_text:
            self.raw_deadline_text = resolution.matched_text

    def remaining_days(self, now: Optional[datetime] = None) -> Optional[int]:
        if not self.resolution:
            return None
        return self.resolution.remaining_days(now)


@dataclass
class QualityAlert:
    severity: str  # 'error' | 'warning' | 'info'
    message: str
    campaign: Optional[str] = None
    source: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "message": self.message,
            "campaign": self.campaign,
            "source": self.source,
            "timestamp": self.timestamp.isoformat() + "Z",
        }


@dataclass
class QualityReport:
    total_processed: int = 0
    valid_count: int = 0
    null_deadlines: int = 0
    invalid_deadlines: int = 0
    valid_deadlines: int = 0
    extraction_methods: Dict[str, int] = field(
        default_factory=lambda: {m.value: 0 for m in DeadlineMethod}
    )
    sources_processed: List[str] = field(default_factory=list)
    average_remaining_days: float = 0.0
    quality_score: float = 100.0
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    alerts: List[QualityAlert] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return len(self.issues) == 0

    @property
    def fallback_count(self) -> int:
        return self.extraction_methods.get(DeadlineMethod.FALLBACK.value, 0)

    def critical_alerts(self) -> List[QualityAlert]:
        """Errors, plus warnings flagged as severe."""
        return [
            alert for alert in self.alerts
            if alert.severity == "error" or (alert.severity == "warning" and "심각" in alert.message)
        ]

    def real_time_metrics(self) -> Dict[str, float]:
        return {
            "nullDeadlineRatio": self.null_deadlines / self.total_processed if self.total_processed else 0.0,
            "qualityScore": self.quality_score,
            "averageRemainingDays": self.average_remaining_days,
            "criticalAlertCount": len(self.critical_alerts()),
        }

    def summary(self) -> str:
        errors = sum(1 for a in self.alerts if a.severity == "error")
        warnings = sum(1 for a in self.alerts if a.severity == "warning")
        valid_pct = (self.valid_deadlines / self.total_processed * 100) if self.total_processed else 0.0
        return "\n".join([
            "Data quality report",
            f"- campaigns: {self.total_processed}",
            f"- quality score: {self.quality_score:.1f}/100",
            f"- valid deadlines: {self.valid_deadlines} ({valid_pct:.1f}%)",
            f"- null deadlines: {self.null_deadlines}",
            f"- average remaining days: {self.average_remaining_days:.1f}",
            f"- extraction methods: {self.extraction_methods}",
            f"- errors: {errors}, warnings: {warnings}",
            f"- sources: {', '.join(self.sources_processed)}",
        ])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": self.issues,
            "warnings": self.warnings,
            "totalProcessed": self.total_processed,
            "validCount": self.valid_count,
            "nullDeadlines": self.null_deadlines,
            "invalidDeadlines": self.invalid_deadlines,
            "extractionMethods": dict(self.extraction_methods),
            "averageRemainingDays": round(self.average_remaining_days, 2),
            "qualityScore": round(self.quality_score, 1),
            "alerts": [a.to_dict() for a in self.alerts],
            "metrics": self.real_time_metrics(),
        }


@dataclass
class SourceResult:
    source: str
    success: bool
    count: int = 0
    duration_ms: int = 0
    saved: int = 0
    validation: Optional[QualityReport] = None
    error: Optional[str] = None
    records: List[CandidateRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "success": self.success,
            "count": self.count,
            "duration": self.duration_ms,
            "saved": self.saved,
            "validation": self.validation.to_dict() if self.validation else None,
            "error": self.error,
        }
