"""
Data Quality Monitor
Scores a crawl batch on deadline coverage and record validity, and raises
severity-tagged alerts. The report is informational: it never blocks the
batch from being saved.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from core.dates import now_local, to_local
from core.models import CandidateRecord, DeadlineMethod, QualityAlert, QualityReport

logger = logging.getLogger(__name__)

# Structured alert sink; handlers can read record.alert
alert_logger = logging.getLogger("quality")

_ALERT_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
}


class QualityMonitor:
    """
    Analyzes candidate batches.

    Score: 100 - 50 * null_ratio - 25 * invalid_ratio, plus 5 when more than
    one extraction method was used and 10 when the average remaining days
    is between 1 and 30, clamped to 0..100.
    """

    MIN_TITLE_LENGTH = 3
    MAX_REWARD = 1_000_000
    MAX_REMAINING_DAYS = 365
    NULL_RATIO_CRITICAL = 0.5
    FALLBACK_RATIO_WARNING = 0.5
    SCORE_CRITICAL = 70
    AVERAGE_DAYS_WARNING = 60

    def analyze(
        self,
        records: Iterable[CandidateRecord],
        allow_zero_reward: bool = False,
        now: Optional[datetime] = None,
    ) -> QualityReport:
        records = list(records)
        now = to_local(now) if now else now_local()
        report = QualityReport(total_processed=len(records))
        remaining_total = 0

        for record in records:
            label = (record.title or "")[:50] or record.detail_url
            source = record.source.value if record.source else None
            if source and source not in report.sources_processed:
                report.sources_processed.append(source)
            has_error = False

            if not record.title or len(record.title.strip()) < self.MIN_TITLE_LENGTH:
                self._add(report, "error", f"Title missing or too short: {record.detail_url}", label, source)
                has_error = True

            if record.reward_amount <= 0 and not allow_zero_reward:
                self._add(report, "error", f"Non-positive reward ({record.reward_amount})", label, source)
                has_error = True
            elif record.reward_amount > self.MAX_REWARD:
                self._add(report, "warning", f"Unusually large reward ({record.reward_amount:,})", label, source)

            if not record.detail_url or not record.detail_url.startswith(("http://", "https://")):
                self._add(report, "warning", f"Detail URL is not absolute http(s): {record.detail_url!r}", label, source)

            resolution = record.resolution
            if resolution is None:
                report.null_deadlines += 1
                self._add(report, "error", "Deadline missing", label, source)
                has_error = True
            else:
                report.extraction_methods[resolution.method.value] = (
                    report.extraction_methods.get(resolution.method.value, 0) + 1
                )
                if resolution.method == DeadlineMethod.FALLBACK:
                    self._add(report, "info", "Default deadline substituted", label, source)

                days = resolution.remaining_days(now)
                if days < 0 or days > self.MAX_REMAINING_DAYS:
                    report.invalid_deadlines += 1
                    self._add(report, "warning", f"Implausible deadline ({days} days remaining)", label, source)
                    has_error = True
                else:
                    report.valid_deadlines += 1
                    remaining_total += days

            if not has_error:
                report.valid_count += 1

        if report.valid_deadlines:
            report.average_remaining_days = remaining_total / report.valid_deadlines

        report.quality_score = self.score(report)
        self._batch_alerts(report)
        self._emit(report)
        return report

    def score(self, report: QualityReport) -> float:
        if report.total_processed == 0:
            return 100.0
        null_ratio = report.null_deadlines / report.total_processed
        invalid_ratio = report.invalid_deadlines / report.total_processed
        score = 100.0 - null_ratio * 50 - invalid_ratio * 25

        methods_used = sum(1 for count in report.extraction_methods.values() if count > 0)
        if methods_used >= 2:
            score += 5
        if report.valid_deadlines and 1 <= report.average_remaining_days <= 30:
            score += 10
        return max(0.0, min(100.0, score))

    def _batch_alerts(self, report: QualityReport):
        total = report.total_processed
        if total == 0:
            return

        null_ratio = report.null_deadlines / total
        if null_ratio > self.NULL_RATIO_CRITICAL:
            self._add(report, "error", f"심각: 마감일 누락 비율 {null_ratio:.0%} ({report.null_deadlines}/{total})")
        if report.quality_score < self.SCORE_CRITICAL:
            self._add(report, "error", f"Quality score below {self.SCORE_CRITICAL}: {report.quality_score:.1f}")

        resolved = total - report.null_deadlines
        if resolved and report.fallback_count == resolved:
            self._add(report, "error", f"All {resolved} deadlines came from the default fallback")
        elif resolved and report.fallback_count / total > self.FALLBACK_RATIO_WARNING:
            self._add(report, "warning", f"Fallback deadlines for {report.fallback_count}/{total} records")

        if report.average_remaining_days > self.AVERAGE_DAYS_WARNING:
            self._add(report, "warning", f"Average remaining days is high ({report.average_remaining_days:.1f})")

    def _add(self, report: QualityReport, severity: str, message: str,
             campaign: Optional[str] = None, source: Optional[str] = None):
        report.alerts.append(QualityAlert(severity=severity, message=message, campaign=campaign, source=source))
        text = f"{campaign}: {message}" if campaign else message
        if severity == "error":
            report.issues.append(text)
        elif severity == "warning":
            report.warnings.append(text)

    def _emit(self, report: QualityReport):
        for alert in report.alerts:
            payload = alert.to_dict()
            alert_logger.log(_ALERT_LEVELS.get(alert.severity, logging.INFO),
                             f"[quality] {alert.severity}: {alert.message}", extra={"alert": payload})
        logger.info(
            f"[quality] {report.total_processed} records, score {report.quality_score:.1f}, "
            f"null {report.null_deadlines}, invalid {report.invalid_deadlines}, "
            f"methods {report.extraction_methods}"
        )


_quality_monitor: Optional[QualityMonitor] = None


def get_quality_monitor() -> QualityMonitor:
    global _quality_monitor
    if _quality_monitor is None:
        _quality_monitor = QualityMonitor()
    return _quality_monitor
