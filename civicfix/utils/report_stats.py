from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from civicfix.core.redis import cache_delete, cache_get_json, cache_set_json
from civicfix.db.models.report import Report, ReportStage, ReportStatus

_STATS_TTL_SECONDS = 15  # small TTL to reduce DB load while keeping dashboards near-realtime
_STATS_KEY = "report_stats"


def _compute(db: Session) -> dict:
    by_stage = {s.value: 0 for s in ReportStage}
    for stage, cnt in db.query(Report.current_stage, func.count(Report.id)).group_by(Report.current_stage).all():
        by_stage[stage.value] = int(cnt)

    by_status = {s.value: 0 for s in ReportStatus}
    for status, cnt in db.query(Report.status, func.count(Report.id)).group_by(Report.status).all():
        by_status[status.value] = int(cnt)

    total = sum(by_status.values())
    resolved = by_status[ReportStatus.RESOLVED.value]

    spans = [
        (resolved_at - created_at).total_seconds()
        for resolved_at, created_at in db.query(Report.resolved_at, Report.created_at)
        .filter(Report.resolved_at.isnot(None))
        .all()
    ]
    avg_hours = round(sum(spans) / len(spans) / 3600, 2) if spans else None

    return {
        "total": total,
        "byStage": by_stage,
        "byStatus": by_status,
        "resolutionRate": round(resolved * 100 / total, 1) if total else 0.0,
        "avgResolutionTimeHours": avg_hours,
    }


def get_report_stats(db: Session) -> dict:
    """Counts per stage/status plus resolution rate (cached with Redis TTL if available)."""
    cached = cache_get_json(_STATS_KEY)
    if cached is not None:
        return cached

    stats = _compute(db)
    cache_set_json(_STATS_KEY, stats, _STATS_TTL_SECONDS)
    return stats


def invalidate_report_stats() -> None:
    cache_delete(_STATS_KEY)
