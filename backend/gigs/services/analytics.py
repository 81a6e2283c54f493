from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from gigs.config import settings
from gigs.models.job import STATUS_ACTIVE, STATUS_EXPIRED, Job
from gigs.models.scraper_run import ScraperRun
from gigs.services.job_cache import JOBS_NAMESPACE, JobCache

ANALYTICS_CACHE_KEY = f"{JOBS_NAMESPACE}:analytics"
CHART_DAYS = 30


def _empty_counts() -> dict[str, int]:
    return {"total": 0, "active": 0, "expired": 0, "broken": 0}


def _daily_counts(db: Session, since: datetime) -> dict[str, dict[str, int]]:
    day = func.date(Job.created_at)
    rows = (
        db.query(
            day,
            func.count(Job.id),
            func.sum(case((Job.job_status == STATUS_ACTIVE, 1), else_=0)),
            func.sum(case((Job.job_status == STATUS_EXPIRED, 1), else_=0)),
            func.sum(case((Job.broken_link.is_(True), 1), else_=0)),
        )
        .filter(Job.created_at >= since)
        .group_by(day)
        .all()
    )
    return {
        str(row_day)[:10]: {
            "total": int(total or 0),
            "active": int(active or 0),
            "expired": int(expired or 0),
            "broken": int(broken or 0),
        }
        for row_day, total, active, expired, broken in rows
    }


def compute_job_analytics(db: Session, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.utcnow()
    today = now.date()
    first_day = today - timedelta(days=CHART_DAYS - 1)
    counts = _daily_counts(db, datetime.combine(first_day, datetime.min.time()))

    chart_data = []
    for offset in range(CHART_DAYS):
        day = (first_day + timedelta(days=offset)).isoformat()
        chart_data.append({"date": day, **counts.get(day, _empty_counts())})

    return {
        "today": counts.get(today.isoformat(), _empty_counts()),
        "yesterday": counts.get((today - timedelta(days=1)).isoformat(), _empty_counts()),
        "chartData": chart_data,
    }


def job_analytics(db: Session, cache: JobCache, now: datetime | None = None) -> dict[str, Any]:
    cached = cache.get(ANALYTICS_CACHE_KEY)
    if cached is not None:
        return cached
    result = compute_job_analytics(db, now=now)
    cache.set(ANALYTICS_CACHE_KEY, result, settings.analytics_cache_ttl_seconds, JOBS_NAMESPACE)
    return result


def scraper_metrics(db: Session, hours: int = 24, now: datetime | None = None) -> dict[str, Any]:
    since = (now or datetime.utcnow()) - timedelta(hours=hours)
    runs = (
        db.query(ScraperRun)
        .filter(ScraperRun.created_at >= since)
        .order_by(ScraperRun.created_at.asc(), ScraperRun.id.asc())
        .all()
    )
    succeeded = sum(1 for run in runs if run.successful)
    last = runs[-1] if runs else None
    return {
        "totalRuns": len(runs),
        "successRate": (succeeded / len(runs)) * 100 if runs else 0.0,
        "brokenLinksLastRun": last.broken_links if last else 0,
        "ipBlockedLastRun": last.ip_blocked_count if last else 0,
    }
