"""Periodic maintenance over the job table.

Every operation is idempotent: it only selects rows that are not already in
the state it would write, so a rerun after a crash or a double trigger
changes nothing. Status writes keep ``updated_at`` as it was; lifecycle
bookkeeping is not listing activity.
"""

from __future__ import annotations

import hashlib
import logging
import time
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from gigs.models.job import (
    STATUS_DUPLICATES,
    STATUS_EXPIRED,
    STATUS_INACTIVE,
    Job,
)
from gigs.models.scraper_run import ScraperRun

logger = logging.getLogger(__name__)

INACTIVITY_TARGETS = (STATUS_INACTIVE, STATUS_EXPIRED)
DEDUP_KEEP_RULES = ("newest", "oldest")


def _status_values(status: str) -> dict:
    return {Job.job_status: status, Job.updated_at: Job.updated_at}


def _set_status(db: Session, job_ids: list[str], status: str) -> int:
    if not job_ids:
        return 0
    return db.query(Job).filter(Job.id.in_(job_ids)).update(_status_values(status), synchronize_session=False)


def expire_inactive_jobs(
    db: Session,
    threshold_hours: int = 36,
    target_status: str = STATUS_EXPIRED,
    now: datetime | None = None,
) -> int:
    if target_status not in INACTIVITY_TARGETS:
        raise ValueError(f"Inactivity target must be one of {INACTIVITY_TARGETS}, got {target_status!r}")
    cutoff = (now or datetime.utcnow()) - timedelta(hours=threshold_hours)
    changed = (
        db.query(Job)
        .filter(
            Job.updated_at < cutoff,
            Job.job_status.notin_((STATUS_EXPIRED, target_status)),
        )
        .update(_status_values(target_status), synchronize_session=False)
    )
    logger.info("Marked %s jobs %s after %sh without updates", changed, target_status, threshold_hours)
    return changed


def expire_aged_jobs(db: Session, max_age_days: int = 30, now: datetime | None = None) -> int:
    cutoff = (now or datetime.utcnow()) - timedelta(days=max_age_days)
    changed = (
        db.query(Job)
        .filter(Job.posted_date < cutoff, Job.job_status != STATUS_EXPIRED)
        .update(_status_values(STATUS_EXPIRED), synchronize_session=False)
    )
    logger.info("Expired %s jobs posted more than %s days ago", changed, max_age_days)
    return changed


def _normalize(value) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def duplicate_key(title, description, company_name, city, state, min_salary, max_salary) -> str:
    salary = f"{_normalize(min_salary)}-{_normalize(max_salary)}"
    parts = (title, description, company_name, city, state, salary)
    return "|".join(_normalize(part) for part in parts)


def mark_duplicate_jobs(db: Session, keep: str = "newest", chunk_size: int = 1000) -> int:
    """Mark every job sharing a duplicate key with an earlier-scanned job.

    With ``keep="newest"`` the scan runs newest-updated first, so the most
    recently updated job of each group survives.
    """
    if keep not in DEDUP_KEEP_RULES:
        raise ValueError(f"Duplicate keep rule must be one of {DEDUP_KEEP_RULES}, got {keep!r}")
    updated_order = Job.updated_at.desc() if keep == "newest" else Job.updated_at.asc()
    rows = (
        db.query(
            Job.id,
            Job.title,
            Job.description,
            Job.company_name,
            Job.city,
            Job.state,
            Job.min_salary,
            Job.max_salary,
        )
        .filter(Job.job_status != STATUS_DUPLICATES)
        .order_by(updated_order, Job.id.asc())
        .yield_per(chunk_size)
    )

    seen: set[str] = set()
    duplicate_ids: list[str] = []
    for job_id, *fields in rows:
        digest = hashlib.sha1(duplicate_key(*fields).encode("utf-8")).hexdigest()
        if digest in seen:
            duplicate_ids.append(job_id)
        else:
            seen.add(digest)

    changed = 0
    for start in range(0, len(duplicate_ids), chunk_size):
        changed += _set_status(db, duplicate_ids[start : start + chunk_size], STATUS_DUPLICATES)
    logger.info("Marked %s duplicate jobs out of %s unique listings", changed, len(seen))
    return changed


def record_scraper_health(db: Session, window_hours: int = 24, now: datetime | None = None) -> ScraperRun:
    started = time.monotonic()
    since = (now or datetime.utcnow()) - timedelta(hours=window_hours)

    total_jobs = db.query(Job).filter(Job.created_at >= since).count()
    broken_links = db.query(Job).filter(Job.broken_link.is_(True), Job.updated_at >= since).count()
    ip_blocked = db.query(Job).filter(Job.ip_blocked.is_(True), Job.updated_at >= since).count()

    run = ScraperRun(
        total_jobs=total_jobs,
        broken_links=broken_links,
        ip_blocked_count=ip_blocked,
        successful=broken_links == 0 and ip_blocked == 0,
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    db.add(run)
    db.flush()
    logger.info(
        "Logged scraper health: %s jobs, %s broken links, %s ip-blocks in %sms",
        total_jobs,
        broken_links,
        ip_blocked,
        run.duration_ms,
    )
    return run
