from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from gigs.config import Settings, settings
from gigs.models.job import JOB_STATUSES, STATUS_ACTIVE, Job
from gigs.schemas.job import JobOut
from gigs.services.filter_compiler import (
    CompiledQuery,
    Contains,
    Equals,
    Not,
    ParamValue,
    compile_filters,
    parse_query_options,
)
from gigs.services.job_cache import JOBS_NAMESPACE, RELATED_JOBS_NAMESPACE, JobCache, build_cache_key
from gigs.services.paginator import Paginator
from gigs.services.ranking import WORST_SCORE, RankingEngine
from gigs.services.retriever import CandidateRetriever

logger = logging.getLogger(__name__)


def parse_job_id(raw: str) -> str:
    """Canonical UUID string, or ValueError before anything reaches the store."""
    try:
        return str(uuid.UUID(str(raw)))
    except ValueError as exc:
        raise ValueError(f"Invalid job id: {raw}") from exc


def validate_status(status: str) -> str:
    value = (status or "").strip().lower()
    if value not in JOB_STATUSES:
        raise ValueError(f"Invalid job status: {status}. Expected one of {', '.join(JOB_STATUSES)}")
    return value


def serialize_job(job: Job, fields: tuple[str, ...] = ()) -> dict[str, Any]:
    record = JobOut.model_validate(job).model_dump(mode="json", by_alias=True)
    if not fields:
        return record
    return {key: value for key, value in record.items() if key == "id" or key in fields}


class JobQueryService:
    def __init__(
        self,
        db: Session,
        cache: JobCache,
        config: Settings = settings,
        ranking: RankingEngine | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.config = config
        self.ranking = ranking or RankingEngine(threshold=config.fuzzy_threshold)
        # Related jobs are ordered by similarity but never dropped.
        self.related_ranking = RankingEngine(threshold=WORST_SCORE)
        self.retriever = CandidateRetriever(
            db,
            candidate_limit=config.candidate_limit,
            candidate_multiplier=config.candidate_multiplier,
            min_window=config.min_candidate_window,
        )

    # Reads

    def list_jobs(self, params: Mapping[str, ParamValue], now: datetime | None = None) -> dict[str, Any]:
        cache_key = build_cache_key(JOBS_NAMESPACE, params)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        result = self.search(params, now=now)
        self.cache.set(cache_key, result, self.config.jobs_cache_ttl_seconds, JOBS_NAMESPACE)
        return result

    def search(self, params: Mapping[str, ParamValue], now: datetime | None = None) -> dict[str, Any]:
        now = now or datetime.utcnow()
        options = parse_query_options(
            params,
            default_limit=self.config.default_page_limit,
            max_limit=self.config.max_page_limit,
        )
        compiled = compile_filters(params, now=now, default_window_days=self.config.default_posted_window_days)
        paginator = Paginator(page=options.page, limit=options.limit)

        if compiled.fuzzy_intent:
            candidates = self.retriever.fetch_candidates(compiled, options.sort, options.limit)
            ranked = self.ranking.rank(candidates, keyword=compiled.keyword, location=compiled.location)
            # Counts ranked candidates only, not every matching row in the store.
            total = len(ranked)
            jobs = [item.job for item in paginator.slice(ranked)]
        else:
            jobs, total = self.retriever.fetch_page(compiled, options.sort, paginator)

        return {"jobs": [serialize_job(job, options.fields) for job in jobs], "totalJobs": total}

    def get_job(self, job_id: str) -> Job | None:
        valid_id = parse_job_id(job_id)
        return self.db.query(Job).filter(Job.id == valid_id).first()

    def related_jobs(self, job_id: str, now: datetime | None = None) -> dict[str, Any] | None:
        job = self.get_job(job_id)
        if job is None:
            return None

        cache_key = f"{RELATED_JOBS_NAMESPACE}:{job.id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        result = self._compute_related(job, now or datetime.utcnow())
        self.cache.set(cache_key, result, self.config.related_jobs_cache_ttl_seconds, RELATED_JOBS_NAMESPACE)
        return result

    def _compute_related(self, job: Job, now: datetime) -> dict[str, Any]:
        base = compile_filters({}, now=now, default_window_days=self.config.default_posted_window_days)
        predicates = list(base.predicates) + [Not(Equals("id", job.id))]
        if job.role_category:
            predicates.append(Equals("roleCategory", job.role_category))
        else:
            terms = tuple(dict.fromkeys(job.title.lower().split()))
            predicates.append(Contains(("title",), terms))
        compiled = CompiledQuery(predicates=tuple(predicates))

        limit = self.config.related_jobs_limit
        candidates = self.retriever.fetch_candidates(compiled, (("postedDate", True),), limit)
        ranked = self.related_ranking.rank(candidates, keyword=job.title)
        jobs = [serialize_job(item.job) for item in ranked[:limit]]
        return {"jobs": jobs, "totalJobs": len(jobs)}

    # Mutations

    def create_job(self, data: Mapping[str, Any]) -> Job:
        job = Job(**data)
        if job.posted_date is None:
            job.posted_date = datetime.utcnow()
        job.job_status = STATUS_ACTIVE
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        self.invalidate()
        logger.info("Created job %s", job.id)
        return job

    def update_job(self, job_id: str, changes: Mapping[str, Any]) -> Job | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        if "job_status" in changes and changes["job_status"] is not None:
            changes = {**changes, "job_status": validate_status(changes["job_status"])}
        for key, value in changes.items():
            setattr(job, key, value)
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        self.invalidate()
        logger.info("Updated job %s (%s)", job.id, ", ".join(sorted(changes)))
        return job

    def update_status(self, job_id: str, status: str) -> Job | None:
        return self.update_job(job_id, {"job_status": validate_status(status)})

    def delete_job(self, job_id: str) -> bool:
        job = self.get_job(job_id)
        if job is None:
            return False
        self.db.delete(job)
        self.db.commit()
        self.invalidate()
        logger.info("Deleted job %s", job_id)
        return True

    def invalidate(self) -> None:
        self.cache.invalidate(JOBS_NAMESPACE, RELATED_JOBS_NAMESPACE)
