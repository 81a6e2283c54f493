from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from gigs.config import settings
from gigs.database import get_db
from gigs.schemas.job import (
    JobAnalyticsResponse,
    JobCreate,
    JobListResponse,
    JobOut,
    JobStatusUpdate,
    JobUpdate,
    ScraperMetricsResponse,
)
from gigs.services.analytics import job_analytics, scraper_metrics
from gigs.services.job_cache import JobCache, build_redis_client
from gigs.services.job_query import JobQueryService, parse_job_id


router = APIRouter()
job_cache = JobCache(build_redis_client(settings))


def get_cache() -> JobCache:
    return job_cache


def get_job_service(db: Session = Depends(get_db), cache: JobCache = Depends(get_cache)) -> JobQueryService:
    return JobQueryService(db, cache)


def _query_params(request: Request) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        params[key] = values[0] if len(values) == 1 else values
    return params


def _valid_job_id(job_id: str) -> str:
    try:
        return parse_job_id(job_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("", response_model=JobListResponse)
def list_jobs(request: Request, service: JobQueryService = Depends(get_job_service)) -> dict[str, Any]:
    return service.list_jobs(_query_params(request))


@router.post("", response_model=JobOut, status_code=201)
def create_job(payload: JobCreate, service: JobQueryService = Depends(get_job_service)) -> JobOut:
    job = service.create_job(payload.model_dump())
    return JobOut.model_validate(job)


@router.get("/admin/analytics", response_model=JobAnalyticsResponse)
def get_job_analytics(db: Session = Depends(get_db), cache: JobCache = Depends(get_cache)) -> dict[str, Any]:
    return job_analytics(db, cache)


@router.get("/admin/scraper-metrics", response_model=ScraperMetricsResponse)
def get_scraper_metrics(
    hours: int = Query(default=24, ge=1, le=24 * 30),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return scraper_metrics(db, hours=hours)


@router.get("/{job_id}", response_model=JobOut)
def get_job(job_id: str, service: JobQueryService = Depends(get_job_service)) -> JobOut:
    job = service.get_job(_valid_job_id(job_id))
    if not job:
        raise HTTPException(status_code=404, detail="No job found with that ID")
    return JobOut.model_validate(job)


@router.get("/{job_id}/related-jobs", response_model=JobListResponse)
def get_related_jobs(job_id: str, service: JobQueryService = Depends(get_job_service)) -> dict[str, Any]:
    related = service.related_jobs(_valid_job_id(job_id))
    if related is None:
        raise HTTPException(status_code=404, detail="No job found with that ID")
    return related


@router.patch("/{job_id}", response_model=JobOut)
def update_job(
    job_id: str,
    payload: JobUpdate,
    service: JobQueryService = Depends(get_job_service),
) -> JobOut:
    valid_id = _valid_job_id(job_id)
    try:
        job = service.update_job(valid_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not job:
        raise HTTPException(status_code=404, detail="No job found with that ID")
    return JobOut.model_validate(job)


@router.patch("/{job_id}/status", response_model=JobOut)
def update_job_status(
    job_id: str,
    payload: JobStatusUpdate,
    service: JobQueryService = Depends(get_job_service),
) -> JobOut:
    valid_id = _valid_job_id(job_id)
    if not payload.status:
        raise HTTPException(status_code=400, detail="Status is required")
    try:
        job = service.update_status(valid_id, payload.status)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not job:
        raise HTTPException(status_code=404, detail="No job found with that ID")
    return JobOut.model_validate(job)


@router.delete("/{job_id}", status_code=204)
def delete_job(job_id: str, service: JobQueryService = Depends(get_job_service)) -> Response:
    if not service.delete_job(_valid_job_id(job_id)):
        raise HTTPException(status_code=404, detail="No job found with that ID")
    return Response(status_code=204)
