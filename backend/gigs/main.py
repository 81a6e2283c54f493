from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from gigs.api import jobs
from gigs.config import settings
from gigs.database import Base, SessionLocal, engine
from gigs.models import job, scraper_run  # noqa: F401
from gigs.scheduler import LifecycleScheduler, build_lifecycle_tasks


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

lifecycle_scheduler = LifecycleScheduler(
    session_factory=SessionLocal,
    cache=jobs.job_cache,
    tasks=build_lifecycle_tasks(settings),
    timezone=settings.scheduler_timezone,
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"status": "error", "message": "Failed to retrieve jobs"})


@app.on_event("startup")
def on_startup() -> None:
    settings.ensure_directories()
    Base.metadata.create_all(bind=engine)
    if settings.enable_scheduler:
        lifecycle_scheduler.start()
    logger.info("%s started in %s mode", settings.app_name, settings.environment)


@app.on_event("shutdown")
def on_shutdown() -> None:
    lifecycle_scheduler.shutdown()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["jobs"])
