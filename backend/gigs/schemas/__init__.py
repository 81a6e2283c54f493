from gigs.schemas.job import (
    JobAnalyticsResponse,
    JobCreate,
    JobListResponse,
    JobOut,
    JobStatusUpdate,
    JobUpdate,
    ScraperMetricsResponse,
)

__all__ = [
    "JobOut",
    "JobCreate",
    "JobUpdate",
    "JobStatusUpdate",
    "JobListResponse",
    "JobAnalyticsResponse",
    "ScraperMetricsResponse",
]
