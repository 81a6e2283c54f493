from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class JobOut(CamelModel):
    id: str
    title: str
    description: str | None = None
    company_name: str | None = None
    role_category: str | None = None
    experience_level: str | None = None
    job_type: str | None = None
    work_settings: str | None = None
    skills: list[str] = []
    country: str | None = None
    state: str | None = None
    city: str | None = None
    min_salary: float | None = None
    max_salary: float | None = None
    job_status: str
    posted_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    broken_link: bool = False
    ip_blocked: bool = False

    @field_validator("skills", mode="before")
    @classmethod
    def _skills_default(cls, value):
        return value or []


class JobCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str | None = None
    company_name: str | None = None
    role_category: str | None = None
    experience_level: str | None = None
    job_type: str | None = None
    work_settings: str | None = None
    skills: list[str] = []
    country: str | None = None
    state: str | None = None
    city: str | None = None
    min_salary: float | None = None
    max_salary: float | None = None
    posted_date: datetime | None = None


class JobUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    company_name: str | None = None
    role_category: str | None = None
    experience_level: str | None = None
    job_type: str | None = None
    work_settings: str | None = None
    skills: list[str] | None = None
    country: str | None = None
    state: str | None = None
    city: str | None = None
    min_salary: float | None = None
    max_salary: float | None = None
    job_status: str | None = None
    posted_date: datetime | None = None

    @field_validator("title", "job_status")
    @classmethod
    def _not_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class JobStatusUpdate(CamelModel):
    status: str | None = None


class JobListResponse(CamelModel):
    jobs: list[dict]
    total_jobs: int


class AnalyticsCounts(CamelModel):
    total: int = 0
    active: int = 0
    expired: int = 0
    broken: int = 0


class AnalyticsChartPoint(AnalyticsCounts):
    date: str


class JobAnalyticsResponse(CamelModel):
    today: AnalyticsCounts
    yesterday: AnalyticsCounts
    chart_data: list[AnalyticsChartPoint]


class ScraperMetricsResponse(CamelModel):
    total_runs: int
    success_rate: float
    broken_links_last_run: int
    ip_blocked_last_run: int
