from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, Index, String, Text, func
from sqlalchemy.types import JSON

from gigs.database import Base

STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"
STATUS_INACTIVE = "inactive"
STATUS_DUPLICATES = "duplicates"
JOB_STATUSES = (STATUS_ACTIVE, STATUS_EXPIRED, STATUS_INACTIVE, STATUS_DUPLICATES)


def _new_job_id() -> str:
    return str(uuid.uuid4())


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("idx_job_status", "job_status"),
        Index("idx_posted_date", "posted_date"),
        Index("idx_updated_at", "updated_at"),
    )

    id = Column(String(36), primary_key=True, default=_new_job_id)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    company_name = Column(String(255))
    role_category = Column(String(120))
    experience_level = Column(String(50))
    job_type = Column(String(50))
    work_settings = Column(String(50))
    skills = Column(JSON, default=list)
    country = Column(String(120))
    state = Column(String(120))
    city = Column(String(120))
    min_salary = Column(Float)
    max_salary = Column(Float)
    job_status = Column(String(20), nullable=False, default=STATUS_ACTIVE)
    posted_date = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    broken_link = Column(Boolean, default=False, nullable=False)
    ip_blocked = Column(Boolean, default=False, nullable=False)
