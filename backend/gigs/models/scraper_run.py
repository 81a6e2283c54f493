from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, func

from gigs.database import Base


class ScraperRun(Base):
    __tablename__ = "scraper_runs"
    __table_args__ = (Index("idx_scraper_run_created", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    total_jobs = Column(Integer, nullable=False, default=0)
    broken_links = Column(Integer, nullable=False, default=0)
    ip_blocked_count = Column(Integer, nullable=False, default=0)
    successful = Column(Boolean, nullable=False, default=True)
    duration_ms = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
