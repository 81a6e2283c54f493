from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote


@dataclass
class Settings:
    app_name: str = "Gigs Jobs API"
    environment: str = os.getenv("ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./db/jobs.db")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    enable_redis_cache: bool = os.getenv("ENABLE_REDIS_CACHE", "false").lower() == "true"

    jobs_cache_ttl_seconds: int = int(os.getenv("JOBS_CACHE_TTL_SECONDS", "60"))
    related_jobs_cache_ttl_seconds: int = int(os.getenv("RELATED_JOBS_CACHE_TTL_SECONDS", "300"))
    analytics_cache_ttl_seconds: int = int(os.getenv("ANALYTICS_CACHE_TTL_SECONDS", "60"))

    default_page_limit: int = int(os.getenv("DEFAULT_PAGE_LIMIT", "10"))
    max_page_limit: int = int(os.getenv("MAX_PAGE_LIMIT", "100"))
    default_posted_window_days: int = int(os.getenv("DEFAULT_POSTED_WINDOW_DAYS", "30"))
    candidate_limit: int = int(os.getenv("CANDIDATE_LIMIT", "2000"))
    candidate_multiplier: int = int(os.getenv("CANDIDATE_MULTIPLIER", "10"))
    min_candidate_window: int = int(os.getenv("MIN_CANDIDATE_WINDOW", "100"))
    fuzzy_threshold: float = float(os.getenv("FUZZY_THRESHOLD", "0.45"))
    related_jobs_limit: int = int(os.getenv("RELATED_JOBS_LIMIT", "6"))

    inactivity_threshold_hours: int = int(os.getenv("INACTIVITY_THRESHOLD_HOURS", "36"))
    inactivity_target_status: str = os.getenv("INACTIVITY_TARGET_STATUS", "expired")
    max_job_age_days: int = int(os.getenv("MAX_JOB_AGE_DAYS", "30"))
    dedup_keep: str = os.getenv("DEDUP_KEEP", "newest")
    dedup_chunk_size: int = int(os.getenv("DEDUP_CHUNK_SIZE", "1000"))
    health_window_hours: int = int(os.getenv("HEALTH_WINDOW_HOURS", "24"))

    enable_scheduler: bool = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"
    scheduler_timezone: str = os.getenv("SCHEDULER_TIMEZONE", "UTC")
    expire_jobs_cron: str = os.getenv("EXPIRE_JOBS_CRON", "0 * * * *")
    dedup_jobs_cron: str = os.getenv("DEDUP_JOBS_CRON", "30 0 * * *")
    health_log_cron: str = os.getenv("HEALTH_LOG_CRON", "0 0 * * *")

    def ensure_directories(self) -> None:
        self._ensure_sqlite_directory()

    def _ensure_sqlite_directory(self) -> None:
        if not self.database_url.startswith("sqlite:///"):
            return
        raw_path = self.database_url.replace("sqlite:///", "", 1)
        if not raw_path or raw_path == ":memory:":
            return
        db_path = Path(unquote(raw_path))
        if not db_path.is_absolute():
            db_path = Path(".") / db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)


settings = Settings()
