from __future__ import annotations

from datetime import datetime, timedelta

import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gigs.api.jobs import get_cache
from gigs.database import Base, get_db, json_serializer
from gigs.main import app
from gigs.models import Job, ScraperRun  # noqa: F401
from gigs.services.job_cache import JobCache


class FakeRedis:
    """Just enough of the redis client surface for the cache layer."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.sets: dict[str, set[str]] = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ex=None):
        self.values[key] = value
        self.ttls[key] = ex
        return True

    def sadd(self, key, *members):
        bucket = self.sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            if self.sets.pop(key, None) is not None:
                removed += 1
        return removed


class BrokenRedis:
    def __getattr__(self, name):
        def fail(*_args, **_kwargs):
            raise redis.ConnectionError("Connection refused")

        return fail


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        json_serializer=json_serializer,
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis) -> JobCache:
    return JobCache(fake_redis)


@pytest.fixture
def add_job(db):
    def _add(now: datetime | None = None, **overrides) -> Job:
        now = now or datetime.utcnow()
        values = {
            "title": "Backend Engineer",
            "description": "Build and operate APIs",
            "company_name": "Example GmbH",
            "role_category": "engineering",
            "experience_level": "mid",
            "job_type": "remote",
            "work_settings": "remote",
            "skills": ["python", "sql"],
            "country": "Germany",
            "state": "Berlin",
            "city": "Berlin",
            "min_salary": 50000.0,
            "max_salary": 70000.0,
            "job_status": "active",
            "posted_date": now - timedelta(days=1),
            "created_at": now - timedelta(days=1),
            "updated_at": now - timedelta(hours=1),
        }
        values.update(overrides)
        job = Job(**values)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _add


@pytest.fixture
def broken_cache() -> JobCache:
    return JobCache(BrokenRedis())


@pytest.fixture
def client(session_factory, cache):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
