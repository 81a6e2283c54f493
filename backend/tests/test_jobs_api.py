from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gigs.api.jobs import get_cache
from gigs.database import get_db
from gigs.main import app

MISSING_ID = "2f1b7c7e-7d3a-4c1e-9d55-3c1f8f3f8a10"


def test_create_then_fetch_job(client):
    created = client.post(
        "/api/v1/jobs",
        json={"title": "Platform Engineer", "companyName": "Example GmbH", "city": "Berlin", "skills": ["go"]},
    )

    assert created.status_code == 201
    body = created.json()
    assert body["companyName"] == "Example GmbH"
    assert body["jobStatus"] == "active"

    fetched = client.get(f"/api/v1/jobs/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Platform Engineer"


def test_list_uses_camel_case_and_pagination(client, add_job):
    for index in range(3):
        add_job(title=f"Engineer {index}")
    add_job(city="Munich", state="Bavaria")

    response = client.get("/api/v1/jobs", params={"city": "Berlin", "limit": 2, "fields": "title"})

    assert response.status_code == 200
    body = response.json()
    assert body["totalJobs"] == 3
    assert len(body["jobs"]) == 2
    assert set(body["jobs"][0]) == {"id", "title"}


def test_repeated_query_keys_are_merged(client, add_job):
    remote = add_job(job_type="remote")
    hybrid = add_job(job_type="hybrid")
    add_job(job_type="onsite")

    response = client.get("/api/v1/jobs?jobType=remote&jobType=hybrid")

    assert {job["id"] for job in response.json()["jobs"]} == {remote.id, hybrid.id}


def test_malformed_id_is_a_bad_request(client):
    assert client.get("/api/v1/jobs/not-a-uuid").status_code == 400
    assert client.delete("/api/v1/jobs/42").status_code == 400


def test_unknown_job_is_not_found(client):
    response = client.get(f"/api/v1/jobs/{MISSING_ID}")

    assert response.status_code == 404
    assert response.json()["detail"] == "No job found with that ID"
    assert client.get(f"/api/v1/jobs/{MISSING_ID}/related-jobs").status_code == 404
    assert client.patch(f"/api/v1/jobs/{MISSING_ID}", json={"title": "x"}).status_code == 404


def test_status_update_validation(client, add_job):
    job = add_job()

    missing = client.patch(f"/api/v1/jobs/{job.id}/status", json={})
    invalid = client.patch(f"/api/v1/jobs/{job.id}/status", json={"status": "archived"})
    updated = client.patch(f"/api/v1/jobs/{job.id}/status", json={"status": "expired"})

    assert missing.status_code == 400
    assert missing.json()["detail"] == "Status is required"
    assert invalid.status_code == 400
    assert updated.status_code == 200
    assert updated.json()["jobStatus"] == "expired"


def test_update_rejects_unknown_status(client, add_job):
    job = add_job()

    response = client.patch(f"/api/v1/jobs/{job.id}", json={"jobStatus": "archived"})

    assert response.status_code == 400


def test_listing_reflects_edits_immediately(client, add_job):
    job = add_job(title="Before")
    assert client.get("/api/v1/jobs").json()["jobs"][0]["title"] == "Before"

    client.patch(f"/api/v1/jobs/{job.id}", json={"title": "After"})

    assert client.get("/api/v1/jobs").json()["jobs"][0]["title"] == "After"


def test_delete_job(client, add_job):
    job = add_job()

    assert client.delete(f"/api/v1/jobs/{job.id}").status_code == 204
    assert client.get(f"/api/v1/jobs/{job.id}").status_code == 404


def test_related_jobs_route(client, add_job):
    job = add_job(role_category="data")
    sibling = add_job(role_category="data")
    add_job(role_category="sales")

    response = client.get(f"/api/v1/jobs/{job.id}/related-jobs")

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["jobs"]] == [sibling.id]


def test_admin_routes(client, add_job):
    add_job()

    analytics = client.get("/api/v1/jobs/admin/analytics")
    metrics = client.get("/api/v1/jobs/admin/scraper-metrics", params={"hours": 12})

    assert analytics.status_code == 200
    assert len(analytics.json()["chartData"]) == 30
    assert analytics.json()["today"]["total"] + analytics.json()["yesterday"]["total"] == 1
    assert metrics.status_code == 200
    assert metrics.json()["totalRuns"] == 0
    assert client.get("/api/v1/jobs/admin/scraper-metrics", params={"hours": 0}).status_code == 422


def test_store_failure_returns_json_error(cache):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    empty = sessionmaker(bind=engine)

    def override_db():
        db = empty()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_cache] = lambda: cache
    try:
        response = TestClient(app).get("/api/v1/jobs")
    finally:
        app.dependency_overrides.clear()
        engine.dispose()

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Failed to retrieve jobs"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_huge_limit_is_served(client, add_job):
    add_job()

    response = client.get("/api/v1/jobs", params={"limit": str(10**20)})

    assert response.status_code == 200
    assert response.json()["totalJobs"] == 1


def test_update_rejects_null_required_fields(client, add_job):
    job = add_job(title="Keep Me")

    assert client.patch(f"/api/v1/jobs/{job.id}", json={"title": None}).status_code == 422
    assert client.patch(f"/api/v1/jobs/{job.id}", json={"jobStatus": None}).status_code == 422
    assert client.get(f"/api/v1/jobs/{job.id}").json()["title"] == "Keep Me"
