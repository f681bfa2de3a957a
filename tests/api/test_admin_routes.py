"""API tests for admin routes and service endpoints."""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from docexpress.db.models import Job, utcnow
from docexpress.models.job import JobType
from docexpress.services.job_service import JobService


@pytest.mark.api
class TestAdminJobsAPI:
    """Test /api/v1/admin endpoints."""

    def test_requires_admin_role(self, user_client: TestClient):
        response = user_client.get("/api/v1/admin/jobs")

        assert response.status_code == 403

    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/v1/admin/jobs").status_code == 401

    def test_list_all_jobs(self, client: TestClient, admin_headers: dict, db, owner_id: str, other_owner_id: str):
        JobService.create_job(db, owner_id, JobType.PDF_MERGE, [uuid4()])
        JobService.create_job(db, other_owner_id, JobType.COMPRESS_PDF, [uuid4()])

        response = client.get("/api/v1/admin/jobs", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 2
        assert {j["owner_id"] for j in data["data"]} == {owner_id, other_owner_id}

    def test_list_jobs_for_one_owner(self, client: TestClient, admin_headers: dict, db, owner_id: str, other_owner_id: str):
        JobService.create_job(db, owner_id, JobType.PDF_MERGE, [uuid4()])
        JobService.create_job(db, other_owner_id, JobType.COMPRESS_PDF, [uuid4()])

        response = client.get("/api/v1/admin/jobs", params={"ownerId": other_owner_id}, headers=admin_headers)

        assert [j["job_type"] for j in response.json()["data"]] == ["COMPRESS_PDF"]

    def test_get_any_job(self, client: TestClient, admin_headers: dict, pending_job: Job):
        response = client.get(f"/api/v1/admin/jobs/{pending_job.job_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["owner_id"] == pending_job.owner_id

    def test_cleanup(self, client: TestClient, admin_headers: dict, db, owner_id: str):
        old = JobService.create_job(db, owner_id, JobType.PDF_MERGE, [uuid4()])
        JobService.fail_job(db, old.job_id, "stale")
        old.completed_at = utcnow() - timedelta(days=40)
        db.commit()
        JobService.create_job(db, owner_id, JobType.PDF_MERGE, [uuid4()])

        response = client.post("/api/v1/admin/jobs/cleanup", json={"max_age_days": 30}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"deleted_count": 1, "max_age_days": 30}
        assert db.query(Job).count() == 1

    def test_cleanup_rejects_non_positive_age(self, client: TestClient, admin_headers: dict):
        response = client.post("/api/v1/admin/jobs/cleanup", json={"max_age_days": 0}, headers=admin_headers)

        assert response.status_code == 422


@pytest.mark.api
class TestServiceEndpoints:
    """Test health probes and response headers."""

    def test_root(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client: TestClient, image_file, mocker):
        mocker.patch("docexpress.api.routes.health.find_binary", return_value=None)

        data = client.get("/api/v1/health").json()

        assert data["status"] == "healthy"
        assert data["database"]["live_files"] == 1
        assert data["tools"] == {"ffmpeg": False, "soffice": False, "tesseract": False}

    def test_readiness_and_liveness(self, client: TestClient):
        assert client.get("/api/v1/readiness").json()["status"] == "ready"
        assert client.get("/api/v1/liveness").json()["status"] == "alive"

    def test_request_id_is_echoed(self, client: TestClient):
        response = client.get("/api/v1/liveness", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
