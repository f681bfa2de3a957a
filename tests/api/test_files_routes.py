"""API tests for file routes."""

import io
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from docexpress.core.errors import InvalidRequestError
from docexpress.db.models import StoredFile


@pytest.mark.api
class TestUploadAPI:
    """Test /api/v1/files/upload endpoints."""

    def test_upload_requires_auth(self, client: TestClient, make_png):
        files = {"file": ("photo.png", io.BytesIO(make_png()), "image/png")}

        response = client.post("/api/v1/files/upload", files=files)

        assert response.status_code == 401

    def test_upload_rejects_bad_token(self, client: TestClient, make_png):
        files = {"file": ("photo.png", io.BytesIO(make_png()), "image/png")}

        response = client.post(
            "/api/v1/files/upload", files=files, headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401

    def test_upload_image(self, user_client: TestClient, make_png, owner_id: str):
        """Test uploading a PNG creates a live image record."""
        content = make_png()
        files = {"file": ("photo.png", io.BytesIO(content), "image/png")}

        response = user_client.post("/api/v1/files/upload", files=files)

        assert response.status_code == 201
        data = response.json()
        assert data["owner_id"] == owner_id
        assert data["original_name"] == "photo.png"
        assert data["file_type"] == "image"
        assert data["size"] == len(content)
        assert data["is_deleted"] is False
        assert data["storage_key"].startswith("uploads/")

    def test_upload_unsupported_type(self, user_client: TestClient):
        files = {"file": ("setup.exe", io.BytesIO(b"MZ"), "application/x-msdownload")}

        response = user_client.post("/api/v1/files/upload", files=files)

        assert response.status_code == 415
        data = response.json()
        assert data["error"] == "unsupported_media"
        assert "request_id" in data

    def test_upload_too_large(self, user_client: TestClient, mocker):
        mocker.patch("docexpress.services.storage_service.size_limit_for", return_value=1)
        files = {"file": ("notes.txt", io.BytesIO(b"too big"), "text/plain")}

        response = user_client.post("/api/v1/files/upload", files=files)

        assert response.status_code == 413
        assert response.json()["error"] == "file_too_large"

    def test_upload_multiple(self, user_client: TestClient, make_png, make_pdf):
        files = [
            ("files", ("a.png", io.BytesIO(make_png()), "image/png")),
            ("files", ("b.pdf", io.BytesIO(make_pdf()), "application/pdf")),
        ]

        response = user_client.post("/api/v1/files/upload-multiple", files=files)

        assert response.status_code == 201
        data = response.json()
        assert data["count"] == 2
        assert [f["file_type"] for f in data["files"]] == ["image", "pdf"]

    def test_upload_multiple_is_all_or_nothing(
        self, user_client: TestClient, make_png, db, storage_root: Path
    ):
        """Test that one rejected file leaves neither records nor bytes behind."""
        files = [
            ("files", ("a.png", io.BytesIO(make_png()), "image/png")),
            ("files", ("virus.exe", io.BytesIO(b"MZ"), "application/x-msdownload")),
        ]

        response = user_client.post("/api/v1/files/upload-multiple", files=files)

        assert response.status_code == 415
        assert db.query(StoredFile).count() == 0
        assert list((storage_root / "uploads").iterdir()) == []

    def test_upload_multiple_record_failure_keeps_nothing(
        self, user_client: TestClient, make_png, db, storage_root: Path, mocker
    ):
        """Test that a failure while creating records rolls back every record and its bytes."""
        mocker.patch(
            "docexpress.services.file_service.extension_of",
            side_effect=[".png", InvalidRequestError("Unreadable file name")],
        )
        files = [
            ("files", ("a.png", io.BytesIO(make_png()), "image/png")),
            ("files", ("b.png", io.BytesIO(make_png()), "image/png")),
        ]

        response = user_client.post("/api/v1/files/upload-multiple", files=files)

        assert response.status_code == 400
        assert db.query(StoredFile).count() == 0
        assert list((storage_root / "uploads").iterdir()) == []

    def test_upload_multiple_limit(self, user_client: TestClient):
        files = [("files", (f"{n}.txt", io.BytesIO(b"x"), "text/plain")) for n in range(11)]

        response = user_client.post("/api/v1/files/upload-multiple", files=files)

        assert response.status_code == 400


@pytest.mark.api
class TestFileQueriesAPI:
    """Test listing, lookup, stats and download."""

    def test_list_files(self, user_client: TestClient, make_file, other_owner_id: str):
        make_file(name="a.png")
        make_file(name="b.pdf", mime_type="application/pdf")
        make_file(owner_id=other_owner_id)

        response = user_client.get("/api/v1/files")

        assert response.status_code == 200
        data = response.json()
        assert len(data["data"]) == 2
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["page"] == 1

    def test_list_files_by_type(self, user_client: TestClient, image_file, pdf_file):
        response = user_client.get("/api/v1/files", params={"fileType": "pdf"})

        assert response.status_code == 200
        assert [f["file_id"] for f in response.json()["data"]] == [str(pdf_file.file_id)]

    def test_list_files_bad_sort_field(self, user_client: TestClient):
        response = user_client.get("/api/v1/files", params={"sortBy": "storage_path"})

        assert response.status_code == 400

    def test_get_file(self, user_client: TestClient, image_file: StoredFile):
        response = user_client.get(f"/api/v1/files/{image_file.file_id}")

        assert response.status_code == 200
        assert response.json()["file_id"] == str(image_file.file_id)

    def test_get_foreign_file(self, user_client: TestClient, make_file, other_owner_id: str):
        foreign = make_file(owner_id=other_owner_id)

        response = user_client.get(f"/api/v1/files/{foreign.file_id}")

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_get_missing_file(self, user_client: TestClient):
        response = user_client.get(f"/api/v1/files/{uuid4()}")

        assert response.status_code == 404

    def test_get_malformed_id(self, user_client: TestClient):
        response = user_client.get("/api/v1/files/not-a-uuid")

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_stats(self, user_client: TestClient, image_file, pdf_file):
        response = user_client.get("/api/v1/files/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_files"] == 2
        assert set(data["by_type"]) == {"image", "pdf"}

    def test_batch_keeps_order(self, user_client: TestClient, image_file, pdf_file):
        ids = [str(pdf_file.file_id), str(image_file.file_id)]

        response = user_client.post("/api/v1/files/batch", json={"file_ids": ids})

        assert response.status_code == 200
        assert [f["file_id"] for f in response.json()["files"]] == ids

    def test_batch_with_missing_file(self, user_client: TestClient, image_file):
        response = user_client.post(
            "/api/v1/files/batch", json={"file_ids": [str(image_file.file_id), str(uuid4())]}
        )

        assert response.status_code == 404

    def test_download(self, user_client: TestClient, make_file, make_png):
        content = make_png(size=(12, 12))
        file = make_file(name="tiny.png", content=content)

        response = user_client.get(f"/api/v1/files/{file.file_id}/download")

        assert response.status_code == 200
        assert response.content == content
        assert response.headers["content-type"] == "image/png"
        assert "tiny.png" in response.headers["content-disposition"]

    def test_download_missing_bytes(self, user_client: TestClient, image_file: StoredFile):
        Path(image_file.storage_path).unlink()

        response = user_client.get(f"/api/v1/files/{image_file.file_id}/download")

        assert response.status_code == 404


@pytest.mark.api
class TestFileMutationsAPI:
    """Test rename, favorite and deletion."""

    def test_rename(self, user_client: TestClient, image_file: StoredFile):
        response = user_client.patch(
            f"/api/v1/files/{image_file.file_id}/rename", json={"new_name": "cover.jpg"}
        )

        assert response.status_code == 200
        assert response.json()["original_name"] == "cover.jpg"
        assert response.json()["extension"] == "jpg"

    def test_favorite(self, user_client: TestClient, image_file: StoredFile):
        response = user_client.patch(f"/api/v1/files/{image_file.file_id}/favorite")

        assert response.status_code == 200
        assert response.json()["is_favorite"] is True

    def test_soft_delete(self, user_client: TestClient, image_file: StoredFile):
        response = user_client.delete(f"/api/v1/files/{image_file.file_id}")

        assert response.status_code == 200
        assert response.json()["is_deleted"] is True
        assert user_client.get(f"/api/v1/files/{image_file.file_id}").status_code == 404
        assert user_client.get("/api/v1/files").json()["pagination"]["total"] == 0

    def test_permanent_delete(self, user_client: TestClient, image_file: StoredFile):
        file_id = str(image_file.file_id)
        path = Path(image_file.storage_path)

        response = user_client.delete(f"/api/v1/files/{file_id}/permanent")

        assert response.status_code == 200
        assert response.json() == {"deleted": True, "file_id": file_id}
        assert not path.exists()

    def test_delete_foreign_file(self, user_client: TestClient, make_file, other_owner_id: str):
        foreign = make_file(owner_id=other_owner_id)

        response = user_client.delete(f"/api/v1/files/{foreign.file_id}")

        assert response.status_code == 403
