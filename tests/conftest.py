"""Shared test fixtures and configuration."""

import io
import os
import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="docexpress-tests-"))
os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from pypdf import PdfWriter
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docexpress.api.app import app
from docexpress.core.config import settings
from docexpress.db import Base, get_db
from docexpress.db.models import Job, StoredFile
from docexpress.middleware.rate_limit import limiter
from docexpress.models.file import UploadMeta
from docexpress.models.job import JobType
from docexpress.services.auth_service import ROLE_ADMIN, AuthService
from docexpress.services.file_service import FileService
from docexpress.services.job_service import JobService

OWNER = "user-alice"
OTHER_OWNER = "user-bob"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()

    yield session

    session.close()


@pytest.fixture(scope="function")
def db(db_session) -> Generator[Session, None, None]:
    """Alias for db_session for cleaner test signatures."""
    yield db_session


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def storage_root(tmp_path: Path, monkeypatch) -> Path:
    """Point the storage root at a per-test directory."""
    root = tmp_path / "storage"
    (root / "uploads").mkdir(parents=True)
    (root / "temp").mkdir(parents=True)
    monkeypatch.setattr(settings, "storage_root", root)
    return root


def png_bytes(size=(40, 30), color=(200, 30, 30), mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def pdf_bytes(pages: int = 3) -> bytes:
    """A PDF of blank pages; page n is (100 + n) points wide so order is observable."""
    writer = PdfWriter()
    for n in range(1, pages + 1):
        writer.add_blank_page(width=100 + n, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def make_file(db: Session, storage_root: Path) -> Callable[..., StoredFile]:
    """Factory writing real bytes under the storage root and registering a live file."""

    def _make(
        owner_id: str = OWNER,
        name: str = "photo.png",
        mime_type: str = "image/png",
        content: Optional[bytes] = None,
    ) -> StoredFile:
        if content is None:
            content = pdf_bytes() if mime_type == "application/pdf" else png_bytes()
        path = storage_root / "uploads" / f"{os.urandom(8).hex()}{Path(name).suffix}"
        path.write_bytes(content)
        upload = UploadMeta(
            original_name=name,
            filename=path.name,
            mime_type=mime_type,
            size=len(content),
            storage_path=str(path),
            storage_key=f"uploads/{path.name}",
        )
        return FileService.create_from_upload(db, upload, owner_id)

    return _make


@pytest.fixture
def image_file(make_file) -> StoredFile:
    return make_file()


@pytest.fixture
def pdf_file(make_file) -> StoredFile:
    return make_file(name="report.pdf", mime_type="application/pdf")


# ============================================================================
# Job Fixtures
# ============================================================================


@pytest.fixture
def pending_job(db: Session, image_file: StoredFile) -> Job:
    """Create a pending job for testing."""
    return JobService.create_job(
        db,
        owner_id=OWNER,
        job_type=JobType.IMAGE_TO_PDF,
        input_file_ids=[image_file.file_id],
    )


@pytest.fixture
def failed_job(db: Session, pending_job: Job) -> Job:
    """A job that ran and failed."""
    JobService.start_job(db, pending_job.job_id)
    return JobService.fail_job(db, pending_job.job_id, "converter crashed")


@pytest.fixture
def completed_job(db: Session, pending_job: Job, make_file) -> Job:
    """A job that ran and produced one output."""
    output = make_file(name="out.pdf", mime_type="application/pdf")
    JobService.start_job(db, pending_job.job_id)
    return JobService.complete_job(db, pending_job.job_id, [output.file_id])


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database override."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Session cleanup handled by db_session fixture

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def auth_headers(user_id: str = OWNER, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {AuthService.create_access_token(user_id, role=role)}"}


@pytest.fixture
def user_client(client: TestClient) -> TestClient:
    """Test client authenticated as the default owner."""
    client.headers.update(auth_headers(OWNER))
    return client


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers("ops-admin", role=ROLE_ADMIN)


@pytest.fixture
def make_headers() -> Callable[..., dict]:
    return auth_headers


# ============================================================================
# Test Data Fixtures
# ============================================================================


@pytest.fixture
def owner_id() -> str:
    return OWNER


@pytest.fixture
def other_owner_id() -> str:
    return OTHER_OWNER


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    return png_bytes


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    return pdf_bytes
