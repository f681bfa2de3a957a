"""Unit tests for FileService."""

from pathlib import Path
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from docexpress.core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from docexpress.db.models import StoredFile
from docexpress.models.file import FileState, FileType, OutputMeta
from docexpress.services.file_service import FileService


@pytest.mark.unit
class TestFileCreation:
    """Test creating file records from uploads and operation outputs."""

    def test_create_from_upload(self, make_file, owner_id: str):
        file = make_file(name="Holiday.JPG", mime_type="image/jpeg")

        assert file.file_id is not None
        assert file.owner_id == owner_id
        assert file.file_type == FileType.IMAGE
        assert file.extension == "jpg"
        assert file.state == FileState.LIVE
        assert file.is_favorite is False
        assert file.source_job_id is None

    def test_unknown_mime_type_is_other(self, make_file):
        file = make_file(name="notes.bin", mime_type="application/x-custom", content=b"\x00\x01")

        assert file.file_type == FileType.OTHER

    def test_create_output_round_trip(self, db: Session, owner_id: str, storage_root: Path):
        """Test that a registered output resolves with its size, type and producing job."""
        path = storage_root / "temp" / "temp-output.pdf"
        path.write_bytes(b"%PDF-1.4 hello")
        job_id = uuid4()

        output = FileService.create_output(
            db,
            OutputMeta(file_path=path, original_name="report.pdf", mime_type="application/pdf"),
            owner_id,
            job_id,
        )
        [resolved] = FileService.resolve_files(db, [output.file_id], owner_id=owner_id)

        assert resolved.file_id == output.file_id
        assert resolved.file_type == FileType.PDF
        assert resolved.size == len(b"%PDF-1.4 hello")
        assert resolved.source_job_id == job_id
        assert resolved.storage_key == "temp/temp-output.pdf"
        assert resolved.original_name == "report.pdf"


@pytest.mark.unit
class TestResolveFiles:
    """Test all-or-nothing resolution of input files."""

    def test_resolve_preserves_request_order(self, make_file, db: Session, owner_id: str):
        a, b, c = make_file(name="a.png"), make_file(name="b.png"), make_file(name="c.png")

        resolved = FileService.resolve_files(db, [c.file_id, a.file_id, b.file_id], owner_id=owner_id)

        assert [f.original_name for f in resolved] == ["c.png", "a.png", "b.png"]

    def test_resolve_accepts_string_ids(self, image_file: StoredFile, db: Session):
        [resolved] = FileService.resolve_files(db, [str(image_file.file_id)])

        assert resolved.file_id == image_file.file_id

    def test_resolve_allows_repeated_ids(self, image_file: StoredFile, db: Session, owner_id: str):
        resolved = FileService.resolve_files(db, [image_file.file_id] * 2, owner_id=owner_id)

        assert len(resolved) == 2

    def test_resolve_with_missing_id_is_not_found(self, image_file: StoredFile, db: Session):
        with pytest.raises(NotFoundError):
            FileService.resolve_files(db, [image_file.file_id, uuid4()])

    def test_resolve_malformed_id_is_not_found(self, db: Session):
        with pytest.raises(NotFoundError):
            FileService.resolve_files(db, ["../../etc/passwd"])

    def test_resolve_soft_deleted_is_not_found(self, image_file: StoredFile, db: Session, owner_id: str):
        FileService.soft_delete(db, image_file.file_id, owner_id)

        with pytest.raises(NotFoundError):
            FileService.resolve_files(db, [image_file.file_id], owner_id=owner_id)

    def test_resolve_mixed_ownership_is_forbidden(
        self, make_file, db: Session, owner_id: str, other_owner_id: str
    ):
        """Test that one foreign file denies the whole request."""
        a = make_file(owner_id=owner_id)
        b = make_file(owner_id=other_owner_id)
        c = make_file(owner_id=owner_id)

        with pytest.raises(ForbiddenError):
            FileService.resolve_files(db, [a.file_id, b.file_id, c.file_id], owner_id=owner_id)

    def test_resolve_without_owner_skips_ownership(
        self, make_file, db: Session, owner_id: str, other_owner_id: str
    ):
        a = make_file(owner_id=owner_id)
        b = make_file(owner_id=other_owner_id)

        assert len(FileService.resolve_files(db, [a.file_id, b.file_id])) == 2


@pytest.mark.unit
class TestFileQueries:
    """Test single lookups, listing and history lookups."""

    def test_get_file(self, image_file: StoredFile, db: Session, owner_id: str):
        file = FileService.get_file(db, image_file.file_id, owner_id)

        assert file.file_id == image_file.file_id

    def test_get_foreign_file_forbidden(self, image_file: StoredFile, db: Session, other_owner_id: str):
        with pytest.raises(ForbiddenError):
            FileService.get_file(db, image_file.file_id, other_owner_id)

    def test_get_missing_file(self, db: Session):
        with pytest.raises(NotFoundError):
            FileService.get_file(db, uuid4())

    def test_find_existing_keeps_soft_deleted_and_skips_purged(
        self, make_file, db: Session, owner_id: str
    ):
        kept, hidden, purged = make_file(), make_file(), make_file()
        purged_id = purged.file_id
        FileService.soft_delete(db, hidden.file_id, owner_id)
        FileService.hard_delete(db, purged_id, owner_id)

        found = FileService.find_existing(
            db, [str(purged_id), str(hidden.file_id), "garbage", str(kept.file_id)]
        )

        assert [f.file_id for f in found] == [hidden.file_id, kept.file_id]
        assert found[0].is_deleted is True

    def test_list_files_only_live_and_owned(
        self, make_file, db: Session, owner_id: str, other_owner_id: str
    ):
        mine = make_file(owner_id=owner_id)
        gone = make_file(owner_id=owner_id)
        make_file(owner_id=other_owner_id)
        FileService.soft_delete(db, gone.file_id, owner_id)

        files, total, limit = FileService.list_files(db, owner_id)

        assert total == 1
        assert [f.file_id for f in files] == [mine.file_id]

    def test_list_files_filters_by_type(self, image_file, pdf_file, db: Session, owner_id: str):
        files, total, _ = FileService.list_files(db, owner_id, file_type=FileType.PDF)

        assert total == 1
        assert files[0].file_id == pdf_file.file_id

    def test_list_files_sorted_by_name(self, make_file, db: Session, owner_id: str):
        make_file(name="b.png")
        make_file(name="a.png")

        files, _, _ = FileService.list_files(db, owner_id, sort_by="original_name", sort_order="asc")

        assert [f.original_name for f in files] == ["a.png", "b.png"]

    def test_list_files_rejects_unknown_sort(self, db: Session, owner_id: str):
        with pytest.raises(InvalidRequestError):
            FileService.list_files(db, owner_id, sort_by="storage_path")

    def test_list_files_paginates(self, make_file, db: Session, owner_id: str):
        for index in range(5):
            make_file(name=f"{index}.png")

        files, total, limit = FileService.list_files(db, owner_id, page=2, limit=2)

        assert total == 5
        assert limit == 2
        assert len(files) == 2

    def test_usage_stats_counts_live_files(self, make_file, db: Session, owner_id: str):
        image = make_file(content=b"x" * 10)
        make_file(name="doc.pdf", mime_type="application/pdf", content=b"y" * 20)
        deleted = make_file(content=b"z" * 40)
        FileService.soft_delete(db, deleted.file_id, owner_id)

        stats = FileService.usage_stats(db, owner_id)

        assert stats.total_files == 2
        assert stats.total_size == 30
        assert stats.by_type["image"].count == 1
        assert stats.by_type["image"].total_size == image.size
        assert stats.by_type["pdf"].total_size == 20


@pytest.mark.unit
class TestFileMutations:
    """Test rename, favorite and the two deletion paths."""

    def test_rename_updates_extension(self, image_file: StoredFile, db: Session, owner_id: str):
        file = FileService.rename_file(db, image_file.file_id, owner_id, "  cover.jpeg ")

        assert file.original_name == "cover.jpeg"
        assert file.extension == "jpeg"

    def test_rename_to_blank_rejected(self, image_file: StoredFile, db: Session, owner_id: str):
        with pytest.raises(InvalidRequestError):
            FileService.rename_file(db, image_file.file_id, owner_id, "   ")

    def test_toggle_favorite(self, image_file: StoredFile, db: Session, owner_id: str):
        assert FileService.toggle_favorite(db, image_file.file_id, owner_id).is_favorite is True
        assert FileService.toggle_favorite(db, image_file.file_id, owner_id).is_favorite is False

    def test_soft_delete_keeps_bytes(self, image_file: StoredFile, db: Session, owner_id: str):
        file = FileService.soft_delete(db, image_file.file_id, owner_id)

        assert file.state == FileState.SOFT_DELETED
        assert file.deleted_at is not None
        assert FileService.resolve_path(file).exists()

    def test_soft_delete_twice_is_not_found(self, image_file: StoredFile, db: Session, owner_id: str):
        FileService.soft_delete(db, image_file.file_id, owner_id)

        with pytest.raises(NotFoundError):
            FileService.soft_delete(db, image_file.file_id, owner_id)

    def test_soft_delete_foreign_file_forbidden(
        self, image_file: StoredFile, db: Session, other_owner_id: str
    ):
        with pytest.raises(ForbiddenError):
            FileService.soft_delete(db, image_file.file_id, other_owner_id)

    def test_hard_delete_removes_bytes_and_record(self, image_file: StoredFile, db: Session, owner_id: str):
        path = FileService.resolve_path(image_file)
        file_id = image_file.file_id

        result = FileService.hard_delete(db, file_id, owner_id)

        assert result == {"deleted": True, "file_id": str(file_id)}
        assert not path.exists()
        assert db.query(StoredFile).filter(StoredFile.file_id == file_id).count() == 0

    def test_hard_delete_soft_deleted_file(self, image_file: StoredFile, db: Session, owner_id: str):
        file_id = image_file.file_id
        FileService.soft_delete(db, file_id, owner_id)

        FileService.hard_delete(db, file_id, owner_id)

        assert FileService.find_existing(db, [file_id]) == []

    def test_hard_delete_with_missing_bytes_still_removes_record(
        self, image_file: StoredFile, db: Session, owner_id: str
    ):
        FileService.resolve_path(image_file).unlink()

        FileService.hard_delete(db, image_file.file_id, owner_id)

        assert db.query(StoredFile).count() == 0


@pytest.mark.unit
class TestFilePaths:
    """Test path resolution against the storage root."""

    def test_relative_path_is_under_storage_root(self, image_file: StoredFile, db: Session, storage_root: Path):
        image_file.storage_path = f"uploads/{image_file.filename}"
        db.commit()

        assert FileService.resolve_path(image_file) == (storage_root / "uploads" / image_file.filename).resolve()

    def test_escaping_path_is_forbidden(self, image_file: StoredFile, db: Session):
        image_file.storage_path = "../../outside.png"
        db.commit()

        with pytest.raises(ForbiddenError):
            FileService.ensure_within_storage_root(image_file)

    def test_to_response_exposes_metadata(self, image_file: StoredFile, db: Session):
        image_file.file_metadata = {"width": 40, "height": 30}
        db.commit()

        response = FileService.to_response(image_file)

        assert response.metadata == {"width": 40, "height": 30}
        assert response.is_deleted is False

