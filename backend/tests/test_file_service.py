"""
DevDoc Backend — File Service Unit Tests
==========================================

What:  Tests for FileService validation (extension, MIME type, size) and the
       store/delete lifecycle of project files.
How:   Validation tests need no database; lifecycle tests use the per-test
       SQLite session and a temporary uploads directory.

Test Strategy:
    ✅ Allowed and rejected extensions, case-insensitive
    ✅ Declared MIME type must match the extension; generic types are detected from content
    ✅ Empty and oversized uploads rejected
    ✅ Stored name is generated, bytes land in the uploads directory
    ✅ Deleting removes both bytes and record; missing bytes are tolerated
    ✅ Path traversal refused
"""

import re

import pytest

from app.config import settings
from app.exceptions import NotFoundError, ValidationError
from app.schemas.project import ProjectCreate
from app.services.file_service import file_service
from app.services.project_service import project_service


class TestFileValidation:
    """Tests for file validation logic in FileService."""

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "diagram.PNG", "README.md", "App.TSX", "spec.pdf"])
    def test_allowed_extensions(self, filename):
        assert file_service.validate_extension(filename) == "." + filename.rsplit(".", 1)[1].lower()

    @pytest.mark.parametrize("filename", ["malware.exe", "archive.zip", "noextension", ""])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="Invalid file type"):
            file_service.validate_extension(filename)

    # ── MIME Validation ───────────────────────────────────────────────────

    def test_matching_mime_type(self):
        assert file_service.resolve_mime_type("a.png", ".png", "image/png") == "image/png"

    def test_mime_parameters_ignored(self):
        assert file_service.resolve_mime_type("a.json", ".json", "application/json; charset=utf-8") == "application/json"

    def test_mismatched_mime_type_rejected(self):
        """A .png claiming to be an executable is refused."""
        with pytest.raises(ValidationError, match="Invalid file type"):
            file_service.resolve_mime_type("a.png", ".png", "application/x-msdownload")

    @pytest.mark.parametrize("declared", [None, "", "application/octet-stream"])
    def test_generic_mime_type_detected_from_content(self, declared, sample_png_bytes):
        assert file_service.resolve_mime_type("diagram.png", ".png", declared, sample_png_bytes) == "image/png"
        assert file_service.resolve_mime_type(
            "notes.md", ".md", declared, b"# Notes\n\nSetup steps for the project.\n"
        ) in {"text/markdown", "text/x-markdown", "text/plain"}

    def test_without_content_falls_back_to_extension(self):
        assert file_service.resolve_mime_type("photo.jpg", ".jpg", None) == "image/jpeg"

    def test_renamed_file_rejected(self, sample_png_bytes):
        """PNG bytes uploaded as .txt without a declared type are refused."""
        with pytest.raises(ValidationError, match="Invalid file type"):
            file_service.resolve_mime_type("notes.txt", ".txt", "application/octet-stream", sample_png_bytes)

    def test_code_files_accept_plain_text(self):
        assert file_service.resolve_mime_type("data.json", ".json", "text/plain") == "text/plain"

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        file_service.validate_size(1000)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            file_service.validate_size(0)

    def test_over_limit_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 1024)
        file_service.validate_size(1024)
        with pytest.raises(ValidationError, match="too large"):
            file_service.validate_size(1025)

    def test_reported_length_over_limit_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 1024)
        with pytest.raises(ValidationError, match="too large"):
            file_service.validate_size(10, content_length=4096)

    def test_default_limit_message(self):
        with pytest.raises(ValidationError, match="Maximum size is 10MB"):
            file_service.validate_size(settings.max_file_size + 1)

    # ── Paths ─────────────────────────────────────────────────────────────

    def test_generated_name(self):
        assert re.fullmatch(r"file-\d+-\d{9}\.png", file_service.generate_filename(".png"))

    @pytest.mark.parametrize("filename", ["../secrets.txt", "nested/file.png", "/etc/passwd"])
    def test_traversal_refused(self, upload_dir, filename):
        with pytest.raises(ValidationError, match="Invalid file path"):
            file_service.resolve_upload_path(filename)


class TestFileLifecycle:

    @pytest.fixture
    def project_factory(self, db_session):
        async def _create(owner, name="Alpha Rocket"):
            return await project_service.create_project(db_session, owner.id, ProjectCreate(name=name))

        return _create

    @pytest.mark.asyncio
    async def test_store_writes_bytes_and_record(
        self, db_session, user, upload_dir, sample_png_bytes, project_factory
    ):
        project = await project_factory(user)

        record = await file_service.store_file(
            db_session, user.id, project.id, "diagram.png", sample_png_bytes, "image/png"
        )

        assert re.fullmatch(r"file-\d+-\d{9}\.png", record.filename)
        assert record.original_name == "diagram.png"
        assert record.path == f"/uploads/{record.filename}"
        assert record.size == len(sample_png_bytes)
        assert record.mimetype == "image/png"
        assert (upload_dir / record.filename).read_bytes() == sample_png_bytes

        fetched = await project_service.get_project(db_session, user.id, project.id)
        assert [f.id for f in fetched.files] == [record.id]

    @pytest.mark.asyncio
    async def test_rejected_upload_writes_nothing(self, db_session, user, upload_dir, project_factory):
        project = await project_factory(user)

        with pytest.raises(ValidationError):
            await file_service.store_file(
                db_session, user.id, project.id, "tool.exe", b"MZ\x90\x00", "application/x-msdownload"
            )

        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_foreign_project_writes_nothing(
        self, db_session, user, other_user, upload_dir, sample_png_bytes, project_factory
    ):
        project = await project_factory(user)

        with pytest.raises(NotFoundError, match="Project not found"):
            await file_service.store_file(
                db_session, other_user.id, project.id, "diagram.png", sample_png_bytes, "image/png"
            )

        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_removes_bytes_and_record(
        self, db_session, user, upload_dir, sample_png_bytes, project_factory
    ):
        project = await project_factory(user)
        record = await file_service.store_file(
            db_session, user.id, project.id, "diagram.png", sample_png_bytes, "image/png"
        )

        await file_service.delete_file(db_session, user.id, project.id, record.id)

        assert not (upload_dir / record.filename).exists()
        fetched = await project_service.get_project(db_session, user.id, project.id)
        assert fetched.files == []

        with pytest.raises(NotFoundError, match="File not found"):
            await file_service.delete_file(db_session, user.id, project.id, record.id)

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_bytes(
        self, db_session, user, upload_dir, sample_png_bytes, project_factory
    ):
        project = await project_factory(user)
        record = await file_service.store_file(
            db_session, user.id, project.id, "diagram.png", sample_png_bytes, "image/png"
        )
        (upload_dir / record.filename).unlink()

        await file_service.delete_file(db_session, user.id, project.id, record.id)

        fetched = await project_service.get_project(db_session, user.id, project.id)
        assert fetched.files == []

    @pytest.mark.asyncio
    async def test_deleting_project_removes_its_files(
        self, db_session, user, upload_dir, sample_png_bytes, project_factory
    ):
        project = await project_factory(user)
        first = await file_service.store_file(
            db_session, user.id, project.id, "one.png", sample_png_bytes, "image/png"
        )
        second = await file_service.store_file(
            db_session, user.id, project.id, "notes.md", b"# Notes", None
        )

        await project_service.delete_project(db_session, user.id, project.id)

        assert not (upload_dir / first.filename).exists()
        assert not (upload_dir / second.filename).exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, tmp_path):
        """cleanup_file should not raise for files that are already gone."""
        await file_service.cleanup_file(tmp_path / "nonexistent.png")
