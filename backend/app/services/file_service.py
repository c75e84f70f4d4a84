"""
DevDoc Backend — File Storage Service
=======================================

What:  Stores uploaded project files on disk and records their metadata.
How:   Validates extension, declared MIME type and size, writes the bytes
       with aiofiles under a generated name, and appends a ProjectFile row
       to the owning project.
Who:   Called by the upload/delete file routes and by ProjectService when a
       project is deleted.
When:  After FastAPI has parsed the multipart body (field `file`).

Storage layout:
    uploads/
    ├── file-1718000000000-482913377.png
    └── file-1718000004211-009381245.md

    Files are served back under /uploads/<filename>. Names are time based
    with a random suffix and keep the original extension; they contain no
    user input, so they cannot traverse out of the uploads directory.
"""

import logging
import os
import secrets
import time
import uuid
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

import aiofiles
import magic
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import FileStorageError, NotFoundError, ValidationError
from app.models.project import Project, ProjectFile
from app.schemas.project import FileRecord
from app.services.ownership import load_owned_project

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Images, common documents, and plain text/code/markup files. A file is
# accepted only when both its extension and its MIME type are listed here.
_TEXT = "text/plain"
ALLOWED_TYPES: Dict[str, FrozenSet[str]] = {
    ".jpg": frozenset({"image/jpeg"}),
    ".jpeg": frozenset({"image/jpeg"}),
    ".png": frozenset({"image/png"}),
    ".gif": frozenset({"image/gif"}),
    ".svg": frozenset({"image/svg+xml"}),
    ".pdf": frozenset({"application/pdf"}),
    ".doc": frozenset({"application/msword"}),
    ".docx": frozenset({"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}),
    ".txt": frozenset({_TEXT}),
    ".md": frozenset({"text/markdown", "text/x-markdown", _TEXT}),
    ".js": frozenset({"text/javascript", "application/javascript", _TEXT}),
    ".jsx": frozenset({"text/jsx", "text/javascript", "application/javascript", _TEXT}),
    ".ts": frozenset({"application/typescript", "text/typescript", "video/mp2t", _TEXT}),
    ".tsx": frozenset({"text/tsx", "application/typescript", "text/typescript", _TEXT}),
    ".css": frozenset({"text/css", _TEXT}),
    ".html": frozenset({"text/html", _TEXT}),
    ".json": frozenset({"application/json", _TEXT}),
    ".xml": frozenset({"application/xml", "text/xml", _TEXT}),
}

ALLOWED_EXTENSIONS = frozenset(ALLOWED_TYPES)

# Content types browsers send when they do not know better
_UNSPECIFIED_TYPES = {"", "application/octet-stream"}

# libmagic only needs the file header
MAGIC_HEADER_BYTES = 2048


class FileService:
    """
    Manages the lifecycle of files attached to projects.

    Lifecycle of an uploaded file:
        1. Ownership check on the target project
        2. Extension check, MIME check, size check
        3. Bytes written to <upload_dir>/<generated name>
        4. ProjectFile row appended to the project
        5. On a failed database write the bytes are removed again
    """

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_root = Path(upload_dir or settings.upload_dir).resolve()
        self.upload_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_root=%s", self.upload_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """Return the lowercase extension, or raise ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    "Invalid file type. Only images, documents, and code files are allowed."
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def resolve_mime_type(
        self, filename: str, extension: str, declared: Optional[str], content: bytes = b""
    ) -> str:
        """
        Check the MIME type against the extension.

        A missing or generic declared type is replaced by the type libmagic
        detects from the file's leading bytes; when libmagic cannot tell
        either, the extension's primary type is used. Content detected as
        something the extension does not allow (a renamed file) is rejected.
        """
        mime_type = (declared or "").split(";")[0].strip().lower()
        allowed = ALLOWED_TYPES[extension]
        if mime_type in _UNSPECIFIED_TYPES:
            detected = magic.from_buffer(content[:MAGIC_HEADER_BYTES], mime=True) if content else ""
            logger.debug("Detected MIME type for %s: %s", filename, detected)
            if detected in _UNSPECIFIED_TYPES:
                mime_type = sorted(allowed)[0]
            elif detected.startswith("text/") and detected not in allowed and _TEXT in allowed:
                # libmagic labels source code by language guess (text/x-c, ...)
                mime_type = _TEXT
            else:
                mime_type = detected

        if mime_type not in allowed:
            raise ValidationError(
                message=(
                    "Invalid file type. Only images, documents, and code files are allowed."
                ),
                field="file",
                context={"extension": extension, "mimetype": mime_type},
            )
        return mime_type

    def validate_size(self, actual_size: int, content_length: Optional[int] = None) -> None:
        """Reject empty files and files above MAX_FILE_SIZE."""
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size": settings.max_file_size, "reported_size": content_length},
            )
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")
        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size": settings.max_file_size, "actual_size": actual_size},
            )

    # ── Disk operations ───────────────────────────────────────────────────

    def generate_filename(self, extension: str) -> str:
        """file-<epoch ms>-<9 random digits><ext>"""
        millis = int(time.time() * 1000)
        suffix = secrets.randbelow(10**9)
        return f"file-{millis}-{suffix:09d}{extension}"

    def resolve_upload_path(self, filename: str) -> Path:
        """Absolute path for a stored filename; refuses anything outside the uploads dir."""
        path = (self.upload_root / filename).resolve()
        if path.parent != self.upload_root:
            raise ValidationError(message="Invalid file path", field="filename")
        return path

    async def write_file(self, content: bytes, extension: str) -> Tuple[str, Path]:
        """Write bytes under a fresh name. Returns (filename, absolute_path)."""
        filename = self.generate_filename(extension)
        absolute_path = self.upload_root / filename
        try:
            self.upload_root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to upload file",
                context={"path": str(absolute_path), "os_error": str(e)},
            )
        logger.info("File stored: %s (%d bytes)", filename, len(content))
        return filename, absolute_path

    async def remove_file(self, filename: str) -> bool:
        """
        Delete a stored file.

        Returns False when the file was already gone; other OS errors
        surface as FileStorageError.
        """
        path = self.resolve_upload_path(filename)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.debug("File already absent from disk: %s", filename)
            return False
        except OSError as e:
            logger.error("Failed to delete file %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to delete file",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("Deleted file: %s", filename)
        return True

    async def cleanup_file(self, file_path: Path) -> None:
        """Best-effort removal of bytes whose metadata never got persisted."""
        try:
            if file_path.exists():
                os.remove(file_path)
                logger.info("Cleaned up file: %s", file_path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def remove_project_files(self, project: Project) -> int:
        """Delete every stored file of a project from disk. Returns how many existed."""
        removed = 0
        for record in project.files:
            if await self.remove_file(record.filename):
                removed += 1
        return removed

    # ── Project operations ────────────────────────────────────────────────

    async def store_file(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        content_length: Optional[int] = None,
    ) -> FileRecord:
        """
        Validate and store an upload, then attach its record to the project.

        Raises:
            NotFoundError: project missing or not owned by the caller
            ValidationError: disallowed type, empty, or too large
            FileStorageError: the bytes could not be written
        """
        project = await load_owned_project(db, owner_id, project_id)

        ext = self.validate_extension(filename)
        mime_type = self.resolve_mime_type(filename, ext, content_type, content)
        self.validate_size(len(content), content_length)

        stored_name, absolute_path = await self.write_file(content, ext)
        record = ProjectFile(
            filename=stored_name,
            original_name=Path(filename).name,
            path=f"/uploads/{stored_name}",
            size=len(content),
            mimetype=mime_type,
        )
        project.files.append(record)
        project.touch()
        try:
            await db.flush()
        except Exception:
            await self.cleanup_file(absolute_path)
            raise

        logger.info("Attached %s to project %s", stored_name, project.id)
        return FileRecord.model_validate(record)

    async def delete_file(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        file_id: uuid.UUID,
    ) -> None:
        """
        Remove a file's bytes and its metadata record.

        Raises:
            NotFoundError: project not owned/missing, or file id not on the project
        """
        project = await load_owned_project(db, owner_id, project_id)
        record = project.find_file(file_id)
        if record is None:
            raise NotFoundError(resource="File", resource_id=str(file_id))

        await self.remove_file(record.filename)
        project.files.remove(record)
        project.touch()
        await db.flush()


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
