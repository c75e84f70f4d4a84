"""
DevDoc Backend — Uploaded File Serving
========================================

What:  GET /uploads/{filename} returns stored file bytes.
How:   The filename is resolved against the uploads directory and rejected
       if it points anywhere else. No authentication: stored names are
       unguessable, and the public project view links to them directly.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from app.exceptions import NotFoundError
from app.schemas.common import ErrorResponse
from app.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Uploads"])


@router.get(
    "/uploads/{filename}",
    responses={
        200: {"description": "Stored file"},
        400: {"description": "Invalid file path", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Download an uploaded file",
)
async def serve_upload(filename: str) -> FileResponse:
    path = file_service.resolve_upload_path(filename)
    if not path.is_file():
        raise NotFoundError(resource="File", resource_id=filename)

    # media_type is inferred from the filename
    return FileResponse(
        path=str(path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
