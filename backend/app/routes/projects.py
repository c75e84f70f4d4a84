"""
DevDoc Backend — Project Route Handlers
=========================================

What:  The /api/projects REST surface: projects, snippets, links, files,
       tags, and the unauthenticated public view.
How:   Each handler resolves the caller with get_current_user and hands
       `user.id` to the service explicitly; the services perform the
       ownership check and raise NotFoundError for foreign projects.
Who:   Called by the SPA and by app.client.DevDocAPI.

Route Inventory:
    GET    /api/projects?search=&sort=&order=     list (search is ranked)
    POST   /api/projects                          create            201
    GET    /api/projects/public/{id}              public view (no auth)
    GET    /api/projects/{id}                     detail
    PUT    /api/projects/{id}                     partial update
    DELETE /api/projects/{id}                     delete (+ stored files)
    POST   /api/projects/{id}/upload              multipart field `file`
    DELETE /api/projects/{id}/files/{file_id}
    POST   /api/projects/{id}/snippets            PUT/DELETE .../{snippet_id}
    POST   /api/projects/{id}/links               PUT/DELETE .../{link_id}
    POST   /api/projects/{id}/tags                DELETE .../{tag}
"""

import logging
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user
from app.exceptions import ValidationError
from app.models.user import User
from app.schemas.common import ErrorResponse
from app.schemas.project import (
    FileRecord,
    LinkCreate,
    LinkResponse,
    LinkUpdate,
    MessageResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    PublicProjectResponse,
    SnippetCreate,
    SnippetResponse,
    SnippetUpdate,
    TagRequest,
)
from app.services.file_service import file_service
from app.services.project_service import project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])

_AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    404: {"description": "Project not found (or not yours)", "model": ErrorResponse},
}
_WRITE_ERRORS = {
    400: {"description": "Missing required field", "model": ErrorResponse},
    **_AUTH_ERRORS,
}


# ══════════════════════════════════════════════════════════════════════════
# Projects
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "",
    response_model=List[ProjectResponse],
    responses={401: _AUTH_ERRORS[401]},
    summary="List your projects",
    description=(
        "Returns the caller's projects, most recently updated first. With "
        "`search`, results are ranked by relevance (name, then description, "
        "tags, notes); if nothing matches a whole word, a substring match is used."
    ),
)
async def list_projects(
    search: Optional[str] = Query(default=None, max_length=200, description="Search term"),
    sort: Literal["updated_at", "created_at", "name"] = Query(default="updated_at"),
    order: Literal["asc", "desc"] = Query(default="desc"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ProjectResponse]:
    return await project_service.list_projects(db, user.id, search=search, sort=sort, order=order)


@router.post(
    "",
    status_code=201,
    response_model=ProjectResponse,
    responses={400: _WRITE_ERRORS[400], 401: _AUTH_ERRORS[401]},
    summary="Create a project",
)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await project_service.create_project(db, user.id, body)


# Registered before /{project_id} so "public" is never parsed as an id
@router.get(
    "/public/{project_id}",
    response_model=PublicProjectResponse,
    responses={404: {"description": "Project not found", "model": ErrorResponse}},
    summary="Public read-only view",
    description="Shareable projection of a project. No authentication; never includes the owner.",
)
async def get_public_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PublicProjectResponse:
    return await project_service.get_public_project(db, project_id)


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    responses=_AUTH_ERRORS,
    summary="Get a project",
)
async def get_project(
    project_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await project_service.get_project(db, user.id, project_id)


@router.put(
    "/{project_id}",
    response_model=ProjectResponse,
    responses=_WRITE_ERRORS,
    summary="Update a project",
    description=(
        "Applies only the fields present in the body. `links` and `snippets` "
        "replace the whole collection. Returns the saved project."
    ),
)
async def update_project(
    project_id: UUID,
    body: ProjectUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await project_service.update_project(db, user.id, project_id, body)


@router.delete(
    "/{project_id}",
    response_model=MessageResponse,
    responses=_AUTH_ERRORS,
    summary="Delete a project",
    description="Deletes the project and every file uploaded to it.",
)
async def delete_project(
    project_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await project_service.delete_project(db, user.id, project_id)
    return MessageResponse(message="Project deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/{project_id}/upload",
    response_model=FileRecord,
    responses=_WRITE_ERRORS,
    summary="Upload a file to a project",
    description=(
        "Multipart upload (field `file`). Images, PDF/Word documents, and "
        "text/code/markup files up to 10MB."
    ),
)
async def upload_file(
    project_id: UUID,
    file: Optional[UploadFile] = File(default=None, description="File to attach"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FileRecord:
    if file is None or not file.filename:
        raise ValidationError(message="No file uploaded", field="file")

    try:
        content = await file.read()
        logger.info(
            "Received upload for project %s: filename=%s, size=%d bytes",
            project_id,
            file.filename,
            len(content),
        )
        return await file_service.store_file(
            db,
            owner_id=user.id,
            project_id=project_id,
            filename=file.filename,
            content=content,
            content_type=file.content_type,
            content_length=file.size,
        )
    finally:
        await file.close()


@router.delete(
    "/{project_id}/files/{file_id}",
    response_model=MessageResponse,
    responses=_AUTH_ERRORS,
    summary="Delete an uploaded file",
)
async def delete_file(
    project_id: UUID,
    file_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await file_service.delete_file(db, user.id, project_id, file_id)
    return MessageResponse(message="File deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Snippets
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/{project_id}/snippets",
    response_model=SnippetResponse,
    responses=_WRITE_ERRORS,
    summary="Add a code snippet",
)
async def add_snippet(
    project_id: UUID,
    body: SnippetCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SnippetResponse:
    return await project_service.add_snippet(db, user.id, project_id, body)


@router.put(
    "/{project_id}/snippets/{snippet_id}",
    response_model=SnippetResponse,
    responses=_WRITE_ERRORS,
    summary="Update a code snippet",
)
async def update_snippet(
    project_id: UUID,
    snippet_id: UUID,
    body: SnippetUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SnippetResponse:
    return await project_service.update_snippet(db, user.id, project_id, snippet_id, body)


@router.delete(
    "/{project_id}/snippets/{snippet_id}",
    response_model=MessageResponse,
    responses=_AUTH_ERRORS,
    summary="Delete a code snippet",
)
async def delete_snippet(
    project_id: UUID,
    snippet_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await project_service.delete_snippet(db, user.id, project_id, snippet_id)
    return MessageResponse(message="Snippet deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Links
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/{project_id}/links",
    response_model=LinkResponse,
    responses=_WRITE_ERRORS,
    summary="Add a link",
)
async def add_link(
    project_id: UUID,
    body: LinkCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LinkResponse:
    return await project_service.add_link(db, user.id, project_id, body)


@router.put(
    "/{project_id}/links/{link_id}",
    response_model=LinkResponse,
    responses=_WRITE_ERRORS,
    summary="Update a link",
)
async def update_link(
    project_id: UUID,
    link_id: UUID,
    body: LinkUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LinkResponse:
    return await project_service.update_link(db, user.id, project_id, link_id, body)


@router.delete(
    "/{project_id}/links/{link_id}",
    response_model=MessageResponse,
    responses=_AUTH_ERRORS,
    summary="Delete a link",
)
async def delete_link(
    project_id: UUID,
    link_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await project_service.delete_link(db, user.id, project_id, link_id)
    return MessageResponse(message="Link deleted successfully")


# ══════════════════════════════════════════════════════════════════════════
# Tags
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/{project_id}/tags",
    response_model=ProjectResponse,
    responses=_WRITE_ERRORS,
    summary="Add a tag",
    description="Adds a lowercase tag unless the project already has it.",
)
async def add_tag(
    project_id: UUID,
    body: TagRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await project_service.add_tag(db, user.id, project_id, body.tag)


@router.delete(
    "/{project_id}/tags/{tag}",
    response_model=ProjectResponse,
    responses=_AUTH_ERRORS,
    summary="Remove a tag",
)
async def remove_tag(
    project_id: UUID,
    tag: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    return await project_service.remove_tag(db, user.id, project_id, tag)
