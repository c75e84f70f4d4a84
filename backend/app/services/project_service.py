"""
DevDoc Backend — Project Service (Project Store)
==================================================

What:  Owner-scoped CRUD for projects and their snippet/link collections.
How:   Every operation receives the caller's user id explicitly and loads the
       project through load_owned_project(), so a project that belongs to
       someone else is indistinguishable from one that does not exist.
Who:   Called by routes/projects.py.
When:  For every authenticated /api/projects request, plus the public view.

Persistence:
    Operations mutate ORM objects and flush; the surrounding
    get_db_session() dependency commits on success and rolls back on error.
    Concurrent saves of the same project are last-writer-wins.

Error Handling Strategy:
    DevDocError subclasses (ValidationError, NotFoundError) propagate as-is.
    Anything else raised by the database layer is logged and wrapped in
    DatabaseError so internals never reach the client.
"""

import functools
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, DevDocError, NotFoundError, ValidationError
from app.models.project import Link, Project, Snippet
from app.schemas.project import (
    LinkCreate,
    LinkInput,
    LinkResponse,
    LinkUpdate,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    PublicProjectResponse,
    SnippetCreate,
    SnippetInput,
    SnippetResponse,
    SnippetUpdate,
)
from app.services.file_service import file_service
from app.services.ownership import load_owned_project
from app.services.search import search_projects

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "javascript"

SORT_COLUMNS = {
    "updated_at": Project.updated_at,
    "created_at": Project.created_at,
    "name": Project.name,
}


def _wrap_db_errors(action: str):
    """Re-raise non-application exceptions as DatabaseError."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except DevDocError:
                raise
            except Exception as e:
                logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
                raise DatabaseError(
                    message=f"Failed to {action}",
                    context={"error_type": type(e).__name__},
                )

        return wrapper

    return decorator


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Trim and lowercase tags, dropping empty entries. Duplicates are kept."""
    if not tags:
        return []
    return [t.strip().lower() for t in tags if t and t.strip()]


def _required(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


class ProjectService:
    """
    Business logic layer for projects.

    Responsibilities:
        - list/create/get/update/delete of the caller's projects
        - snippet and link add/update/delete inside a project
        - tag add/remove
        - the unauthenticated public projection
    """

    # ── Projects ──────────────────────────────────────────────────────────

    @_wrap_db_errors("fetch projects")
    async def list_projects(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        search: Optional[str] = None,
        sort: str = "updated_at",
        order: str = "desc",
    ) -> List[ProjectResponse]:
        """
        List the caller's projects.

        With a search term the result is in relevance order (see
        app.services.search) and sort/order are ignored. Without one,
        projects are ordered by `sort` in `order` direction, most recently
        updated first by default.
        """
        if search and search.strip():
            projects = await search_projects(db, owner_id, search)
        else:
            column = SORT_COLUMNS.get(sort, Project.updated_at)
            direction = asc if order == "asc" else desc
            result = await db.execute(
                select(Project)
                .where(Project.user_id == owner_id)
                .order_by(direction(column), direction(Project.id))
            )
            projects = list(result.scalars().all())

        return [ProjectResponse.model_validate(p) for p in projects]

    @_wrap_db_errors("create project")
    async def create_project(
        self, db: AsyncSession, owner_id: uuid.UUID, data: ProjectCreate
    ) -> ProjectResponse:
        """
        Create a project owned by the caller.

        Raises:
            ValidationError: name missing or blank
        """
        if not _required(data.name):
            raise ValidationError(message="Project name is required", field="name")

        project = Project(
            user_id=owner_id,
            name=data.name.strip(),
            description=data.description,
            tags=normalize_tags(data.tags),
            notes=data.notes or "",
            # Initialized so the response does not trigger a lazy load
            snippets=[],
            links=[],
            files=[],
        )
        db.add(project)
        await db.flush()

        logger.info("Project %s created for user %s", project.id, owner_id)
        return ProjectResponse.model_validate(project)

    @_wrap_db_errors("fetch project")
    async def get_project(
        self, db: AsyncSession, owner_id: uuid.UUID, project_id: uuid.UUID
    ) -> ProjectResponse:
        project = await load_owned_project(db, owner_id, project_id)
        return ProjectResponse.model_validate(project)

    @_wrap_db_errors("update project")
    async def update_project(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        data: ProjectUpdate,
    ) -> ProjectResponse:
        """
        Apply the fields present in `data` and return the persisted project.

        links/snippets replace the whole collection. Entries carrying the id
        of an existing child update it in place (keeping its created_at);
        entries without a known id become new children; children not listed
        are deleted.

        Raises:
            NotFoundError: project missing or not owned
            ValidationError: blank name, or a link/snippet missing a required field
        """
        project = await load_owned_project(db, owner_id, project_id)
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True)

        if "name" in changes:
            if not _required(data.name):
                raise ValidationError(message="Project name is required", field="name")
            project.name = data.name.strip()
        if "description" in changes:
            project.description = data.description
        if "tags" in changes:
            project.tags = normalize_tags(data.tags)
        if "notes" in changes:
            project.notes = data.notes or ""
        if "snippets" in changes:
            self._replace_snippets(project, data.snippets or [])
        if "links" in changes:
            self._replace_links(project, data.links or [])

        project.touch()
        await db.flush()
        logger.info("Project %s updated (%s)", project.id, ", ".join(sorted(changes)) or "no fields")
        return ProjectResponse.model_validate(project)

    def _replace_snippets(self, project: Project, items: List[SnippetInput]) -> None:
        existing = {s.id: s for s in project.snippets}
        replacement = []
        for item in items:
            if not _required(item.title) or not item.code:
                raise ValidationError(message="Title and code are required", field="snippets")
            snippet = existing.pop(item.id, None) if item.id else None
            if snippet is None:
                snippet = Snippet()
            snippet.title = item.title.strip()
            snippet.code = item.code
            snippet.language = item.language or DEFAULT_LANGUAGE
            replacement.append(snippet)
        project.snippets = replacement
        project.snippets.reorder()

    def _replace_links(self, project: Project, items: List[LinkInput]) -> None:
        existing = {link.id: link for link in project.links}
        replacement = []
        for item in items:
            if not _required(item.title) or not _required(item.url):
                raise ValidationError(message="Title and URL are required", field="links")
            link = existing.pop(item.id, None) if item.id else None
            if link is None:
                link = Link()
            link.title = item.title.strip()
            link.url = item.url.strip()
            replacement.append(link)
        project.links = replacement
        project.links.reorder()

    @_wrap_db_errors("delete project")
    async def delete_project(
        self, db: AsyncSession, owner_id: uuid.UUID, project_id: uuid.UUID
    ) -> None:
        """
        Delete a project, removing its stored files from disk first.

        Raises:
            NotFoundError: project missing (including already deleted) or not owned
        """
        project = await load_owned_project(db, owner_id, project_id)
        removed = await file_service.remove_project_files(project)
        await db.delete(project)
        await db.flush()
        logger.info("Project %s deleted (%d stored files removed)", project_id, removed)

    @_wrap_db_errors("fetch project")
    async def get_public_project(
        self, db: AsyncSession, project_id: uuid.UUID
    ) -> PublicProjectResponse:
        """Read-only projection for the share link; no ownership check."""
        project = await db.get(Project, project_id)
        if project is None:
            raise NotFoundError(resource="Project", resource_id=str(project_id))
        return PublicProjectResponse.model_validate(project)

    # ── Snippets ──────────────────────────────────────────────────────────

    @_wrap_db_errors("add snippet")
    async def add_snippet(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        data: SnippetCreate,
    ) -> SnippetResponse:
        if not _required(data.title) or not data.code:
            raise ValidationError(message="Title and code are required")

        project = await load_owned_project(db, owner_id, project_id)
        snippet = Snippet(
            title=data.title.strip(),
            code=data.code,
            language=data.language or DEFAULT_LANGUAGE,
        )
        project.snippets.append(snippet)
        project.touch()
        await db.flush()
        return SnippetResponse.model_validate(snippet)

    @_wrap_db_errors("update snippet")
    async def update_snippet(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        snippet_id: uuid.UUID,
        data: SnippetUpdate,
    ) -> SnippetResponse:
        """Apply the present fields; title and code may not be emptied."""
        project = await load_owned_project(db, owner_id, project_id)
        snippet = project.find_snippet(snippet_id)
        if snippet is None:
            raise NotFoundError(resource="Snippet", resource_id=str(snippet_id))

        changes = data.model_dump(exclude_unset=True)
        if "title" in changes:
            if not _required(data.title):
                raise ValidationError(message="Title and code are required", field="title")
            snippet.title = data.title.strip()
        if "code" in changes:
            if not data.code:
                raise ValidationError(message="Title and code are required", field="code")
            snippet.code = data.code
        if "language" in changes:
            snippet.language = data.language or DEFAULT_LANGUAGE

        project.touch()
        await db.flush()
        return SnippetResponse.model_validate(snippet)

    @_wrap_db_errors("delete snippet")
    async def delete_snippet(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        snippet_id: uuid.UUID,
    ) -> None:
        project = await load_owned_project(db, owner_id, project_id)
        snippet = project.find_snippet(snippet_id)
        if snippet is None:
            raise NotFoundError(resource="Snippet", resource_id=str(snippet_id))
        project.snippets.remove(snippet)
        project.snippets.reorder()
        project.touch()
        await db.flush()

    # ── Links ─────────────────────────────────────────────────────────────

    @_wrap_db_errors("add link")
    async def add_link(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        data: LinkCreate,
    ) -> LinkResponse:
        if not _required(data.title) or not _required(data.url):
            raise ValidationError(message="Title and URL are required")

        project = await load_owned_project(db, owner_id, project_id)
        link = Link(title=data.title.strip(), url=data.url.strip())
        project.links.append(link)
        project.touch()
        await db.flush()
        return LinkResponse.model_validate(link)

    @_wrap_db_errors("update link")
    async def update_link(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        link_id: uuid.UUID,
        data: LinkUpdate,
    ) -> LinkResponse:
        project = await load_owned_project(db, owner_id, project_id)
        link = project.find_link(link_id)
        if link is None:
            raise NotFoundError(resource="Link", resource_id=str(link_id))

        changes = data.model_dump(exclude_unset=True)
        if "title" in changes:
            if not _required(data.title):
                raise ValidationError(message="Title and URL are required", field="title")
            link.title = data.title.strip()
        if "url" in changes:
            if not _required(data.url):
                raise ValidationError(message="Title and URL are required", field="url")
            link.url = data.url.strip()

        project.touch()
        await db.flush()
        return LinkResponse.model_validate(link)

    @_wrap_db_errors("delete link")
    async def delete_link(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        project_id: uuid.UUID,
        link_id: uuid.UUID,
    ) -> None:
        project = await load_owned_project(db, owner_id, project_id)
        link = project.find_link(link_id)
        if link is None:
            raise NotFoundError(resource="Link", resource_id=str(link_id))
        project.links.remove(link)
        project.links.reorder()
        project.touch()
        await db.flush()

    # ── Tags ──────────────────────────────────────────────────────────────

    @_wrap_db_errors("add tag")
    async def add_tag(
        self, db: AsyncSession, owner_id: uuid.UUID, project_id: uuid.UUID, tag: str
    ) -> ProjectResponse:
        """Add a lowercase tag unless the project already has it."""
        project = await load_owned_project(db, owner_id, project_id)
        if project.add_tag(tag):
            project.touch()
            await db.flush()
        return ProjectResponse.model_validate(project)

    @_wrap_db_errors("remove tag")
    async def remove_tag(
        self, db: AsyncSession, owner_id: uuid.UUID, project_id: uuid.UUID, tag: str
    ) -> ProjectResponse:
        project = await load_owned_project(db, owner_id, project_id)
        if project.remove_tag(tag):
            project.touch()
            await db.flush()
        return ProjectResponse.model_validate(project)


# ── Singleton Instance ────────────────────────────────────────────────────
project_service = ProjectService()
