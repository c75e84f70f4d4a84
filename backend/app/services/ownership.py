"""
DevDoc Backend — Ownership Check
==================================

What:  Loads a project on behalf of a caller.
How:   A missing project and a project owned by someone else raise the same
       NotFoundError, so responses never reveal whether an id exists.
Who:   Every owner-scoped operation in ProjectService and FileService.
"""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.models.project import Project


async def load_owned_project(
    db: AsyncSession,
    owner_id: uuid.UUID,
    project_id: uuid.UUID,
) -> Project:
    project = await db.get(Project, project_id)
    if project is None or project.user_id != owner_id:
        raise NotFoundError(resource="Project", resource_id=str(project_id))
    return project
