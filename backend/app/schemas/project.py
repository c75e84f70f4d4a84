"""
DevDoc Backend — Project Request/Response Schemas
===================================================

What:  Pydantic models defining the project API contract.
How:   Request models are deliberately permissive about required fields
       (name, title, code, url) so the service can report a single
       human-readable ValidationError; length limits are enforced here.
Who:   Used by route handlers and by app.client when decoding responses.

Response shapes:
    ProjectResponse        owner view (GET/POST/PUT /api/projects...)
    PublicProjectResponse  share view, never carries the owner id
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetResponse(BaseModel):
    id: uuid.UUID
    title: str
    code: str
    language: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LinkResponse(BaseModel):
    id: uuid.UUID
    title: str
    url: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FileRecord(BaseModel):
    """
    Metadata for one uploaded file.

    filename:      generated storage name (file-<ms>-<random><ext>)
    original_name: name the client uploaded
    path:          public URL path, /uploads/<filename>
    """
    id: uuid.UUID
    filename: str
    original_name: str
    path: str
    size: int = Field(description="Size in bytes")
    mimetype: str
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class PublicProjectResponse(BaseModel):
    """Read-only projection served without authentication."""

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    links: List[LinkResponse] = Field(default_factory=list)
    snippets: List[SnippetResponse] = Field(default_factory=list)
    files: List[FileRecord] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectResponse(PublicProjectResponse):
    """Full project as seen by its owner."""

    user_id: uuid.UUID
    last_accessed: datetime


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SnippetInput(BaseModel):
    """One entry of a whole-collection snippet replacement (PUT /projects/{id})."""

    id: Optional[uuid.UUID] = Field(default=None, description="Existing snippet to keep; omit for new")
    title: Optional[str] = Field(default=None, max_length=200)
    code: Optional[str] = None
    language: Optional[str] = Field(default=None, max_length=50)


class LinkInput(BaseModel):
    """One entry of a whole-collection link replacement (PUT /projects/{id})."""

    id: Optional[uuid.UUID] = None
    title: Optional[str] = Field(default=None, max_length=200)
    url: Optional[str] = Field(default=None, max_length=2048)


class ProjectCreate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class ProjectUpdate(BaseModel):
    """
    Partial update: only the keys present in the request body are applied.

    links/snippets replace the whole collection.
    """

    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    links: Optional[List[LinkInput]] = None
    snippets: Optional[List[SnippetInput]] = None


class SnippetCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    code: Optional[str] = None
    language: Optional[str] = Field(default=None, max_length=50)


class SnippetUpdate(SnippetCreate):
    pass


class LinkCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    url: Optional[str] = Field(default=None, max_length=2048)


class LinkUpdate(LinkCreate):
    pass


class TagRequest(BaseModel):
    tag: str = Field(min_length=1, max_length=50)


class MessageResponse(BaseModel):
    message: str
