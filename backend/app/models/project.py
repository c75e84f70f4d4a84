"""
DevDoc Backend — Project SQLAlchemy Models
============================================

What:  ORM models for projects and the collections they own.
How:   `projects` rows belong to one user; `snippets`, `links` and
       `project_files` rows belong to one project and have no life of their
       own (delete-orphan cascade, ON DELETE CASCADE in the schema).
Who:   Used by ProjectService, FileService and Alembic.

Table Design:
    - UUID primary keys everywhere; the project id doubles as the share
      handle for the public view
    - tags: JSON array of lowercase strings (duplicates allowed)
    - child collections keep their insertion order in a `position` column
      maintained by SQLAlchemy's ordering_list
    - updated_at / last_accessed are refreshed by the service on every save,
      including saves that only touch a child collection
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, TypeDecorator, Uuid
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


def utcnow() -> datetime:
    """Timezone-aware UTC now; used for every timestamp default."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    DateTime that is always timezone-aware UTC in Python.

    PostgreSQL stores timestamptz; SQLite has no timezone support, so
    values are written as UTC and tagged as UTC again on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class Project(Base):
    """
    Top-level unit of organization owned by exactly one user.

    Lifecycle:
        1. Created by its owner (name required, tags default to [], notes to "")
        2. Field edits and child add/update/remove by the owner only
        3. Deleted by the owner; stored files are removed from disk first
    """

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owning user",
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )
    last_accessed: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )

    # ── Owned collections ─────────────────────────────────────────────────
    # selectin loading: async sessions cannot lazy-load on attribute access
    snippets: Mapped[List["Snippet"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Snippet.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    links: Mapped[List["Link"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Link.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )
    files: Mapped[List["ProjectFile"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectFile.position",
        collection_class=ordering_list("position"),
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_projects_user_updated", "user_id", "updated_at"),
    )

    def touch(self) -> None:
        """Mark the project as modified and accessed now."""
        now = utcnow()
        self.updated_at = now
        self.last_accessed = now

    def add_tag(self, tag: str) -> bool:
        """Append a lowercase tag unless already present. Returns True if added."""
        normalized = tag.strip().lower()
        if not normalized or normalized in self.tags:
            return False
        # Reassign so the JSON column registers the change
        self.tags = [*self.tags, normalized]
        return True

    def remove_tag(self, tag: str) -> bool:
        """Drop every occurrence of a tag. Returns True if anything was removed."""
        normalized = tag.strip().lower()
        remaining = [t for t in self.tags if t != normalized]
        if len(remaining) == len(self.tags):
            return False
        self.tags = remaining
        return True

    def find_snippet(self, snippet_id: uuid.UUID) -> Optional["Snippet"]:
        return next((s for s in self.snippets if s.id == snippet_id), None)

    def find_link(self, link_id: uuid.UUID) -> Optional["Link"]:
        return next((link for link in self.links if link.id == link_id), None)

    def find_file(self, file_id: uuid.UUID) -> Optional["ProjectFile"]:
        return next((f for f in self.files if f.id == file_id), None)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name='{self.name}', user_id={self.user_id})>"


class Snippet(Base):
    """A titled block of code with a language tag."""

    __tablename__ = "snippets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(50), nullable=False, default="javascript")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    project: Mapped[Project] = relationship(back_populates="snippets")


class Link(Base):
    """A titled URL reference."""

    __tablename__ = "links"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    project: Mapped[Project] = relationship(back_populates="links")


class ProjectFile(Base):
    """
    Metadata for one uploaded binary stored under the uploads directory.

    filename is the generated storage name; path is the public URL path
    (/uploads/<filename>) the file can be fetched from.
    """

    __tablename__ = "project_files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(300), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mimetype: Mapped[str] = mapped_column(String(150), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    project: Mapped[Project] = relationship(back_populates="files")
