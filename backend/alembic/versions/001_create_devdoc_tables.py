"""Create users, projects and project collection tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Initial DevDoc schema.
How:   users ─< projects ─< {snippets, links, project_files}; every child row
       is removed with its project (ON DELETE CASCADE), and projects with
       their user. On PostgreSQL a GIN index backs the weighted full-text
       search over name/description/tags/notes.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Must match app.services.search._weighted_vector() for the planner to use it
SEARCH_VECTOR = (
    "setweight(to_tsvector('english', coalesce(name, '')), 'A') || "
    "setweight(to_tsvector('english', coalesce(description, '')), 'B') || "
    "setweight(to_tsvector('english', CAST(tags AS TEXT)), 'C') || "
    "setweight(to_tsvector('english', coalesce(notes, '')), 'D')"
)


def _project_child_columns():
    """Columns shared by every per-project collection table."""
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Lowercased login email"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="bcrypt hash of the password"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            comment="Owning user",
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("last_accessed", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # The dashboard query: WHERE user_id = ? ORDER BY updated_at DESC
    op.create_index("idx_projects_user_updated", "projects", ["user_id", "updated_at"])

    op.create_table(
        "snippets",
        *_project_child_columns(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("language", sa.String(50), nullable=False, server_default=sa.text("'javascript'")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_snippets_project_id", "snippets", ["project_id"])

    op.create_table(
        "links",
        *_project_child_columns(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_links_project_id", "links", ["project_id"])

    op.create_table(
        "project_files",
        *_project_child_columns(),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("path", sa.String(300), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("mimetype", sa.String(150), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("filename"),
    )
    op.create_index("ix_project_files_project_id", "project_files", ["project_id"])

    if op.get_bind().dialect.name == "postgresql":
        op.execute(f"CREATE INDEX idx_projects_search ON projects USING GIN (({SEARCH_VECTOR}))")


def downgrade() -> None:
    """Drop every DevDoc table. WARNING: all data is lost."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS idx_projects_search")
    op.drop_index("ix_project_files_project_id", table_name="project_files")
    op.drop_table("project_files")
    op.drop_index("ix_links_project_id", table_name="links")
    op.drop_table("links")
    op.drop_index("ix_snippets_project_id", table_name="snippets")
    op.drop_table("snippets")
    op.drop_index("idx_projects_user_updated", table_name="projects")
    op.drop_table("projects")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
