"""create projects table

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("framework", sa.String(length=20), nullable=True),
        sa.Column("database", sa.String(length=20), nullable=True),
        sa.Column("specification", sa.Text(), nullable=False),
        sa.Column("version_ledger", sa.Text(), nullable=False),
        sa.Column("current_output", sa.Text(), nullable=True),
        sa.Column("deployment_history", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_projects_name", "projects", ["name"])
    op.create_index("ix_projects_framework", "projects", ["framework"])
    op.create_index("ix_projects_database", "projects", ["database"])
    op.create_index("ix_projects_updated_at", "projects", ["updated_at"])

def downgrade():
    op.drop_index("ix_projects_updated_at", table_name="projects")
    op.drop_index("ix_projects_database", table_name="projects")
    op.drop_index("ix_projects_framework", table_name="projects")
    op.drop_index("ix_projects_name", table_name="projects")
    op.drop_table("projects")
