"""Initial authz-core schema: users, groups, memberships, projects and grants."""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from alembic import op

# Revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None


def _timestamps() -> tuple[sa.Column, sa.Column]:
    """Common created_at / updated_at pair."""
    return (
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def _int_pk() -> sa.Column:
    return sa.Column("id", sa.Integer(), autoincrement=True, nullable=False)


def upgrade() -> None:
    _create_users()
    _create_groups()
    _create_group_memberships()
    _create_projects()
    _create_project_group_grants()
    _create_project_keys()
    _create_project_variables()


def downgrade() -> None:
    for table in (
        "project_variables",
        "project_keys",
        "project_group_grants",
        "projects",
        "group_memberships",
        "groups",
        "users",
    ):
        op.drop_table(table)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def _create_users() -> None:
    op.create_table(
        "users",
        _int_pk(),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("fullname", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="users_pkey"),
        sa.UniqueConstraint("username", name="users_username_key"),
    )


def _create_groups() -> None:
    op.create_table(
        "groups",
        _int_pk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="groups_pkey"),
        sa.UniqueConstraint("name", name="groups_name_key"),
    )
    op.create_index(
        "groups_is_default_uidx",
        "groups",
        ["is_default"],
        unique=True,
        sqlite_where=sa.text("is_default"),
        postgresql_where=sa.text("is_default"),
    )


def _create_group_memberships() -> None:
    op.create_table(
        "group_memberships",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("group_id", "user_id", name="group_memberships_pkey"),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name="group_memberships_group_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="group_memberships_user_id_fkey",
            ondelete="CASCADE",
        ),
    )
    op.create_index("group_memberships_user_id_idx", "group_memberships", ["user_id"])


def _create_projects() -> None:
    op.create_table(
        "projects",
        _int_pk(),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="projects_pkey"),
        sa.UniqueConstraint("key", name="projects_key_key"),
    )


def _create_project_group_grants() -> None:
    op.create_table(
        "project_group_grants",
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("project_id", "group_id", name="project_group_grants_pkey"),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="project_group_grants_project_id_fkey",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name="project_group_grants_group_id_fkey",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("level IN (4, 6, 7)", name="project_group_grants_level_check"),
    )
    op.create_index("project_group_grants_group_id_idx", "project_group_grants", ["group_id"])


def _create_project_keys() -> None:
    op.create_table(
        "project_keys",
        _int_pk(),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("public", sa.Text(), nullable=False, server_default=""),
        sa.Column("private", sa.Text(), nullable=False, server_default=""),
        sa.Column("key_id", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="project_keys_pkey"),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="project_keys_project_id_fkey",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("project_id", "name", name="project_keys_project_id_key"),
    )


def _create_project_variables() -> None:
    op.create_table(
        "project_variables",
        _int_pk(),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("value", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="project_variables_pkey"),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="project_variables_project_id_fkey",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("project_id", "name", name="project_variables_project_id_key"),
    )
