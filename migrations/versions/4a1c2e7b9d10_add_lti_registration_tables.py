"""add_lti_registration_tables

Accounts, courses, memberships, developer keys, bindings, LTI tool
configurations, external tools, tool proxies and content restrictions.
Uses inspector pattern so re-running against a partially migrated
database is safe.

Revision ID: 4a1c2e7b9d10
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "4a1c2e7b9d10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)
    existing_tables = inspector.get_table_names()

    # ── hierarchy ─────────────────────────────────────────────────────
    if "accounts" not in existing_tables:
        op.create_table(
            "accounts",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("parent_account_id", sa.String(36), sa.ForeignKey("accounts.id"), nullable=True),
            sa.Column("workflow_state", sa.String(20), nullable=False, server_default="active"),
            *_timestamps(),
        )
        op.create_index("ix_accounts_parent_account_id", "accounts", ["parent_account_id"])

    if "courses" not in existing_tables:
        op.create_table(
            "courses",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("account_id", sa.String(36), sa.ForeignKey("accounts.id"), nullable=False),
            sa.Column("workflow_state", sa.String(20), nullable=False, server_default="available"),
            *_timestamps(),
        )
        op.create_index("ix_courses_account_id", "courses", ["account_id"])

    if "scope_memberships" not in existing_tables:
        op.create_table(
            "scope_memberships",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.String(36), nullable=False),
            sa.Column("context_type", sa.String(20), nullable=False),
            sa.Column("context_id", sa.String(36), nullable=False),
            sa.Column("role", sa.String(30), nullable=False),
            *_timestamps(),
        )
        op.create_index(
            "ix_scope_memberships_user_context", "scope_memberships",
            ["user_id", "context_type", "context_id"],
        )

    if "user_account_associations" not in existing_tables:
        op.create_table(
            "user_account_associations",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.String(36), nullable=False),
            sa.Column("account_id", sa.String(36), sa.ForeignKey("accounts.id"), nullable=False),
        )
        op.create_index(
            "ix_user_account_associations_user_account", "user_account_associations",
            ["user_id", "account_id"], unique=True,
        )

    # ── credentials ───────────────────────────────────────────────────
    if "developer_keys" not in existing_tables:
        op.create_table(
            "developer_keys",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("workflow_state", sa.String(20), nullable=False, server_default="active"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )

    if "developer_key_account_bindings" not in existing_tables:
        op.create_table(
            "developer_key_account_bindings",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("developer_key_id", sa.String(), sa.ForeignKey("developer_keys.id"), nullable=False),
            sa.Column("account_id", sa.String(36), nullable=False),
            sa.Column("workflow_state", sa.String(20), nullable=False, server_default="off"),
            sa.Column("registration_format", sa.String(20), nullable=False, server_default="structured"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )
        op.create_index(
            "ix_dev_key_bindings_account", "developer_key_account_bindings",
            ["account_id", "registration_format"],
        )
        op.create_index("ix_dev_key_bindings_key", "developer_key_account_bindings", ["developer_key_id"])

    if "lti_tool_configurations" not in existing_tables:
        op.create_table(
            "lti_tool_configurations",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column(
                "developer_key_id", sa.String(), sa.ForeignKey("developer_keys.id"),
                nullable=False, unique=True,
            ),
            sa.Column("settings", sa.JSON(), default={}),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )

    # ── registrations ─────────────────────────────────────────────────
    if "context_external_tools" not in existing_tables:
        op.create_table(
            "context_external_tools",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("context_type", sa.String(20), nullable=False),
            sa.Column("context_id", sa.String(36), nullable=False),
            sa.Column("developer_key_id", sa.String(), nullable=True),
            sa.Column("workflow_state", sa.String(20), nullable=False, server_default="public"),
            sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("url", sa.String(2048), nullable=True),
            sa.Column("settings", sa.JSON(), default={}),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )
        op.create_index(
            "ix_context_external_tools_context", "context_external_tools",
            ["context_type", "context_id"],
        )
        op.create_index("ix_context_external_tools_name_id", "context_external_tools", ["name", "id"])
        op.create_index("ix_context_external_tools_dev_key", "context_external_tools", ["developer_key_id"])

    if "lti_tool_proxies" not in existing_tables:
        op.create_table(
            "lti_tool_proxies",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("context_type", sa.String(20), nullable=False),
            sa.Column("context_id", sa.String(36), nullable=False),
            sa.Column("workflow_state", sa.String(20), nullable=False, server_default="active"),
            sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("base_url", sa.String(2048), nullable=True),
            sa.Column("resource_placements", sa.JSON(), default=[]),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )
        op.create_index("ix_lti_tool_proxies_context", "lti_tool_proxies", ["context_type", "context_id"])
        op.create_index("ix_lti_tool_proxies_name_id", "lti_tool_proxies", ["name", "id"])

    if "content_restrictions" not in existing_tables:
        op.create_table(
            "content_restrictions",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("context_type", sa.String(20), nullable=False),
            sa.Column("context_id", sa.String(36), nullable=False),
            sa.Column("content_type", sa.String(50), nullable=False),
            sa.Column("content_id", sa.String(), nullable=False),
            sa.Column("role", sa.String(20), nullable=False),
            sa.Column("restrictions", sa.JSON(), default={}),
        )
        op.create_index(
            "ix_content_restrictions_context", "content_restrictions",
            ["context_type", "context_id", "content_type"],
        )


def downgrade() -> None:
    for table in (
        "content_restrictions",
        "lti_tool_proxies",
        "context_external_tools",
        "lti_tool_configurations",
        "developer_key_account_bindings",
        "developer_keys",
        "user_account_associations",
        "scope_memberships",
        "courses",
        "accounts",
    ):
        op.drop_table(table)
