"""initial schema

Revision ID: 20261001_0001
Revises:
Create Date: 2026-10-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None


kpi_area = sa.Enum("Umsatz", "Ertrag", "Headcount", name="kpi_area")
value_scenario = sa.Enum("plan", "ist", "fc", "prior_year", "prior_year_kum", name="value_scenario")
user_role = sa.Enum("admin", "user", name="user_role")


def upgrade() -> None:
    op.create_table(
        "entities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_aggregate", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "kpis",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("area", kpi_area, nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("is_derived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("area", "code", name="uq_kpis_area_code"),
    )

    op.create_table(
        "values_monthly",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("entity_id", sa.Integer(), sa.ForeignKey("entities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kpi_id", sa.Integer(), sa.ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scenario", value_scenario, nullable=False),
        sa.Column("value", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("month >= 1 AND month <= 12", name="ck_values_monthly_month_range"),
        sa.UniqueConstraint("year", "month", "entity_id", "kpi_id", "scenario", name="uq_values_monthly_cell"),
    )
    op.create_index(
        "ix_values_monthly_year_kpi_scenario",
        "values_monthly",
        ["year", "kpi_id", "scenario"],
        unique=False,
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=128), primary_key=True),
        sa.Column("value", sa.String(length=1024), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=128), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "user_entity_permissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("entity_id", sa.Integer(), sa.ForeignKey("entities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("can_view", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_edit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("user_id", "entity_id", name="uq_user_entity_permissions"),
    )
    op.create_index(
        "ix_user_entity_permissions_user_id",
        "user_entity_permissions",
        ["user_id"],
        unique=False,
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("entity_id", sa.Integer(), sa.ForeignKey("entities.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kpi_id", sa.Integer(), sa.ForeignKey("kpis.id", ondelete="SET NULL"), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_comments_entity_year", "comments", ["entity_id", "year"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("entity_name", sa.String(length=255), nullable=True),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"], unique=False)
    op.create_index("ix_audit_log_action_entity_type", "audit_log", ["action", "entity_type"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_log_action_entity_type", table_name="audit_log")
    op.drop_index("ix_audit_log_created_at", table_name="audit_log")
    op.drop_table("audit_log")

    op.drop_index("ix_comments_entity_year", table_name="comments")
    op.drop_table("comments")

    op.drop_index("ix_user_entity_permissions_user_id", table_name="user_entity_permissions")
    op.drop_table("user_entity_permissions")
    op.drop_table("users")
    op.drop_table("settings")

    op.drop_index("ix_values_monthly_year_kpi_scenario", table_name="values_monthly")
    op.drop_table("values_monthly")
    op.drop_table("kpis")
    op.drop_table("entities")

    bind = op.get_bind()
    user_role.drop(bind, checkfirst=True)
    value_scenario.drop(bind, checkfirst=True)
    kpi_area.drop(bind, checkfirst=True)
