"""seed kpi catalog

Revision ID: 20261001_0002
Revises: 20261001_0001
Create Date: 2026-10-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261001_0002"
down_revision = "20261001_0001"
branch_labels = None
depends_on = None


kpis_table = sa.table(
    "kpis",
    sa.column("area", sa.String),
    sa.column("code", sa.String),
    sa.column("display_name", sa.String),
    sa.column("is_derived", sa.Boolean),
)

KPI_ROWS = [
    {"area": "Umsatz", "code": "umsatz", "display_name": "Umsatz", "is_derived": False},
    {"area": "Ertrag", "code": "ebit", "display_name": "EBIT", "is_derived": False},
    {"area": "Headcount", "code": "headcount", "display_name": "Headcount", "is_derived": False},
    {
        "area": "Headcount",
        "code": "headcount_umlagerelevant",
        "display_name": "davon Umlagerelevant",
        "is_derived": False,
    },
    {
        "area": "Headcount",
        "code": "headcount_ohne_umlage_de",
        "display_name": "ohne Umlage Deutschland",
        "is_derived": False,
    },
    {
        "area": "Headcount",
        "code": "headcount_ohne_umlage",
        "display_name": "ohne Umlage",
        "is_derived": False,
    },
]


def upgrade() -> None:
    op.bulk_insert(kpis_table, KPI_ROWS)


def downgrade() -> None:
    op.execute(
        kpis_table.delete().where(kpis_table.c.code.in_([row["code"] for row in KPI_ROWS]))
    )
