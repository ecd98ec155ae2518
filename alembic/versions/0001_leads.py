"""leads table

Revision ID: 0001_leads
Revises: 
Create Date: 2026-10-18

"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_leads"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("business_name", sa.String(length=255), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("call_sid", sa.String(length=64), nullable=True),
        sa.Column("stream_sid", sa.String(length=64), nullable=True),
        sa.Column("called_number", sa.String(length=32), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("postcode", sa.String(length=16), nullable=False),
        sa.Column("job_type", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("urgency", sa.String(length=8), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("how_found", sa.String(length=255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("captured_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_leads_business_name", "leads", ["business_name"])
    op.create_index("ix_leads_call_sid", "leads", ["call_sid"])
    op.create_index("ix_leads_captured_at", "leads", ["captured_at"])


def downgrade() -> None:
    op.drop_index("ix_leads_captured_at", table_name="leads")
    op.drop_index("ix_leads_call_sid", table_name="leads")
    op.drop_index("ix_leads_business_name", table_name="leads")
    op.drop_table("leads")
