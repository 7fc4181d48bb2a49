"""create service requests

Revision ID: 202610191030
Revises: 202610191000
Create Date: 2026-10-19 10:30:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "202610191030"
down_revision = "202610191000"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "service_requests",
        sa.Column("id", sa.String(length=50), nullable=False),
        sa.Column("restaurant_id", sa.String(length=50), nullable=False),
        sa.Column("table_id", sa.String(length=50), nullable=False),
        sa.Column("table_code", sa.String(length=50), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ack_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["table_id"], ["tables.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_service_requests_restaurant_status",
        "service_requests",
        ["restaurant_id", "status", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_service_requests_table_type_status",
        "service_requests",
        ["table_id", "type", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_service_requests_table_type_status", table_name="service_requests")
    op.drop_index("ix_service_requests_restaurant_status", table_name="service_requests")
    op.drop_table("service_requests")
