"""initial schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "3f1a9c2e7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _party_columns() -> list[sa.Column]:
    return [
        sa.Column("display_name", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=False),
        sa.Column("phone", sa.Text, nullable=False, server_default=""),
        sa.Column("street1", sa.Text, nullable=False),
        sa.Column("street2", sa.Text, nullable=False, server_default=""),
        sa.Column("city", sa.Text, nullable=False),
        sa.Column("state", sa.Text, nullable=False),
        sa.Column("country", sa.Text, nullable=False),
        sa.Column("zip", sa.Text, nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "sender_profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.String(255), nullable=False, unique=True),
        *_party_columns(),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(26), nullable=False, unique=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        *_party_columns(),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.Column("deleted_at", sa.DateTime, nullable=True),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(26), nullable=False, unique=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("recipient_id", sa.Integer, sa.ForeignKey("clients.id"), nullable=True),
        sa.Column("invoice_number", sa.Text, nullable=False),
        sa.Column("issue_date", sa.Text, nullable=True),
        sa.Column("due_date", sa.Text, nullable=True),
        sa.Column("customer_ref", sa.Text, nullable=False, server_default=""),
        sa.Column("tax", sa.Text, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.Column("deleted_at", sa.DateTime, nullable=True),
    )

    op.create_table(
        "invoice_line_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("invoice_id", sa.Integer, sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("quantity", sa.Text, nullable=False),
        sa.Column("unit_cost", sa.Text, nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_invoice_line_items_name", "invoice_line_items", ["name"])


def downgrade() -> None:
    op.drop_index("ix_invoice_line_items_name", table_name="invoice_line_items")
    op.drop_table("invoice_line_items")
    op.drop_table("invoices")
    op.drop_table("clients")
    op.drop_table("sender_profiles")
