"""Create vault identity and disguise ledger tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vaults",
        sa.Column("vault_id", sa.String(100), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("placeholder_info", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "disguises",
        sa.Column("disguise_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("vault_id", sa.String(100), nullable=False),
        sa.Column("disguise_type", sa.String(50), nullable=False),
    )
    op.create_index("idx_disguise_vault_type", "disguises", ["vault_id", "disguise_type"])
    op.create_index("idx_disguise_applied_at", "disguises", ["applied_at"])

    op.create_table(
        "disguise_functions",
        sa.Column("function_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "disguise_id",
            sa.Integer(),
            sa.ForeignKey("disguises.disguise_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("function_type", sa.String(20), nullable=False),
        sa.Column("table_name", sa.String(255), nullable=False),
        sa.Column("predicate", sa.Text(), nullable=False),
        sa.Column("original", sa.Text(), nullable=False),
        sa.Column("updated", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index(
        "idx_function_disguise", "disguise_functions", ["disguise_id", "function_id"]
    )


def downgrade() -> None:
    op.drop_table("disguise_functions")
    op.drop_table("disguises")
    op.drop_table("vaults")
