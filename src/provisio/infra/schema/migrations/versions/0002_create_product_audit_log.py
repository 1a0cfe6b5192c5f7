"""Create product audit log.

One row per product create/update/delete, so product history survives
deletion of the product itself.

Revision ID: 0002_create_product_audit_log
Revises: 0001_create_products
Create Date: 2026-09-28
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from provisio.infra.schema.migration_runner import tenant_schema

revision: str = "0002_create_product_audit_log"
down_revision: str | None = "0001_create_products"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    schema = tenant_schema()
    op.create_table(
        "product_audit_log",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column(
            "product_id",
            sa.BigInteger(),
            sa.ForeignKey(f"{schema}.products.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("changed_by", sa.String(255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column(
            "changed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "action IN ('CREATED', 'UPDATED', 'DELETED')",
            name="ck_product_audit_log_action",
        ),
        schema=schema,
    )
    op.create_index(
        "ix_product_audit_log_product_id",
        "product_audit_log",
        ["product_id"],
        schema=schema,
    )


def downgrade() -> None:
    schema = tenant_schema()
    op.drop_index(
        "ix_product_audit_log_product_id",
        table_name="product_audit_log",
        schema=schema,
    )
    op.drop_table("product_audit_log", schema=schema)
