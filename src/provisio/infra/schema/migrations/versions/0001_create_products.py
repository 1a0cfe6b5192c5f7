"""Create products table.

Revision ID: 0001_create_products
Revises:
Create Date: 2026-09-28
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from provisio.infra.schema.migration_runner import tenant_schema

revision: str = "0001_create_products"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    schema = tenant_schema()
    op.create_table(
        "products",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        schema=schema,
    )
    op.create_index("ix_products_category", "products", ["category"], schema=schema)
    op.create_index("ix_products_name", "products", ["name"], schema=schema)


def downgrade() -> None:
    schema = tenant_schema()
    op.drop_index("ix_products_name", table_name="products", schema=schema)
    op.drop_index("ix_products_category", table_name="products", schema=schema)
    op.drop_table("products", schema=schema)
