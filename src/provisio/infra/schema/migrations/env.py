"""Alembic environment for tenant schemas."""

from provisio.infra.schema.migration_runner import run_tenant_migrations

run_tenant_migrations()
