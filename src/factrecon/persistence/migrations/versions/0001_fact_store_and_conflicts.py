"""Create fact store, conflict record and source registry tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates:
- facts, fact_sources, fact_relationships: attributed fact store
- conflict_records: detected conflicts, unique per normalised fact pair
- source_metadata: source registry
"""

from alembic import op

from factrecon.persistence.schema import DROP_STATEMENTS, SCHEMA_STATEMENTS

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all factrecon tables and indexes."""
    for statement in SCHEMA_STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    """Drop all factrecon tables."""
    for statement in DROP_STATEMENTS:
        op.execute(statement)
