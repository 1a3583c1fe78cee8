"""add manifest hash

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Hash of the openclient manifest the application's edges were built from
    op.add_column(
        'applications',
        sa.Column('manifest_hash', sa.String(255), nullable=True),
    )


def downgrade() -> None:
    op.drop_column('applications', 'manifest_hash')
