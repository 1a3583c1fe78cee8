"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('team', sa.String(length=255), nullable=True),
        sa.Column('git_provider', sa.String(length=50), nullable=True),
        sa.Column('git_owner', sa.String(length=255), nullable=True),
        sa.Column('git_repository', sa.String(length=255), nullable=True),
        sa.Column('git_branch', sa.String(length=255), nullable=True),
        sa.Column('openclient_enabled', sa.Boolean(), nullable=False),
        sa.Column('openclient_path', sa.String(length=500), nullable=True),
        sa.Column('openapi_enabled', sa.Boolean(), nullable=False),
        sa.Column('openapi_path', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_applications_name', 'applications', ['name'], unique=True)
    op.create_index('ix_applications_team', 'applications', ['team'])

    op.create_table(
        'application_dependencies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('consumer_id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=False),
        sa.Column('reasons', sa.JSON(), nullable=False),
        sa.Column('endpoints', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['consumer_id'], ['applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['provider_id'], ['applications.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('consumer_id', 'provider_id', name='uq_dependency_consumer_provider'),
    )
    op.create_index('idx_dependencies_provider', 'application_dependencies', ['provider_id'])

    op.create_table(
        'application_openapi_specs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('content_hash', sa.String(length=255), nullable=False),
        sa.Column('document', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('application_id'),
    )


def downgrade() -> None:
    op.drop_table('application_openapi_specs')

    op.drop_index('idx_dependencies_provider', table_name='application_dependencies')
    op.drop_table('application_dependencies')

    op.drop_index('ix_applications_team', table_name='applications')
    op.drop_index('ix_applications_name', table_name='applications')
    op.drop_table('applications')
