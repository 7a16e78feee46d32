"""Create dispatch tables

Revision ID: 4b1e7c2d9a10
Revises: 
Create Date: 2026-10-19 09:12:44.218503

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4b1e7c2d9a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # Create technicians table
    op.create_table(
        'technicians',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('application_status', sa.String(length=50), server_default='approved', nullable=False),
        sa.Column('is_available', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('max_concurrent_interventions', sa.Integer(), server_default='3', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_technician_dispatchable', 'technicians', ['is_active', 'application_status'])

    # Create interventions table
    op.create_table(
        'interventions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('priority', sa.String(length=20), server_default='normal', nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('status', sa.String(length=50), server_default='new', nullable=False),
        sa.Column('technician_id', sa.UUID(), nullable=True),
        sa.Column('requires_manual_assignment', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('response_time_seconds', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_interventions_category', 'interventions', ['category'])
    op.create_index('ix_interventions_status', 'interventions', ['status'])
    op.create_index('ix_interventions_technician_id', 'interventions', ['technician_id'])
    op.create_index('idx_intervention_technician_status', 'interventions', ['technician_id', 'status'])

    # Create dispatch_attempts table
    op.create_table(
        'dispatch_attempts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('intervention_id', sa.UUID(), nullable=False),
        sa.Column('technician_id', sa.UUID(), nullable=False),
        sa.Column('round_number', sa.Integer(), server_default='1', nullable=False),
        sa.Column('attempt_order', sa.Integer(), nullable=False),
        sa.Column('score', sa.Float(), server_default='0', nullable=False),
        sa.Column('score_breakdown', sa.JSON(), nullable=False),
        sa.Column('distance_km', sa.Float(), nullable=True),
        sa.Column('estimated_travel_minutes', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=50), server_default='pending', nullable=False),
        sa.Column('notified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('timeout_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['intervention_id'], ['interventions.id']),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dispatch_attempts_intervention_id', 'dispatch_attempts', ['intervention_id'])
    op.create_index('ix_dispatch_attempts_technician_id', 'dispatch_attempts', ['technician_id'])
    op.create_index('ix_dispatch_attempts_status', 'dispatch_attempts', ['status'])
    op.create_index('ix_dispatch_attempts_timeout_at', 'dispatch_attempts', ['timeout_at'])
    op.create_index(
        'idx_dispatch_attempt_intervention_round',
        'dispatch_attempts',
        ['intervention_id', 'round_number', 'attempt_order'],
    )
    op.create_index('idx_dispatch_attempt_status_timeout', 'dispatch_attempts', ['status', 'timeout_at'])
    op.create_index(
        'uq_dispatch_attempt_accepted_per_round',
        'dispatch_attempts',
        ['intervention_id', 'round_number'],
        unique=True,
        postgresql_where=sa.text("status = 'accepted'"),
        sqlite_where=sa.text("status = 'accepted'"),
    )

    # Create intervention_exclusions table
    op.create_table(
        'intervention_exclusions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('intervention_id', sa.UUID(), nullable=False),
        sa.Column('technician_id', sa.UUID(), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['intervention_id'], ['interventions.id']),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_intervention_exclusions_intervention_id', 'intervention_exclusions', ['intervention_id'])
    op.create_index('ix_intervention_exclusions_technician_id', 'intervention_exclusions', ['technician_id'])
    op.create_index(
        'idx_intervention_exclusion_lookup',
        'intervention_exclusions',
        ['intervention_id', 'technician_id'],
    )

    # Create intervention_ratings table
    op.create_table(
        'intervention_ratings',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('intervention_id', sa.UUID(), nullable=False),
        sa.Column('technician_id', sa.UUID(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_intervention_rating_range'),
        sa.ForeignKeyConstraint(['intervention_id'], ['interventions.id']),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('intervention_id'),
    )
    op.create_index('ix_intervention_ratings_technician_id', 'intervention_ratings', ['technician_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('intervention_ratings')
    op.drop_table('intervention_exclusions')
    op.drop_table('dispatch_attempts')
    op.drop_table('interventions')
    op.drop_table('technicians')
