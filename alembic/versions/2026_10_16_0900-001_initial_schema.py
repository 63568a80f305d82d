"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-16 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Venues mirror the static registry
    op.create_table(
        'venues',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('short_name', sa.String(length=50), nullable=False),
        sa.Column('chain', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('area', sa.String(length=100), nullable=True),
        sa.Column('postcode', sa.String(length=20), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('features', JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('last_scraped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_venues_chain'), 'venues', ['chain'], unique=False)

    # Film ids are "<normalised-title>[-<year>]"
    op.create_table(
        'films',
        sa.Column('id', sa.String(length=200), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('directors', JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('poster_url', sa.String(length=1000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_films_title'), 'films', ['title'], unique=False)

    op.create_table(
        'screenings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('venue_id', sa.String(length=100), nullable=False),
        sa.Column('film_id', sa.String(length=200), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('screen', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('booking_url', sa.String(length=1000), nullable=True),
        sa.Column('format_tags', JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('raw_title', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['venue_id'], ['venues.id']),
        sa.ForeignKeyConstraint(['film_id'], ['films.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('venue_id', 'film_id', 'start_time', 'screen', name='uq_venue_film_time_screen')
    )
    op.create_index(op.f('ix_screenings_venue_id'), 'screenings', ['venue_id'], unique=False)
    op.create_index(op.f('ix_screenings_film_id'), 'screenings', ['film_id'], unique=False)
    op.create_index(op.f('ix_screenings_start_time'), 'screenings', ['start_time'], unique=False)

    op.create_table(
        'scrape_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('venue_id', sa.String(length=100), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('error_type', sa.String(length=20), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('screening_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('added', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration_ms', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['venue_id'], ['venues.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_scrape_runs_venue_id'), 'scrape_runs', ['venue_id'], unique=False)
    op.create_index(op.f('ix_scrape_runs_started_at'), 'scrape_runs', ['started_at'], unique=False)

    # Append-only: rows are never updated. Keyed by registry id, so a venue
    # is checked before its first run has created the venues row
    op.create_table(
        'health_snapshots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('venue_id', sa.String(length=100), nullable=False),
        sa.Column('snapshot_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('screening_count', sa.Integer(), nullable=False),
        sa.Column('baseline_count', sa.Float(), nullable=True),
        sa.Column('ratio', sa.Float(), nullable=True),
        sa.Column('future_screenings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('zero_results', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('last_run_failed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('hours_since_last_run', sa.Float(), nullable=True),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('warnings', JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('anomaly_detected', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('consecutive_anomalies', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('should_block_next_run', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('triggered_alert', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_health_snapshots_venue_time', 'health_snapshots', ['venue_id', 'snapshot_at'], unique=False)


def downgrade() -> None:
    op.drop_table('health_snapshots')
    op.drop_table('scrape_runs')
    op.drop_table('screenings')
    op.drop_table('films')
    op.drop_table('venues')
