"""scraper_core

Revision ID: c41a7e2d9b10
Revises:
Create Date: 2026-10-19 09:12:44.318204

Create the tables for the scraping pipeline:
- discovered_companies: company catalog (unique normalized name)
- scrape_runs: one row per orchestrated run (cooldown anchor, summary snapshot)
- work_units: durable priority queue
- job_postings: ingested jobs (unique external_id + source)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = 'c41a7e2d9b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# JSONB on PostgreSQL, plain JSON elsewhere
JSON_TYPE = sa.JSON().with_variant(JSONB(), 'postgresql')


def upgrade() -> None:
    """Create catalog, run, queue and job posting tables."""

    # Company catalog
    op.create_table(
        'discovered_companies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name_key', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('career_url', sa.Text(), nullable=False),
        sa.Column('listing_system', sa.String(length=20), server_default='unknown', nullable=False),
        # listing_system: greenhouse, lever, ashby, smartrecruiters, workday, bamboohr, custom, unknown
        sa.Column('listing_system_id', sa.String(length=255), nullable=True),
        sa.Column('provenance', sa.String(length=20), server_default='manual', nullable=False),
        # provenance: manual, pattern, wikipedia, discovered
        sa.Column('confidence', sa.Float(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name_key'),
    )

    # Scrape runs
    op.create_table(
        'scrape_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('trigger', sa.String(length=20), server_default='scheduled', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
        # status: pending, running, finished, error
        sa.Column('queued', sa.Integer(), server_default='0', nullable=False),
        sa.Column('completed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('failed', sa.Integer(), server_default='0', nullable=False),
        sa.Column('jobs_found', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('finished_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('company_errors', JSON_TYPE, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    # Cooldown lookup (latest started run)
    op.create_index('idx_scrape_runs_started_at', 'scrape_runs', ['started_at'])

    # Work queue
    op.create_table(
        'work_units',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('run_id', sa.Integer(), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('career_url', sa.Text(), nullable=False),
        sa.Column('listing_system', sa.String(length=20), server_default='unknown', nullable=False),
        sa.Column('listing_system_id', sa.String(length=255), nullable=True),
        sa.Column('priority', sa.Integer(), server_default='5', nullable=False),
        sa.Column('priority_class', sa.String(length=10), server_default='normal', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='waiting', nullable=False),
        # status: waiting, active, completed, failed
        sa.Column('retry_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('max_attempts', sa.Integer(), server_default='3', nullable=False),
        sa.Column('available_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('claimed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('finished_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('result', JSON_TYPE, nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['scrape_runs.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    # Claim query: WHERE status = 'waiting' ORDER BY priority, id
    op.create_index('idx_work_units_dispatch', 'work_units', ['status', 'priority', 'id'])
    # Run progress: WHERE run_id = ? AND status IN (...)
    op.create_index('idx_work_units_run_status', 'work_units', ['run_id', 'status'])

    # Ingested jobs
    op.create_table(
        'job_postings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('external_id', sa.String(length=512), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('company', sa.String(length=255), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('remote_type', sa.String(length=20), server_default='unknown', nullable=False),
        sa.Column('salary_min', sa.Integer(), nullable=True),
        sa.Column('salary_max', sa.Integer(), nullable=True),
        sa.Column('salary_currency', sa.String(length=10), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('requirements', JSON_TYPE, nullable=False),
        sa.Column('skills', JSON_TYPE, nullable=False),
        sa.Column('benefits', JSON_TYPE, nullable=False),
        sa.Column('application_url', sa.Text(), nullable=True),
        sa.Column('confidence', sa.Float(), server_default='0.8', nullable=False),
        sa.Column('trust_score', sa.Integer(), server_default='50', nullable=False),
        sa.Column('liveness_status', sa.String(length=20), server_default='unknown', nullable=False),
        # liveness_status: unknown, active, stale
        sa.Column('last_liveness_check', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
        # status: active, closed
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id', 'source', name='uq_job_postings_external_source'),
    )
    # Expiry sweep: WHERE status = 'active' AND expires_at < now
    op.create_index('idx_job_postings_expiry', 'job_postings', ['status', 'expires_at'])


def downgrade() -> None:
    """Drop scraper tables."""
    op.drop_index('idx_job_postings_expiry', table_name='job_postings')
    op.drop_table('job_postings')
    op.drop_index('idx_work_units_run_status', table_name='work_units')
    op.drop_index('idx_work_units_dispatch', table_name='work_units')
    op.drop_table('work_units')
    op.drop_index('idx_scrape_runs_started_at', table_name='scrape_runs')
    op.drop_table('scrape_runs')
    op.drop_table('discovered_companies')
