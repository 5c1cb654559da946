"""Scheduling core tables

Revision ID: 0001_scheduling_core
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_scheduling_core'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('tenants',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('auto_schedule_enabled', sa.Boolean(), nullable=False),
        sa.Column('schedule_day_pair', sa.String(16), nullable=True),
        sa.Column('schedule_time_slot', sa.Integer(), nullable=True),
        sa.Column('schedule_frequency', sa.Integer(), nullable=False),
        sa.Column('last_scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenants_schedule_day_pair', 'tenants', ['schedule_day_pair'])

    op.create_table('locations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.String(64), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('city', sa.String(128), nullable=False),
        sa.Column('state', sa.String(64), nullable=False),
        sa.Column('neighborhood', sa.String(128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_headquarters', sa.Boolean(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_locations_tenant_id', 'locations', ['tenant_id'])
    op.create_index(
        'uq_locations_tenant_headquarters', 'locations', ['tenant_id'], unique=True,
        sqlite_where=sa.text('is_headquarters = 1'),
        postgresql_where=sa.text('is_headquarters'),
    )

    op.create_table('templates',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.String(64), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_templates_tenant_id', 'templates', ['tenant_id'])

    op.create_table('jobs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.String(64), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('template_id', sa.Integer(), sa.ForeignKey('templates.id'), nullable=False),
        sa.Column('location_id', sa.Integer(), sa.ForeignKey('locations.id'), nullable=False),
        sa.Column('rendered_text', sa.Text(), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(), nullable=False),
        sa.Column('scheduled_time', sa.String(5), nullable=True),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('retry_count', sa.Integer(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('primary_text', sa.Text(), nullable=True),
        sa.Column('audio_embedded', sa.Boolean(), nullable=False),
        sa.Column('audio_embedded_at', sa.DateTime(), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_jobs_tenant_id', 'jobs', ['tenant_id'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_updated_at', 'jobs', ['updated_at'])
    # one live job per tenant per local day
    op.create_index(
        'uq_jobs_tenant_day_live', 'jobs', ['tenant_id', 'scheduled_date'], unique=True,
        sqlite_where=sa.text("status != 'FAILED'"),
        postgresql_where=sa.text("status != 'FAILED'"),
    )

    op.create_table('assets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('job_id', sa.Integer(), sa.ForeignKey('jobs.id'), nullable=False),
        sa.Column('kind', sa.String(16), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('public_url', sa.String(1024), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_assets_job_id', 'assets', ['job_id'])
    op.create_index('ix_assets_kind_status', 'assets', ['kind', 'status'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('result', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_status', 'audit_logs', ['status'])
    op.create_index('ix_audit_logs_started_at', 'audit_logs', ['started_at'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('assets')
    op.drop_index('uq_jobs_tenant_day_live', table_name='jobs')
    op.drop_table('jobs')
    op.drop_table('templates')
    op.drop_index('uq_locations_tenant_headquarters', table_name='locations')
    op.drop_table('locations')
    op.drop_table('tenants')
