"""Initial schema - tenants, voters, lists, assignments, interactions, jobs, audit

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Interaction idempotency relies on uq_interactions_org_client_uuid;
voter import upserts rely on uq_voters_org_external_id;
one assignment per list relies on uq_assignments_org_list.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    # ==========================================================================
    # Tenants & users
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('plan_id', sa.String(50), nullable=False, server_default='free'),
        sa.Column('limits', JSON, nullable=False),
        sa.Column('last_activity_at', TS, nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='canvasser'),
        sa.Column('location_lat', sa.Float(), nullable=True),
        sa.Column('location_lng', sa.Float(), nullable=True),
        sa.Column('location_updated_at', TS, nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
    )
    op.create_index('idx_users_org_role', 'users', ['organization_id', 'role'])

    # ==========================================================================
    # Voter registry
    # ==========================================================================
    op.create_table(
        'voters',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('external_id', sa.String(100), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('middle_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('suffix', sa.String(20), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(20), nullable=True),
        sa.Column('race', sa.String(50), nullable=True),
        sa.Column('party', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(50), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
        sa.UniqueConstraint('organization_id', 'external_id', name='uq_voters_org_external_id'),
    )
    op.create_index('idx_voters_org_name', 'voters', ['organization_id', 'last_name', 'first_name'])
    op.create_index('idx_voters_org_geo', 'voters', ['organization_id', 'latitude', 'longitude'])

    # ==========================================================================
    # Walk lists & assignments
    # ==========================================================================
    op.create_table(
        'walk_lists',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', TS, nullable=False),
    )
    op.create_index('idx_walk_lists_org', 'walk_lists', ['organization_id', 'created_at'])

    op.create_table(
        'walk_list_voters',
        sa.Column('walk_list_id', sa.Uuid(), sa.ForeignKey('walk_lists.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('voter_id', sa.Uuid(), sa.ForeignKey('voters.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index('idx_walk_list_voters_voter', 'walk_list_voters', ['voter_id'])

    op.create_table(
        'assignments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('walk_list_id', sa.Uuid(), sa.ForeignKey('walk_lists.id', ondelete='CASCADE'), nullable=False),
        sa.Column('canvasser_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='assigned'),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
        sa.UniqueConstraint('organization_id', 'walk_list_id', name='uq_assignments_org_list'),
    )
    op.create_index('idx_assignments_org_canvasser', 'assignments', ['organization_id', 'canvasser_id'])

    # ==========================================================================
    # Interaction ledger
    # ==========================================================================
    op.create_table(
        'interactions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('client_interaction_uuid', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('voter_id', sa.Uuid(), sa.ForeignKey('voters.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assignment_id', sa.Uuid(), sa.ForeignKey('assignments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('occurred_at', TS, nullable=False),
        sa.Column('channel', sa.String(20), nullable=False, server_default='canvass'),
        sa.Column('result_code', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.UniqueConstraint('organization_id', 'client_interaction_uuid', name='uq_interactions_org_client_uuid'),
    )
    op.create_index('idx_interactions_org_voter_time', 'interactions', ['organization_id', 'voter_id', 'occurred_at'])
    op.create_index('idx_interactions_org_time', 'interactions', ['organization_id', 'occurred_at'])

    op.create_table(
        'interaction_survey_responses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('interaction_id', sa.Uuid(), sa.ForeignKey('interactions.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('responses', JSON, nullable=False),
        sa.Column('created_at', TS, nullable=False),
    )

    # ==========================================================================
    # Jobs, audit, events
    # ==========================================================================
    op.create_table(
        'jobs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('job_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('payload', JSON, nullable=False),
        sa.Column('result', JSON, nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('metadata', JSON, nullable=False),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
        sa.Column('started_at', TS, nullable=True),
        sa.Column('completed_at', TS, nullable=True),
    )
    op.create_index('idx_jobs_status_created', 'jobs', ['status', 'created_at'])
    op.create_index('idx_jobs_org', 'jobs', ['organization_id', 'created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('details', JSON, nullable=False),
        sa.Column('request_id', sa.String(64), nullable=True),
        sa.Column('created_at', TS, nullable=False),
    )
    op.create_index('idx_audit_org_created', 'audit_logs', ['organization_id', 'created_at'])

    op.create_table(
        'platform_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('metadata', JSON, nullable=False),
        sa.Column('occurred_at', TS, nullable=False),
    )
    op.create_index('idx_events_org_occurred', 'platform_events', ['organization_id', 'occurred_at'])
    op.create_index('idx_events_type', 'platform_events', ['event_type'])


def downgrade() -> None:
    for table in (
        'platform_events',
        'audit_logs',
        'jobs',
        'interaction_survey_responses',
        'interactions',
        'assignments',
        'walk_list_voters',
        'walk_lists',
        'voters',
        'users',
        'organizations',
    ):
        op.drop_table(table)
