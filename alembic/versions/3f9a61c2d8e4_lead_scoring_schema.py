"""Lead scoring schema: companies, developments, leads, scored_leads, api_keys, api_usage_log

Revision ID: 3f9a61c2d8e4
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a61c2d8e4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('companies',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('hubspot_access_token', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table('developments',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('company_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('bedrooms', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_developments_company_id', 'developments', ['company_id'])

    op.create_table('leads',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('company_id', sa.Text(), nullable=True),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('full_name', sa.Text(), nullable=True),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('country', sa.Text(), nullable=True),
        sa.Column('budget_range', sa.Text(), nullable=True),
        sa.Column('budget_min', sa.Integer(), nullable=True),
        sa.Column('budget_max', sa.Integer(), nullable=True),
        sa.Column('preferred_bedrooms', sa.Integer(), nullable=True),
        sa.Column('preferred_location', sa.Text(), nullable=True),
        sa.Column('purchase_purpose', sa.Text(), nullable=True),
        sa.Column('timeline_to_purchase', sa.Text(), nullable=True),
        sa.Column('ready_within_28_days', sa.Boolean(), nullable=True),
        sa.Column('payment_method', sa.Text(), nullable=True),
        sa.Column('mortgage_status', sa.Text(), nullable=True),
        sa.Column('proof_of_funds', sa.Boolean(), nullable=True),
        sa.Column('uk_broker', sa.Text(), nullable=True),
        sa.Column('uk_solicitor', sa.Text(), nullable=True),
        sa.Column('replied', sa.Boolean(), nullable=True),
        sa.Column('last_contact_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('viewing_booked', sa.Boolean(), nullable=True),
        sa.Column('viewing_intent_confirmed', sa.Boolean(), nullable=True),
        sa.Column('agent_transcript', sa.Text(), nullable=True),
        sa.Column('stop_comms', sa.Boolean(), nullable=True),
        sa.Column('source_platform', sa.Text(), nullable=True),
        sa.Column('source_campaign', sa.Text(), nullable=True),
        sa.Column('development_id', sa.Text(), nullable=True),
        sa.Column('development_name', sa.Text(), nullable=True),
        sa.Column('is_test', sa.Boolean(), nullable=True),
        sa.Column('honeypot', sa.Text(), nullable=True),
        sa.Column('extra_data', sa.JSON(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('status_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ai_quality_score', sa.Integer(), nullable=True),
        sa.Column('ai_intent_score', sa.Integer(), nullable=True),
        sa.Column('ai_confidence', sa.Integer(), nullable=True),
        sa.Column('ai_classification', sa.Text(), nullable=True),
        sa.Column('ai_priority', sa.Text(), nullable=True),
        sa.Column('ai_risk_flags', sa.JSON(), nullable=True),
        sa.Column('ai_is_fake', sa.Boolean(), nullable=True),
        sa.Column('ai_fake_flags', sa.JSON(), nullable=True),
        sa.Column('ai_next_action', sa.Text(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_scored_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('quality_score', sa.Integer(), nullable=True),
        sa.Column('intent_score', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_leads_company_created', 'leads', ['company_id', 'created_at'])
    op.create_index('ix_leads_ai_scored_at', 'leads', ['ai_scored_at'])

    op.create_table('scored_leads',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Text(), nullable=False),
        sa.Column('external_id', sa.Text(), nullable=False),
        sa.Column('external_source', sa.Text(), nullable=False),
        sa.Column('request_payload', sa.JSON(), nullable=True),
        sa.Column('quality_score', sa.Integer(), nullable=True),
        sa.Column('intent_score', sa.Integer(), nullable=True),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('classification', sa.Text(), nullable=True),
        sa.Column('priority', sa.Text(), nullable=True),
        sa.Column('is_fake_lead', sa.Boolean(), nullable=True),
        sa.Column('risk_flags', sa.JSON(), nullable=True),
        sa.Column('model_version', sa.Text(), nullable=True),
        sa.Column('scored_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'external_id', 'external_source', name='uq_scored_lead_external'),
    )

    op.create_table('api_keys',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('company_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('key_prefix', sa.Text(), nullable=False),
        sa.Column('key_hash', sa.Text(), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('rate_limit_per_minute', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key_hash'),
    )
    op.create_index('ix_api_keys_company_id', 'api_keys', ['company_id'])

    op.create_table('api_usage_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('api_key_id', sa.Text(), nullable=False),
        sa.Column('endpoint', sa.Text(), nullable=False),
        sa.Column('http_method', sa.Text(), nullable=False),
        sa.Column('status_code', sa.Integer(), nullable=False),
        sa.Column('response_time_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['api_key_id'], ['api_keys.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_api_usage_key_created', 'api_usage_log', ['api_key_id', 'created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_api_usage_key_created', table_name='api_usage_log')
    op.drop_table('api_usage_log')
    op.drop_index('ix_api_keys_company_id', table_name='api_keys')
    op.drop_table('api_keys')
    op.drop_table('scored_leads')
    op.drop_index('ix_leads_ai_scored_at', table_name='leads')
    op.drop_index('ix_leads_company_created', table_name='leads')
    op.drop_table('leads')
    op.drop_index('ix_developments_company_id', table_name='developments')
    op.drop_table('developments')
    op.drop_table('companies')
