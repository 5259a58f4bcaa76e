"""Initial schema: tenants, integrations, records, links, mappings, columns.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17

Creates:
- organizations
- integration_credentials, integrations, sync_logs
- records, record_links
- field_mappings, custom_columns
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]
    if with_updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)
        )
    return columns


def upgrade() -> None:
    # ==========================================================================
    # organizations
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )

    # ==========================================================================
    # integration_credentials
    # ==========================================================================
    op.create_table(
        'integration_credentials',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('system_type', sa.String(50), nullable=False),
        sa.Column('subdomain', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('api_token', sa.Text(), nullable=True),
        sa.Column('custom_config', JSON_DOCUMENT, nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'system_type', name='uq_integration_cred_org_system'),
    )
    op.create_index(
        'idx_integration_cred_system_active', 'integration_credentials', ['system_type', 'is_active']
    )

    # ==========================================================================
    # integrations
    # ==========================================================================
    op.create_table(
        'integrations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('system_type', sa.String(50), nullable=False),
        sa.Column('system_name', sa.String(100), nullable=False),
        sa.Column('config', JSON_DOCUMENT, nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('last_error_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'system_type', name='uq_integrations_org_system'),
    )

    # ==========================================================================
    # sync_logs
    # ==========================================================================
    op.create_table(
        'sync_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('integration_id', sa.Uuid(), nullable=False),
        sa.Column('sync_type', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('records_processed', sa.Integer(), nullable=False),
        sa.Column('records_created', sa.Integer(), nullable=False),
        sa.Column('records_updated', sa.Integer(), nullable=False),
        sa.Column('records_auto_solved', sa.Integer(), nullable=False),
        sa.Column('records_failed', sa.Integer(), nullable=False),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_sync_logs_integration_started', 'sync_logs', ['integration_id', 'started_at'])

    # ==========================================================================
    # records
    # ==========================================================================
    op.create_table(
        'records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('source_integration_id', sa.Uuid(), nullable=False),
        sa.Column('source_system', sa.String(50), nullable=False),
        sa.Column('source_id', sa.String(255), nullable=False),
        sa.Column('record_type', sa.String(50), nullable=True),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(100), nullable=True),
        sa.Column('priority', sa.String(100), nullable=True),
        sa.Column('assignee_name', sa.String(255), nullable=True),
        sa.Column('assignee_email', sa.String(255), nullable=True),
        sa.Column('reporter_name', sa.String(255), nullable=True),
        sa.Column('reporter_email', sa.String(255), nullable=True),
        sa.Column('labels', sa.Text(), nullable=True),
        sa.Column('custom_fields', sa.Text(), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=True),
        sa.Column('source_created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('source_updated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_integration_id'], ['integrations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'organization_id', 'source_integration_id', 'source_id', name='uq_records_org_integration_source'
        ),
    )
    op.create_index('idx_records_org_system', 'records', ['organization_id', 'source_system'])
    op.create_index('idx_records_integration_status', 'records', ['source_integration_id', 'status'])

    # ==========================================================================
    # record_links
    # ==========================================================================
    op.create_table(
        'record_links',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('source_record_id', sa.Uuid(), nullable=False),
        sa.Column('target_record_id', sa.Uuid(), nullable=False),
        sa.Column('link_type', sa.String(50), nullable=False),
        sa.Column('link_name', sa.String(255), nullable=True),
        sa.Column('metadata', JSON_DOCUMENT, nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_record_id'], ['records.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['target_record_id'], ['records.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'organization_id', 'source_record_id', 'target_record_id', name='uq_record_links_pair'
        ),
    )
    op.create_index('idx_record_links_org_active', 'record_links', ['organization_id', 'is_active'])
    op.create_index('idx_record_links_target', 'record_links', ['target_record_id'])

    # ==========================================================================
    # field_mappings
    # ==========================================================================
    op.create_table(
        'field_mappings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('mapping_name', sa.String(255), nullable=False),
        sa.Column('source_system', sa.String(50), nullable=False),
        sa.Column('source_field', sa.String(255), nullable=False),
        sa.Column('target_system', sa.String(50), nullable=False),
        sa.Column('target_field', sa.String(255), nullable=False),
        sa.Column('transformation_type', sa.String(50), nullable=True),
        sa.Column('source_transform', JSON_DOCUMENT, nullable=True),
        sa.Column('target_transform', JSON_DOCUMENT, nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_field_mappings_org_active', 'field_mappings', ['organization_id', 'is_active'])

    # ==========================================================================
    # custom_columns
    # ==========================================================================
    op.create_table(
        'custom_columns',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('default_value', sa.Text(), nullable=True),
        sa.Column('select_options', JSON_DOCUMENT, nullable=True),
        sa.Column('is_required', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        *_timestamps(with_updated=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'name', name='uq_custom_columns_org_name'),
    )


def downgrade() -> None:
    op.drop_table('custom_columns')
    op.drop_index('idx_field_mappings_org_active', table_name='field_mappings')
    op.drop_table('field_mappings')
    op.drop_index('idx_record_links_target', table_name='record_links')
    op.drop_index('idx_record_links_org_active', table_name='record_links')
    op.drop_table('record_links')
    op.drop_index('idx_records_integration_status', table_name='records')
    op.drop_index('idx_records_org_system', table_name='records')
    op.drop_table('records')
    op.drop_index('idx_sync_logs_integration_started', table_name='sync_logs')
    op.drop_table('sync_logs')
    op.drop_table('integrations')
    op.drop_index('idx_integration_cred_system_active', table_name='integration_credentials')
    op.drop_table('integration_credentials')
    op.drop_table('organizations')
