"""Initial feed hub schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _workspace_fk() -> sa.Column:
    return sa.Column('workspace_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False)


def _supplier_fk() -> sa.Column:
    return sa.Column('supplier_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False)


def _jsonb(name: str, default: str) -> sa.Column:
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=default)


def upgrade() -> None:
    # Tenants
    op.create_table(
        'workspaces',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('slug', name='workspaces_slug_key'),
    )

    op.create_table(
        'workspace_members',
        _id(),
        _workspace_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='viewer'),
        _timestamp('created_at'),
        sa.UniqueConstraint('workspace_id', 'user_id', name='uq_workspace_members_user'),
        sa.CheckConstraint("role IN ('owner', 'admin', 'viewer')", name='check_member_role'),
    )
    op.create_index('ix_workspace_members_workspace_id', 'workspace_members', ['workspace_id'])
    op.create_index('ix_workspace_members_user_id', 'workspace_members', ['user_id'])

    # Suppliers
    op.create_table(
        'suppliers',
        _id(),
        _workspace_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('source_type', sa.String(length=20), nullable=False, server_default='url'),
        sa.Column('endpoint_url', sa.Text(), nullable=True),
        sa.Column('source_path', sa.Text(), nullable=True),
        sa.Column('auth_username', sa.String(length=255), nullable=True),
        sa.Column('auth_password', sa.String(length=255), nullable=True),
        sa.Column('uid_source_key', sa.String(length=255), nullable=True),
        sa.Column('schedule_cron', sa.String(length=100), nullable=True),
        sa.Column('schedule_enabled', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('sync_status', sa.String(length=20), nullable=False, server_default='sync_needed'),
        sa.Column('sync_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('is_draft', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint("source_type IN ('url', 'upload')", name='check_supplier_source_type'),
        sa.CheckConstraint("status IN ('active', 'paused', 'error')", name='check_supplier_status'),
        sa.CheckConstraint("sync_status IN ('synced', 'sync_needed', 'syncing', 'failed')", name='check_supplier_sync_status'),
    )
    op.create_index('ix_suppliers_workspace_id', 'suppliers', ['workspace_id'])
    op.create_index('ix_suppliers_status', 'suppliers', ['status'])

    # Ingestion runs and per-item errors
    op.create_table(
        'feed_ingestions',
        _id(),
        _workspace_fk(),
        _supplier_fk(),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('feed_type', sa.String(length=10), nullable=True),
        sa.Column('source_file', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('items_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('items_ok', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('items_error', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.CheckConstraint("status IN ('pending', 'running', 'completed', 'failed')", name='check_ingestion_status'),
    )
    op.create_index('ix_feed_ingestions_workspace_id', 'feed_ingestions', ['workspace_id'])
    op.create_index('ix_feed_ingestions_supplier_id', 'feed_ingestions', ['supplier_id'])
    op.create_index('idx_feed_ingestions_created', 'feed_ingestions', ['created_at'], postgresql_ops={'created_at': 'DESC'})

    op.create_table(
        'feed_errors',
        _id(),
        _workspace_fk(),
        _supplier_fk(),
        sa.Column('ingestion_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_ingestions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_index', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('raw', sa.Text(), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('ix_feed_errors_ingestion_id', 'feed_errors', ['ingestion_id'])

    # Category tree (needed by products_mapped)
    op.create_table(
        'categories',
        _id(),
        _workspace_fk(),
        sa.Column('parent_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('path', sa.Text(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('workspace_id', 'path', name='uq_categories_path'),
    )
    op.create_index('ix_categories_workspace_id', 'categories', ['workspace_id'])
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'])

    # Products
    op.create_table(
        'products_raw',
        _id(),
        _workspace_fk(),
        _supplier_fk(),
        sa.Column('ingestion_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_ingestions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('external_id', sa.String(length=512), nullable=False),
        _jsonb('raw', '{}'),
        sa.Column('source_file', sa.Text(), nullable=True),
        _timestamp('imported_at'),
        sa.UniqueConstraint('workspace_id', 'supplier_id', 'external_id', name='uq_products_raw_external'),
    )
    op.create_index('ix_products_raw_supplier_id', 'products_raw', ['supplier_id'])
    op.create_index('ix_products_raw_imported_at', 'products_raw', ['imported_at'])

    op.create_table(
        'products_mapped',
        _id(),
        _workspace_fk(),
        _supplier_fk(),
        sa.Column('ingestion_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('feed_ingestions.id', ondelete='SET NULL'), nullable=True),
        sa.Column('external_id', sa.String(length=512), nullable=False),
        _jsonb('fields', '{}'),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('source_file', sa.Text(), nullable=True),
        _timestamp('imported_at'),
        sa.UniqueConstraint('workspace_id', 'supplier_id', 'external_id', name='uq_products_mapped_external'),
    )
    op.create_index('ix_products_mapped_workspace_id', 'products_mapped', ['workspace_id'])
    op.create_index('ix_products_mapped_supplier_id', 'products_mapped', ['supplier_id'])
    op.create_index('ix_products_mapped_category_id', 'products_mapped', ['category_id'])
    op.create_index('idx_products_mapped_fields', 'products_mapped', ['fields'], postgresql_using='gin')

    # Custom schema and mappings
    op.create_table(
        'custom_fields',
        _id(),
        _workspace_fk(),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('datatype', sa.String(length=10), nullable=False, server_default='text'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('use_for_category_mapping', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('workspace_id', 'key', name='uq_custom_fields_key'),
        sa.CheckConstraint("datatype IN ('text', 'number', 'bool', 'date', 'json')", name='check_custom_field_datatype'),
    )
    op.create_index('ix_custom_fields_workspace_id', 'custom_fields', ['workspace_id'])

    op.create_table(
        'field_mappings',
        _id(),
        _workspace_fk(),
        _supplier_fk(),
        sa.Column('source_key', sa.String(length=512), nullable=False),
        sa.Column('field_key', sa.String(length=100), nullable=False),
        sa.Column('transform_type', sa.String(length=50), nullable=False, server_default='direct'),
        _jsonb('transform_config', '{}'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('workspace_id', 'supplier_id', 'source_key', name='uq_field_mappings_source_key'),
    )
    op.create_index('ix_field_mappings_supplier_id', 'field_mappings', ['supplier_id'])

    op.create_table(
        'category_mappings',
        _id(),
        _workspace_fk(),
        _supplier_fk(),
        sa.Column('supplier_category', sa.Text(), nullable=False),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('workspace_id', 'supplier_id', 'supplier_category', name='uq_category_mappings_supplier_category'),
    )
    op.create_index('ix_category_mappings_supplier_id', 'category_mappings', ['supplier_id'])

    # Exports
    op.create_table(
        'export_profiles',
        _id(),
        _workspace_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('output_format', sa.String(length=10), nullable=False, server_default='csv'),
        sa.Column('platform', sa.String(length=100), nullable=True),
        _jsonb('field_selection', '[]'),
        _jsonb('field_ordering', '[]'),
        _jsonb('filters', '{}'),
        sa.Column('file_naming', sa.String(length=255), nullable=False, server_default='export_{timestamp}'),
        sa.Column('delivery_method', sa.String(length=20), nullable=False, server_default='download'),
        _jsonb('delivery_config', '{}'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint("output_format IN ('csv', 'json', 'xml')", name='check_export_format'),
        sa.CheckConstraint("delivery_method IN ('download', 'feed', 'webhook')", name='check_export_delivery_method'),
    )
    op.create_index('ix_export_profiles_workspace_id', 'export_profiles', ['workspace_id'])

    op.create_table(
        'export_history',
        _id(),
        _workspace_fk(),
        sa.Column('export_profile_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('export_profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('item_count', sa.Integer(), nullable=False),
        sa.Column('generation_time_ms', sa.Integer(), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('ix_export_history_workspace_id', 'export_history', ['workspace_id'])


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('export_history')
    op.drop_table('export_profiles')
    op.drop_table('category_mappings')
    op.drop_table('field_mappings')
    op.drop_table('custom_fields')
    op.drop_table('products_mapped')
    op.drop_table('products_raw')
    op.drop_table('categories')
    op.drop_table('feed_errors')
    op.drop_table('feed_ingestions')
    op.drop_table('suppliers')
    op.drop_table('workspace_members')
    op.drop_table('workspaces')
