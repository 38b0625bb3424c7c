"""Add widget configuration, version and analytics tables

Revision ID: b2d3f4a5c6e7
Revises: a1c2e3f4b5d6
Create Date: 2026-10-02 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b2d3f4a5c6e7'
down_revision = 'a1c2e3f4b5d6'
branch_labels = None
depends_on = None


def upgrade():
    """Create widget configuration, version history and daily analytics tables."""
    op.create_table(
        'widget_configurations',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('website_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('layout', sa.String(50), nullable=False),
        sa.Column('theme', sa.String(50), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('styling', sa.JSON(), nullable=False),
        sa.Column('content_filters', sa.JSON(), nullable=False),
        sa.Column('seo_settings', sa.JSON(), nullable=False),
        sa.Column('performance_settings', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('embed_code', sa.Text(), nullable=True),
        sa.Column('preview_url', sa.String(1000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], name='fk_widget_configurations_website'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_widget_configurations_website_id', 'widget_configurations', ['website_id'])
    op.create_index('ix_widget_configurations_type', 'widget_configurations', ['type'])
    op.create_index('ix_widget_configurations_is_active', 'widget_configurations', ['is_active'])

    op.create_table(
        'widget_versions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('widget_id', sa.String(64), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('configuration', sa.JSON(), nullable=False),
        sa.Column('change_summary', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['widget_id'], ['widget_configurations.id'], name='fk_widget_versions_widget'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('widget_id', 'version_number', name='unique_widget_version')
    )
    op.create_index('ix_widget_versions_widget_id', 'widget_versions', ['widget_id'])

    op.create_table(
        'widget_analytics',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('widget_id', sa.String(64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('interactions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('engagement_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('popular_posts', sa.JSON(), nullable=False),
        sa.Column('traffic_sources', sa.JSON(), nullable=False),
        sa.Column('device_breakdown', sa.JSON(), nullable=False),
        sa.Column('geographic_data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['widget_id'], ['widget_configurations.id'], name='fk_widget_analytics_widget'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('widget_id', 'date', name='unique_widget_analytics_date')
    )
    op.create_index('ix_widget_analytics_widget_id', 'widget_analytics', ['widget_id'])
    op.create_index('ix_widget_analytics_date', 'widget_analytics', ['date'])


def downgrade():
    """Remove widget tables."""
    op.drop_index('ix_widget_analytics_date', 'widget_analytics')
    op.drop_index('ix_widget_analytics_widget_id', 'widget_analytics')
    op.drop_table('widget_analytics')
    op.drop_index('ix_widget_versions_widget_id', 'widget_versions')
    op.drop_table('widget_versions')
    op.drop_index('ix_widget_configurations_is_active', 'widget_configurations')
    op.drop_index('ix_widget_configurations_type', 'widget_configurations')
    op.drop_index('ix_widget_configurations_website_id', 'widget_configurations')
    op.drop_table('widget_configurations')
