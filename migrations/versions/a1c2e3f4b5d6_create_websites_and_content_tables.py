"""Create websites, members and content tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c2e3f4b5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create tenant, membership and content store tables."""
    op.create_table(
        'websites',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('domain', sa.String(255), nullable=False),
        sa.Column('api_key', sa.String(64), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('api_key', name='unique_website_api_key')
    )

    op.create_table(
        'website_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('website_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='viewer'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], name='fk_website_members_website'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('website_id', 'user_id', name='unique_website_member')
    )
    op.create_index('ix_website_members_website_id', 'website_members', ['website_id'])
    op.create_index('ix_website_members_user_id', 'website_members', ['user_id'])

    for table in ('categories', 'tags'):
        op.create_table(
            table,
            sa.Column('id', sa.String(36), nullable=False),
            sa.Column('website_id', sa.String(36), nullable=False),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('slug', sa.String(255), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['website_id'], ['websites.id'], name=f'fk_{table}_website'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(f'ix_{table}_website_id', table, ['website_id'])

    op.create_table(
        'content_items',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('website_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('slug', sa.String(500), nullable=True),
        sa.Column('excerpt', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('author_id', sa.String(64), nullable=True),
        sa.Column('author_name', sa.String(255), nullable=True),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('canonical_url', sa.String(1000), nullable=True),
        sa.Column('featured_image_url', sa.String(1000), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sort_position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['website_id'], ['websites.id'], name='fk_content_items_website'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_content_items_website_id', 'content_items', ['website_id'])
    op.create_index('ix_content_items_status', 'content_items', ['status'])
    op.create_index('ix_content_items_published_at', 'content_items', ['published_at'])

    op.create_table(
        'content_categories',
        sa.Column('content_id', sa.String(36), nullable=False),
        sa.Column('category_id', sa.String(36), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_items.id']),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('content_id', 'category_id')
    )
    op.create_table(
        'content_tags',
        sa.Column('content_id', sa.String(36), nullable=False),
        sa.Column('tag_id', sa.String(36), nullable=False),
        sa.ForeignKeyConstraint(['content_id'], ['content_items.id']),
        sa.ForeignKeyConstraint(['tag_id'], ['tags.id']),
        sa.PrimaryKeyConstraint('content_id', 'tag_id')
    )


def downgrade():
    """Remove content store and tenant tables."""
    op.drop_table('content_tags')
    op.drop_table('content_categories')
    op.drop_index('ix_content_items_published_at', 'content_items')
    op.drop_index('ix_content_items_status', 'content_items')
    op.drop_index('ix_content_items_website_id', 'content_items')
    op.drop_table('content_items')
    for table in ('tags', 'categories'):
        op.drop_index(f'ix_{table}_website_id', table)
        op.drop_table(table)
    op.drop_index('ix_website_members_user_id', 'website_members')
    op.drop_index('ix_website_members_website_id', 'website_members')
    op.drop_table('website_members')
    op.drop_table('websites')
