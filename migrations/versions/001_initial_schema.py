"""Initial schema: categories, products, product_variations, inventory_items, outbox_events

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-19 10:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create categories table
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Seed the fixed categories
    categories = sa.table('categories', sa.column('id', sa.Integer), sa.column('name', sa.String))
    op.bulk_insert(categories, [
        {'id': 1, 'name': 'Computers'},
        {'id': 2, 'name': 'Fashion'},
    ])

    # Create products table
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('about', sa.JSON(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('variation_type', sa.Enum('NONE', 'ONLY_SIZE', 'ONLY_COLOR', 'SIZE_AND_COLOR', name='variationtype'), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('merchant_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes for products
    op.create_index('ix_products_code', 'products', ['code'], unique=True)
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_merchant_id', 'products', ['merchant_id'])

    # Create product_variations table
    op.create_table(
        'product_variations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('size_code', sa.String(length=20), nullable=True),
        sa.Column('color_name', sa.String(length=50), nullable=True),
        sa.Column('image_urls', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_product_variations_product_id', 'product_variations', ['product_id'])

    # Create inventory_items table
    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_variation_id', sa.Integer(), nullable=False),
        sa.Column('country_code', sa.String(length=2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['product_variation_id'], ['product_variations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_variation_id', 'country_code', name='uq_inventory_variation_country'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative')
    )

    # Create indexes for inventory_items
    op.create_index('ix_inventory_items_product_variation_id', 'inventory_items', ['product_variation_id'])
    op.create_index('ix_inventory_items_created_at', 'inventory_items', ['created_at'])

    # Create outbox_events table
    op.create_table(
        'outbox_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.String(length=36), nullable=False),
        sa.Column('event_type', sa.String(length=100), nullable=False),
        sa.Column('schema_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('aggregate_type', sa.String(length=50), nullable=False),
        sa.Column('aggregate_id', sa.String(length=64), nullable=False),
        sa.Column('correlation_id', sa.String(length=64), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'CLAIMED', 'DELIVERED', 'FAILED', name='outboxstatus'), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('next_retry_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('claimed_by', sa.String(length=100), nullable=True),
        sa.Column('lease_expires_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_to', sa.JSON(), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes for outbox_events
    op.create_index('ix_outbox_events_event_id', 'outbox_events', ['event_id'], unique=True)
    op.create_index('ix_outbox_events_status_next_retry', 'outbox_events', ['status', 'next_retry_at'])
    op.create_index('ix_outbox_events_aggregate_order', 'outbox_events', ['aggregate_id', 'occurred_at', 'id'])


def downgrade():
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_index('ix_outbox_events_aggregate_order', table_name='outbox_events')
    op.drop_index('ix_outbox_events_status_next_retry', table_name='outbox_events')
    op.drop_index('ix_outbox_events_event_id', table_name='outbox_events')
    op.drop_table('outbox_events')

    op.drop_index('ix_inventory_items_created_at', table_name='inventory_items')
    op.drop_index('ix_inventory_items_product_variation_id', table_name='inventory_items')
    op.drop_table('inventory_items')

    op.drop_index('ix_product_variations_product_id', table_name='product_variations')
    op.drop_table('product_variations')

    op.drop_index('ix_products_merchant_id', table_name='products')
    op.drop_index('ix_products_category_id', table_name='products')
    op.drop_index('ix_products_code', table_name='products')
    op.drop_table('products')

    op.drop_table('categories')

    # Drop enums
    sa.Enum(name='outboxstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='variationtype').drop(op.get_bind(), checkfirst=True)
