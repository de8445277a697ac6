"""initial tables: users, menu, orders, slot bookings

Revision ID: 0001
Revises: 
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(16), nullable=False),
        sa.Column('is_active_flag', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('menu_items',
        sa.Column('name', sa.String(120), primary_key=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('visible', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('custom', sa.JSON(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('stock IS NULL OR stock >= 0', name='ck_menu_items_stock'),
    )
    op.create_index('ix_menu_items_visible', 'menu_items', ['visible'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column('item', sa.String(120), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('time_slot', sa.String(16), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity'),
    )
    op.create_index('ix_orders_item', 'orders', ['item'])
    op.create_index('ix_orders_customer_email', 'orders', ['customer_email'])
    op.create_index('ix_orders_time_slot', 'orders', ['time_slot'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table('time_slot_bookings',
        sa.Column('slot', sa.String(16), primary_key=True),
        sa.Column('booked', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('order_id', sa.Integer(), nullable=True),
    )
    op.create_index('ix_time_slot_bookings_booked', 'time_slot_bookings', ['booked'])

    op.create_table('ledger_counters',
        sa.Column('name', sa.String(64), primary_key=True),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
    )

def downgrade():
    op.drop_table('ledger_counters')
    op.drop_index('ix_time_slot_bookings_booked', table_name='time_slot_bookings')
    op.drop_table('time_slot_bookings')
    for ix in ('ix_orders_status', 'ix_orders_created_at', 'ix_orders_time_slot',
               'ix_orders_customer_email', 'ix_orders_item'):
        op.drop_index(ix, table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_menu_items_visible', table_name='menu_items')
    op.drop_table('menu_items')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
