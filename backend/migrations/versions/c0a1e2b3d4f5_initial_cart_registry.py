"""initial cart registry schema

Revision ID: c0a1e2b3d4f5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates:
- registrations: ownership registrations with warranty coverage
- carts: current state per serial
- cart_events: append-only event log per cart
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c0a1e2b3d4f5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # registrations: one row per new sale / used sale
    # ============================================================================
    op.create_table(
        'registrations',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=8), nullable=False),
        sa.Column('serial', sa.String(length=64), nullable=False),
        sa.Column('model', sa.String(length=128), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('order_ref', sa.String(length=64), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('image_url', sa.String(length=512), nullable=True),
        sa.Column('coverage_start', sa.Date(), nullable=False),
        sa.Column('coverage_end', sa.Date(), nullable=False),
        sa.Column('coverage_months', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_registrations'),
    )
    op.create_index('ix_registrations_kind', 'registrations', ['kind'])
    op.create_index('ix_registrations_serial', 'registrations', ['serial'])
    op.create_index('ix_registrations_customer_email', 'registrations', ['customer_email'])
    op.create_index('ix_registrations_order_ref', 'registrations', ['order_ref'])
    op.create_index('ix_registrations_status', 'registrations', ['status'])
    op.create_index('ix_registrations_serial_status', 'registrations', ['serial', 'status'])
    op.create_index('ix_registrations_created', 'registrations', ['created_at'])

    # ============================================================================
    # carts: current state keyed by serial
    # ============================================================================
    op.create_table(
        'carts',
        sa.Column('serial', sa.String(length=64), nullable=False),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('possession_type', sa.String(length=16), nullable=False),
        sa.Column('possession_registration_id', sa.String(length=64), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ['possession_registration_id'], ['registrations.id'],
            name='fk_carts_possession_registration_id_registrations',
        ),
        sa.PrimaryKeyConstraint('serial', name='pk_carts'),
    )
    op.create_index('ix_carts_status', 'carts', ['status'])
    op.create_index('ix_carts_possession_registration_id', 'carts', ['possession_registration_id'])

    # ============================================================================
    # cart_events: append-only, never updated or deleted
    # ============================================================================
    op.create_table(
        'cart_events',
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('serial', sa.String(length=64), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['serial'], ['carts.serial'], name='fk_cart_events_serial_carts'),
        sa.PrimaryKeyConstraint('sequence', name='pk_cart_events'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cart_events_event_type', 'cart_events', ['event_type'])
    op.create_index('ix_cart_events_serial_sequence', 'cart_events', ['serial', 'sequence'])


def downgrade():
    op.drop_index('ix_cart_events_serial_sequence', table_name='cart_events')
    op.drop_index('ix_cart_events_event_type', table_name='cart_events')
    op.drop_table('cart_events')

    op.drop_index('ix_carts_possession_registration_id', table_name='carts')
    op.drop_index('ix_carts_status', table_name='carts')
    op.drop_table('carts')

    op.drop_index('ix_registrations_created', table_name='registrations')
    op.drop_index('ix_registrations_serial_status', table_name='registrations')
    op.drop_index('ix_registrations_status', table_name='registrations')
    op.drop_index('ix_registrations_order_ref', table_name='registrations')
    op.drop_index('ix_registrations_customer_email', table_name='registrations')
    op.drop_index('ix_registrations_serial', table_name='registrations')
    op.drop_index('ix_registrations_kind', table_name='registrations')
    op.drop_table('registrations')
