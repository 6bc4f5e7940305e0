"""Initial migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Needed for the uuid = operator inside a gist exclusion constraint
    op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')

    # Create shops table
    op.create_table(
        'shops',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('reservations_enabled', sa.Boolean(), default=False),
        sa.Column('reservation_settings', postgresql.JSON(), default={}),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id')),
        sa.Column('email', sa.String(255), unique=True, nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255)),
        sa.Column('role', sa.Enum('SUPER_ADMIN', 'SHOP_OWNER', name='userrole'), default='SHOP_OWNER'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create app_users table
    op.create_table(
        'app_users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('first_name', sa.String(255)),
        sa.Column('last_name', sa.String(255)),
        sa.Column('email', sa.String(255), unique=True),
        sa.Column('phone_number', sa.String(50)),
        sa.Column('reservation_no_show_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reservation_blocked_until', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
    )

    # Create reservation_services table
    op.create_table(
        'reservation_services',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('type', sa.String(20), default='service'),
        sa.Column('duration_minutes', sa.Integer()),
        sa.Column('price', sa.Numeric(10, 2)),
        sa.Column('capacity', sa.Integer(), default=1),
        sa.Column('requires_resource', sa.Boolean(), default=True),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('sort_order', sa.Integer(), default=0),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('ix_reservation_services_shop_id', 'reservation_services', ['shop_id'])

    # Create reservation_resources table
    op.create_table(
        'reservation_resources',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, default='staff'),
        sa.Column('image_url', sa.String(500)),
        sa.Column('description', sa.Text()),
        sa.Column('specialties', postgresql.JSON(), default=[]),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('sort_order', sa.Integer(), default=0),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )
    op.create_index('ix_reservation_resources_shop_id', 'reservation_resources', ['shop_id'])

    # Create reservation_resource_services table
    op.create_table(
        'reservation_resource_services',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservation_resources.id'), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservation_services.id'), nullable=False),
        sa.Column('price_override', sa.Numeric(10, 2)),
        sa.Column('duration_override', sa.Integer()),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.UniqueConstraint('resource_id', 'service_id', name='uq_resource_service'),
    )
    op.create_index('ix_reservation_resource_services_resource_id', 'reservation_resource_services', ['resource_id'])
    op.create_index('ix_reservation_resource_services_service_id', 'reservation_resource_services', ['service_id'])

    # Create reservation_availability table
    op.create_table(
        'reservation_availability',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservation_resources.id')),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_availability_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='ck_availability_window'),
    )
    op.create_index('ix_reservation_availability_scope', 'reservation_availability', ['shop_id', 'resource_id', 'day_of_week'])

    # Create reservation_blocks table
    op.create_table(
        'reservation_blocks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservation_resources.id')),
        sa.Column('start_datetime', sa.DateTime(), nullable=False),
        sa.Column('end_datetime', sa.DateTime(), nullable=False),
        sa.Column('reason', sa.String(255)),
        sa.Column('block_type', sa.String(20), default='custom'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.CheckConstraint('start_datetime < end_datetime', name='ck_block_window'),
    )
    op.create_index('ix_reservation_blocks_window', 'reservation_blocks', ['shop_id', 'start_datetime', 'end_datetime'])

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservation_services.id'), nullable=False),
        sa.Column('resource_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservation_resources.id')),
        sa.Column('app_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('app_users.id')),
        sa.Column('guest_name', sa.String(255)),
        sa.Column('guest_phone', sa.String(50)),
        sa.Column('guest_email', sa.String(255)),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('party_size', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('price', sa.Numeric(10, 2)),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('confirmation_mode', sa.String(10)),
        sa.Column('confirmed_at', sa.DateTime()),
        sa.Column('confirmed_by', sa.String(64)),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('cancelled_by', sa.String(64)),
        sa.Column('cancellation_reason', sa.Text()),
        sa.Column('no_show_marked_at', sa.DateTime()),
        sa.Column('no_show_marked_by', sa.String(64)),
        sa.Column('customer_notes', sa.Text()),
        sa.Column('internal_notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint('start_time < end_time', name='ck_reservation_window'),
    )
    op.create_index('ix_reservations_shop_window', 'reservations', ['shop_id', 'start_time', 'end_time'])
    op.create_index('ix_reservations_resource_window', 'reservations', ['resource_id', 'start_time', 'end_time'])
    op.create_index('ix_reservations_app_user_id', 'reservations', ['app_user_id'])

    # Two active reservations may never hold the same resource over overlapping windows.
    # The service layer locks the resource row first; this is the store-level guarantee.
    op.execute(
        """
        ALTER TABLE reservations
        ADD CONSTRAINT excl_reservations_resource_overlap
        EXCLUDE USING gist (
            shop_id WITH =,
            resource_id WITH =,
            tsrange(start_time, end_time) WITH &&
        )
        WHERE (status IN ('pending', 'confirmed') AND resource_id IS NOT NULL)
        """
    )


def downgrade() -> None:
    op.drop_table('reservations')
    op.drop_table('reservation_blocks')
    op.drop_table('reservation_availability')
    op.drop_table('reservation_resource_services')
    op.drop_table('reservation_resources')
    op.drop_table('reservation_services')
    op.drop_table('app_users')
    op.drop_table('users')
    op.drop_table('shops')
    op.execute('DROP TYPE IF EXISTS userrole')
