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
    is_postgres = op.get_bind().dialect.name == 'postgresql'

    # Create tenants table
    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('timezone', sa.String(50), default='America/St_Johns'),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('overstay_grace_period_days', sa.Integer()),
        sa.Column('overstay_penalty_multiplier', sa.Numeric(6, 3)),
        sa.Column('overstay_max_penalty_days', sa.Integer()),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create kitchen_access_grants table
    op.create_table(
        'kitchen_access_grants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('chef_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('granted_at', sa.DateTime(), default=sa.func.now()),
        sa.UniqueConstraint('tenant_id', 'chef_id', name='uq_access_grant_chef'),
    )

    # Create kitchens table
    op.create_table(
        'kitchens',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('hourly_rate_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('currency', sa.String(3), nullable=False, default='CAD'),
        sa.Column('minimum_booking_hours', sa.Numeric(5, 2), nullable=False, default=1),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create weekly_availability table
    op.create_table(
        'weekly_availability',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('kitchen_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('kitchens.id'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_minute', sa.Integer(), nullable=False),
        sa.Column('end_minute', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, default=True),
        sa.UniqueConstraint('kitchen_id', 'day_of_week', name='uq_weekly_availability_day'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_weekly_availability_day'),
        sa.CheckConstraint('start_minute < end_minute', name='ck_weekly_availability_range'),
    )

    # Create date_overrides table
    op.create_table(
        'date_overrides',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('kitchen_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('kitchens.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_minute', sa.Integer()),
        sa.Column('end_minute', sa.Integer()),
        sa.Column('is_closed', sa.Boolean(), nullable=False, default=True),
        sa.Column('reason', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('kitchen_id', 'date', name='uq_date_override_day'),
    )

    # Create date_blocks table
    op.create_table(
        'date_blocks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('kitchen_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('kitchens.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_minute', sa.Integer(), nullable=False),
        sa.Column('end_minute', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.CheckConstraint('start_minute < end_minute', name='ck_date_block_range'),
    )

    # Create storage_listings table
    op.create_table(
        'storage_listings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('kitchen_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('kitchens.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('storage_type', sa.String(50), default='dry'),
        sa.Column('base_price_cents', sa.Integer(), nullable=False),
        sa.Column('booking_duration_unit', sa.String(20), nullable=False, default='daily'),
        sa.Column('minimum_booking_duration', sa.Integer(), nullable=False, default=1),
        sa.Column('overstay_grace_period_days', sa.Integer()),
        sa.Column('overstay_penalty_multiplier', sa.Numeric(6, 3)),
        sa.Column('overstay_max_penalty_days', sa.Integer()),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create equipment_listings table
    op.create_table(
        'equipment_listings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('kitchen_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('kitchens.id'), nullable=False),
        sa.Column('equipment_type', sa.String(100), nullable=False),
        sa.Column('availability_type', sa.String(20), nullable=False, default='rental'),
        sa.Column('session_rate_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('damage_deposit_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create reservations table
    op.create_table(
        'reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('kitchen_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('kitchens.id'), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True)),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('start_minute', sa.Integer(), nullable=False),
        sa.Column('end_minute', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='pending'),
        sa.Column('booking_type', sa.String(20), nullable=False, default='chef'),
        sa.Column('currency', sa.String(3), nullable=False, default='CAD'),
        sa.Column('kitchen_subtotal_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('service_fee_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('deposit_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('total_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('payment_status', sa.String(30), nullable=False, default='pending'),
        sa.Column('payment_session_token', sa.String(255), unique=True),
        sa.Column('included_equipment', sa.JSON(), default=list),
        sa.Column('notes', sa.Text()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('cancellation_reason', sa.String(255)),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint('start_minute < end_minute', name='ck_reservation_range'),
    )

    # Create storage_reservations table
    op.create_table(
        'storage_reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('storage_listing_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('storage_listings.id'), nullable=False),
        sa.Column('parent_booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservations.id'), nullable=False),
        sa.Column('chef_id', postgresql.UUID(as_uuid=True)),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='pending'),
        sa.Column('payment_status', sa.String(30), nullable=False, default='pending'),
        sa.Column('base_price_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('service_fee_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint('start_date < end_date', name='ck_storage_reservation_range'),
    )

    # Create equipment_reservations table
    op.create_table(
        'equipment_reservations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('equipment_listing_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('equipment_listings.id'), nullable=False),
        sa.Column('parent_booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservations.id'), nullable=False),
        sa.Column('chef_id', postgresql.UUID(as_uuid=True)),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='pending'),
        sa.Column('payment_status', sa.String(30), nullable=False, default='pending'),
        sa.Column('session_rate_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('service_fee_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('damage_deposit_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.CheckConstraint('start_date < end_date', name='ck_equipment_reservation_range'),
    )

    # Create pending_extensions table
    op.create_table(
        'pending_extensions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('storage_reservation_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('storage_reservations.id'), nullable=False),
        sa.Column('previous_end_date', sa.Date(), nullable=False),
        sa.Column('new_end_date', sa.Date(), nullable=False),
        sa.Column('extension_days', sa.Integer(), nullable=False),
        sa.Column('base_price_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('service_fee_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('computed_price_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('currency', sa.String(3), nullable=False, default='CAD'),
        sa.Column('external_payment_session_id', sa.String(255)),
        sa.Column('status', sa.String(20), nullable=False, default='pending'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create overstay_records table
    op.create_table(
        'overstay_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('storage_reservation_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('storage_reservations.id'), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('days_overdue', sa.Integer(), nullable=False),
        sa.Column('penalty_days', sa.Integer(), nullable=False),
        sa.Column('daily_rate_cents', sa.Integer(), nullable=False),
        sa.Column('penalty_multiplier', sa.Numeric(6, 3), nullable=False),
        sa.Column('penalty_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, default='CAD'),
        sa.Column('status', sa.String(30), nullable=False, default='grace_period'),
        sa.Column('resolution', sa.String(30)),
        sa.Column('resolution_notes', sa.Text()),
        sa.Column('external_charge_id', sa.String(255)),
        sa.Column('detected_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('resolved_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.UniqueConstraint('storage_reservation_id', 'end_date', name='uq_overstay_reservation_end_date'),
    )

    # Create payment_transactions table
    op.create_table(
        'payment_transactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('reservations.id'), unique=True, nullable=False),
        sa.Column('external_transaction_id', sa.String(255), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('platform_fee_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('processor_fee_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('manager_revenue_cents', sa.Integer(), nullable=False),
        sa.Column('refunded_cents', sa.Integer(), nullable=False, default=0),
        sa.Column('currency', sa.String(3), nullable=False, default='CAD'),
        sa.Column('status', sa.String(30), nullable=False, default='succeeded'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
    )

    # Create indexes
    op.create_index('ix_kitchen_access_grants_chef_id', 'kitchen_access_grants', ['chef_id'])
    op.create_index('ix_kitchens_tenant_id', 'kitchens', ['tenant_id'])
    op.create_index('ix_date_blocks_date', 'date_blocks', ['date'])
    op.create_index('ix_storage_listings_kitchen_id', 'storage_listings', ['kitchen_id'])
    op.create_index('ix_equipment_listings_kitchen_id', 'equipment_listings', ['kitchen_id'])
    op.create_index('ix_reservations_owner_id', 'reservations', ['owner_id'])
    op.create_index('ix_reservations_kitchen_date', 'reservations', ['kitchen_id', 'booking_date'])
    op.create_index('ix_storage_reservations_parent_booking_id', 'storage_reservations', ['parent_booking_id'])
    op.create_index(
        'ix_storage_reservations_listing_dates',
        'storage_reservations',
        ['storage_listing_id', 'start_date', 'end_date'],
    )
    op.create_index('ix_equipment_reservations_parent_booking_id', 'equipment_reservations', ['parent_booking_id'])
    op.create_index(
        'ix_equipment_reservations_listing_dates',
        'equipment_reservations',
        ['equipment_listing_id', 'start_date', 'end_date'],
    )
    op.create_index('ix_overstay_records_storage_reservation_id', 'overstay_records', ['storage_reservation_id'])

    # At most one pending extension per storage reservation
    op.create_index(
        'uq_pending_extension_per_reservation',
        'pending_extensions',
        ['storage_reservation_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    if is_postgres:
        # Live kitchen reservations may not overlap on the same kitchen and date
        op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
        op.execute(
            """
            ALTER TABLE reservations
            ADD CONSTRAINT ex_reservations_no_overlap
            EXCLUDE USING gist (
                kitchen_id WITH =,
                booking_date WITH =,
                int4range(start_minute, end_minute) WITH &&
            ) WHERE (status <> 'cancelled')
            """
        )


def downgrade() -> None:
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('ALTER TABLE reservations DROP CONSTRAINT IF EXISTS ex_reservations_no_overlap')

    op.drop_index('uq_pending_extension_per_reservation', table_name='pending_extensions')
    op.drop_table('payment_transactions')
    op.drop_table('overstay_records')
    op.drop_table('pending_extensions')
    op.drop_table('equipment_reservations')
    op.drop_table('storage_reservations')
    op.drop_table('reservations')
    op.drop_table('equipment_listings')
    op.drop_table('storage_listings')
    op.drop_table('date_blocks')
    op.drop_table('date_overrides')
    op.drop_table('weekly_availability')
    op.drop_table('kitchens')
    op.drop_table('kitchen_access_grants')
    op.drop_table('tenants')
