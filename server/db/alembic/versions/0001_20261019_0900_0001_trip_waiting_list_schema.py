"""Trip waiting list schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create trips table
    op.create_table('trips',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('total_rooms', sa.Integer(), nullable=False),
        sa.Column('available_rooms', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('total_rooms >= 0', name='ck_trip_total_rooms_non_negative'),
        sa.CheckConstraint('available_rooms >= 0', name='ck_trip_available_rooms_non_negative'),
        sa.CheckConstraint('available_rooms <= total_rooms', name='ck_trip_available_rooms_lte_total'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_trips_name'), 'trips', ['name'], unique=False)
    op.create_index(op.f('ix_trips_start_date'), 'trips', ['start_date'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('number_of_rooms', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('number_of_rooms >= 1 AND number_of_rooms <= 10', name='ck_booking_number_of_rooms_range'),
        sa.CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name='ck_booking_status_valid'),
        sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_trip_id'), 'bookings', ['trip_id'], unique=False)
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)

    # Create waiting_list_entries table
    op.create_table('waiting_list_entries',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('rooms_requested', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('notified_at', sa.DateTime(), nullable=True),
        sa.Column('notification_expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('position >= 1', name='ck_waitlist_position_positive'),
        sa.CheckConstraint('rooms_requested >= 1 AND rooms_requested <= 10', name='ck_waitlist_rooms_requested_range'),
        sa.CheckConstraint('length(user_id) > 0', name='ck_waitlist_user_id_not_empty'),
        sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('trip_id', 'user_id', name='uq_waitlist_trip_user')
    )
    op.create_index(op.f('ix_waiting_list_entries_notification_expires_at'), 'waiting_list_entries', ['notification_expires_at'], unique=False)
    op.create_index(op.f('ix_waiting_list_entries_status'), 'waiting_list_entries', ['status'], unique=False)
    op.create_index(op.f('ix_waiting_list_entries_trip_id'), 'waiting_list_entries', ['trip_id'], unique=False)
    op.create_index(op.f('ix_waiting_list_entries_user_id'), 'waiting_list_entries', ['user_id'], unique=False)
    op.create_index('ix_waitlist_trip_status_position', 'waiting_list_entries', ['trip_id', 'status', 'position'], unique=False)

    # Create inventory_adjustments table
    op.create_table('inventory_adjustments',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('trip_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('actor', sa.String(length=255), nullable=False),
        sa.Column('total_rooms_before', sa.Integer(), nullable=False),
        sa.Column('total_rooms_after', sa.Integer(), nullable=False),
        sa.Column('available_rooms_before', sa.Integer(), nullable=False),
        sa.Column('available_rooms_after', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['trip_id'], ['trips.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_inventory_adjustments_created_at'), 'inventory_adjustments', ['created_at'], unique=False)
    op.create_index(op.f('ix_inventory_adjustments_trip_id'), 'inventory_adjustments', ['trip_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('inventory_adjustments')
    op.drop_table('waiting_list_entries')
    op.drop_table('bookings')
    op.drop_table('trips')
