"""create scheduler tables

Revision ID: a1c4e2f9b7d3
Revises:
Create Date: 2026-10-19 09:12:44.581204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c4e2f9b7d3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Tenants
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('webhook_urls', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
    )

    # 2. Services
    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_services_business_id', 'services', ['business_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    # 3. Booking policy, one row per business
    op.create_table(
        'booking_settings',
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('timezone', sa.String(64), nullable=False),
        sa.Column('buffer_minutes', sa.Integer(), nullable=False),
        sa.Column('min_notice_hours', sa.Integer(), nullable=False),
        sa.Column('max_days_out', sa.Integer(), nullable=False),
        sa.Column('default_duration_minutes', sa.Integer(), nullable=False),
        sa.Column('booking_mode', sa.String(20), nullable=False),
        sa.Column('booking_key', sa.String(64), nullable=False, unique=True),
        sa.Column('notification_email', sa.String(255), nullable=True),
        sa.Column('policy_text', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    # 4. Weekly windows and date exceptions
    op.create_table(
        'availability_windows',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_availability_windows_business_day', 'availability_windows', ['business_id', 'day_of_week'])

    op.create_table(
        'availability_exceptions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('reason', sa.String(200), nullable=True),
    )
    op.create_index('ix_availability_exceptions_business_date', 'availability_exceptions', ['business_id', 'date'])

    # 5. Busy blocks (manual and calendar-synced)
    op.create_table(
        'busy_blocks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.String(200), nullable=True),
        sa.Column('source', sa.String(50), nullable=False),
        sa.Column('external_event_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_busy_blocks_business_range', 'busy_blocks', ['business_id', 'start', 'end'])

    # 6. Booking requests and their audit trail
    op.create_table(
        'booking_requests',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_name', sa.String(200), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(50), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('preferred_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('preferred_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('proposed_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('proposed_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('proposal_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_booking_requests_business_created', 'booking_requests', ['business_id', 'created_at'])
    op.create_index('ix_booking_requests_business_email', 'booking_requests', ['business_id', 'customer_email'])
    op.create_index('ix_booking_requests_business_status', 'booking_requests', ['business_id', 'status'])

    op.create_table(
        'booking_request_audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('booking_request_id', sa.Uuid(), sa.ForeignKey('booking_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('from_status', sa.String(20), nullable=True),
        sa.Column('to_status', sa.String(20), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_booking_request_audit_logs_booking_request_id', 'booking_request_audit_logs', ['booking_request_id'])
    op.create_index('ix_booking_request_audit_logs_business_id', 'booking_request_audit_logs', ['business_id'])

    # 7. Public links
    op.create_table(
        'public_links',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('code', sa.String(12), nullable=False, unique=True),
        sa.Column('slug', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('public_links')
    op.drop_table('booking_request_audit_logs')
    op.drop_table('booking_requests')
    op.drop_table('busy_blocks')
    op.drop_table('availability_exceptions')
    op.drop_table('availability_windows')
    op.drop_table('booking_settings')
    op.drop_table('services')
    op.drop_table('businesses')
