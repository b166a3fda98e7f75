"""create scheduling tables

Revision ID: 4b7d2c9e1a03
Revises:
Create Date: 2026-10-19 09:12:44.501233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b7d2c9e1a03'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


rule_status = postgresql.ENUM('active', 'deactivated', name='availability_rule_status', create_type=False)
appointment_status = postgresql.ENUM(
    'scheduled', 'confirmed', 'cancelled', 'completed', 'no_show', name='appointment_status', create_type=False
)
recurrence_pattern = postgresql.ENUM(
    'weekly', 'biweekly', 'every-4-weeks', name='recurrence_pattern', create_type=False
)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    rule_status.create(bind, checkfirst=True)
    appointment_status.create(bind, checkfirst=True)
    recurrence_pattern.create(bind, checkfirst=True)

    # 1. Weekly rules
    op.create_table(
        'availability_rules',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('clinician_id', sa.String(64), nullable=False),
        sa.Column('day_of_week', sa.Integer, nullable=False),
        sa.Column('start_time', sa.Time, nullable=False),
        sa.Column('end_time', sa.Time, nullable=False),
        sa.Column('status', rule_status, nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('clinician_id', 'day_of_week', 'start_time', 'end_time',
                            name='uq_availability_rules_shape'),
        sa.CheckConstraint('start_time < end_time', name='ck_availability_rules_time_order'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_availability_rules_day'),
    )
    op.create_index('ix_availability_rules_clinician_id', 'availability_rules', ['clinician_id'])

    # 2. Per-date exceptions and standalone slots
    op.create_table(
        'availability_exceptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('clinician_id', sa.String(64), nullable=False),
        sa.Column('specific_date', sa.Date, nullable=False),
        sa.Column('original_rule_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('availability_rules.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('start_time', sa.Time, nullable=True),
        sa.Column('end_time', sa.Time, nullable=True),
        sa.Column('is_deleted', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('clinician_id', 'specific_date', 'original_rule_id',
                            name='uq_availability_exceptions_override'),
        sa.CheckConstraint(
            'is_deleted OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)',
            name='ck_availability_exceptions_window'
        ),
    )
    op.create_index('ix_availability_exceptions_clinician_id', 'availability_exceptions', ['clinician_id'])
    # NULL rule ids never collide in the constraint above
    op.create_index(
        'uq_availability_exceptions_standalone',
        'availability_exceptions',
        ['clinician_id', 'specific_date'],
        unique=True,
        postgresql_where=sa.text('original_rule_id IS NULL')
    )

    # 3. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('client_id', sa.String(64), nullable=False),
        sa.Column('clinician_id', sa.String(64), nullable=False),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('time_zone', sa.String(64), nullable=False),
        sa.Column('appointment_type', sa.String(100), nullable=False, server_default='Therapy Session'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('status', appointment_status, nullable=False, server_default='scheduled'),
        sa.Column('recurring_group_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('recurrence_pattern', recurrence_pattern, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text, nullable=True),
        sa.CheckConstraint('start_at < end_at', name='ck_appointments_time_order'),
        sa.CheckConstraint('(recurring_group_id IS NULL) = (recurrence_pattern IS NULL)',
                           name='ck_appointments_series_pair'),
    )
    op.create_index('ix_appointments_client_id', 'appointments', ['client_id'])
    op.create_index('ix_appointments_recurring_group_id', 'appointments', ['recurring_group_id'])
    op.create_index('idx_appointments_clinician_start', 'appointments', ['clinician_id', 'start_at'])


def downgrade() -> None:
    """Downgrade schema."""

    # Drop tables in reverse order (due to foreign keys)
    op.drop_index('idx_appointments_clinician_start', 'appointments')
    op.drop_index('ix_appointments_recurring_group_id', 'appointments')
    op.drop_index('ix_appointments_client_id', 'appointments')
    op.drop_table('appointments')

    op.drop_index('uq_availability_exceptions_standalone', 'availability_exceptions')
    op.drop_index('ix_availability_exceptions_clinician_id', 'availability_exceptions')
    op.drop_table('availability_exceptions')

    op.drop_index('ix_availability_rules_clinician_id', 'availability_rules')
    op.drop_table('availability_rules')

    bind = op.get_bind()
    recurrence_pattern.drop(bind, checkfirst=True)
    appointment_status.drop(bind, checkfirst=True)
    rule_status.drop(bind, checkfirst=True)
