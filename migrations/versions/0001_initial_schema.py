"""initial schema: catalog, customers, schedules and reservations

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-07-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        'programs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('default_duration', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('color_class', sa.String(50), nullable=True),
        sa.Column('text_color_class', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_audit_columns(),
        sa.UniqueConstraint('name', name='uq_programs_name'),
    )
    op.create_index('ix_programs_id', 'programs', ['id'])

    op.create_table(
        'instructors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_image_url', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_audit_columns(),
    )
    op.create_index('ix_instructors_id', 'instructors', ['id'])

    op.create_table(
        'studios',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_audit_columns(),
        sa.CheckConstraint('capacity > 0', name='check_studio_capacity_positive'),
    )
    op.create_index('ix_studios_id', 'studios', ['id'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('name_kana', sa.String(255), nullable=True),
        sa.Column('line_id', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('membership_type', sa.String(50), server_default='regular'),
        sa.Column('cancellation_count', sa.Integer(), server_default='0'),
        sa.Column('last_booking_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_audit_columns(),
    )
    op.create_index('ix_customers_id', 'customers', ['id'])
    op.create_index('ix_customers_line_id', 'customers', ['line_id'], unique=True)

    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('program_id', sa.Integer(), sa.ForeignKey('programs.id'), nullable=False),
        sa.Column('instructor_id', sa.Integer(), sa.ForeignKey('instructors.id'), nullable=False),
        sa.Column('studio_id', sa.Integer(), sa.ForeignKey('studios.id'), nullable=False),
        sa.Column('recurring_group_id', sa.String(36), nullable=True),
        sa.Column('recurring_type', sa.String(20), nullable=False, server_default='none'),
        sa.Column('recurring_end_date', sa.Date(), nullable=True),
        sa.Column('recurring_count', sa.Integer(), nullable=True),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        *_audit_columns(),
        sa.CheckConstraint('end_time > start_time', name='check_schedule_time_order'),
        sa.CheckConstraint('capacity > 0', name='check_schedule_capacity_positive'),
    )
    op.create_index('ix_schedules_id', 'schedules', ['id'])
    op.create_index('ix_schedules_date', 'schedules', ['date'])
    op.create_index('ix_schedules_recurring_group_id', 'schedules', ['recurring_group_id'])
    op.create_index('ix_schedules_studio_date', 'schedules', ['studio_id', 'date'])

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'schedule_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('booking_type', sa.String(20), nullable=False, server_default='advance'),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('synced_to_sheets', sa.Boolean(), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint('schedule_id', 'customer_id', name='uq_reservation_schedule_customer'),
    )
    op.create_index('ix_reservations_id', 'reservations', ['id'])
    op.create_index('ix_reservations_schedule_id', 'reservations', ['schedule_id'])
    op.create_index('ix_reservations_customer_id', 'reservations', ['customer_id'])

    # Solo PostgreSQL: dos clases activas no pueden solaparse en la misma sala
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
        op.execute(
            """
            ALTER TABLE schedules
            ADD CONSTRAINT excl_schedules_studio_overlap
            EXCLUDE USING gist (
                studio_id WITH =,
                date WITH =,
                tsrange(date + start_time, date + end_time) WITH &&
            ) WHERE (NOT is_cancelled)
            """
        )


def downgrade():
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('ALTER TABLE schedules DROP CONSTRAINT IF EXISTS excl_schedules_studio_overlap')

    op.drop_table('reservations')
    op.drop_table('schedules')
    op.drop_table('customers')
    op.drop_table('studios')
    op.drop_table('instructors')
    op.drop_table('programs')
