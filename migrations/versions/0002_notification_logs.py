"""notification logs for outbound LINE messages

Revision ID: 0002_notification_logs
Revises: 0001_initial_schema
Create Date: 2025-07-15 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_notification_logs'
down_revision = '0001_initial_schema'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'notification_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_line_id', sa.String(100), nullable=False),
        sa.Column(
            'reservation_id', sa.Integer(), sa.ForeignKey('reservations.id', ondelete='SET NULL'), nullable=True
        ),
        sa.Column('notification_type', sa.String(30), nullable=False),
        sa.Column('message_content', sa.Text(), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index('ix_notification_logs_id', 'notification_logs', ['id'])
    op.create_index('ix_notification_logs_customer_line_id', 'notification_logs', ['customer_line_id'])
    op.create_index('ix_notification_logs_reservation_id', 'notification_logs', ['reservation_id'])


def downgrade():
    op.drop_table('notification_logs')
