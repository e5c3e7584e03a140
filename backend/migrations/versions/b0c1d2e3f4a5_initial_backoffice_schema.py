"""initial backoffice schema

Revision ID: b0c1d2e3f4a5
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the back-office core schema:
- counters: atomic (series, period) sequence counters
- invoices / invoice_items: billing with derived totals
- tickets / ticket_comments: support tickets with append-only threads
- attendance_logs: daily punch in/out
- leave_requests: leave applications and decisions
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b0c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # counters: one row per (series, period); value only increases
    # ============================================================================
    op.create_table(
        'counters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('series', sa.String(length=32), nullable=False),
        sa.Column('period', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('series', 'period', name='uq_counters_series_period'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # invoices
    # ============================================================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('client_ref', sa.String(length=64), nullable=False),
        sa.Column('project_ref', sa.String(length=64), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_rate', sa.Numeric(5, 2), nullable=True),
        sa.Column('tax_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('terms', sa.String(length=2000), nullable=True),
        sa.Column('invoice_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_invoices_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_invoices_client_ref', 'invoices', ['client_ref'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'])
    op.create_index('ix_invoices_is_visible', 'invoices', ['is_visible'])

    op.create_table(
        'invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('service_name', sa.String(length=255), nullable=False),
        sa.Column('service_type', sa.String(length=16), nullable=False),
        sa.Column('hours', sa.Numeric(10, 2), nullable=True),
        sa.Column('rate_per_hour', sa.Numeric(12, 2), nullable=True),
        sa.Column('fixed_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('service_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('service_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_invoice_items_invoice', 'invoice_items', ['invoice_id', 'position'])

    # ============================================================================
    # tickets
    # ============================================================================
    op.create_table(
        'tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('client_ref', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('assigned_employee_ref', sa.String(length=64), nullable=True),
        sa.Column('client_resolved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('client_resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_tickets_code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_tickets_client_status', 'tickets', ['client_ref', 'status'])
    op.create_index('ix_tickets_priority', 'tickets', ['priority'])
    op.create_index('ix_tickets_assigned_employee_ref', 'tickets', ['assigned_employee_ref'])

    op.create_table(
        'ticket_comments',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('ticket_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('author_ref', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['ticket_id'], ['tickets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ticket_id', 'position', name='uq_ticket_comments_position'),
    )
    op.create_index('ix_ticket_comments_ticket_id', 'ticket_comments', ['ticket_id'])

    # ============================================================================
    # attendance_logs: at most one log per employee per day
    # ============================================================================
    op.create_table(
        'attendance_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_ref', sa.String(length=64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('punch_in', sa.DateTime(timezone=True), nullable=False),
        sa.Column('punch_out', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_hours', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_ref', 'date', name='uq_attendance_employee_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_attendance_date', 'attendance_logs', ['date'])
    op.create_index('ix_attendance_employee_open', 'attendance_logs', ['employee_ref', 'punch_out'])

    # ============================================================================
    # leave_requests
    # ============================================================================
    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_ref', sa.String(length=64), nullable=False),
        sa.Column('leave_type', sa.String(length=32), nullable=False),
        sa.Column('from_date', sa.Date(), nullable=False),
        sa.Column('to_date', sa.Date(), nullable=False),
        sa.Column('number_of_days', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('to_date >= from_date', name='ck_leave_requests_range'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_leave_requests_employee_ref', 'leave_requests', ['employee_ref'])
    op.create_index('ix_leave_requests_status', 'leave_requests', ['status'])


def downgrade():
    op.drop_table('leave_requests')
    op.drop_table('attendance_logs')
    op.drop_table('ticket_comments')
    op.drop_table('tickets')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('counters')
