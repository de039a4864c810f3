"""Initial attendance schema: employees, attendance records, audit logs

Revision ID: 001_initial_attendance
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_attendance'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = set(inspector.get_table_names())

    # Use CURRENT_TIMESTAMP so it works on both SQLite and Postgres
    if 'employees' not in existing:
        op.create_table(
            'employees',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('emp_code', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('department', sa.String(), nullable=True),
            sa.Column('position', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=False, server_default='EMPLOYEE'),
            sa.Column('password_hash', sa.String(), nullable=True),
            sa.Column('wage', sa.Numeric(10, 2), nullable=True),
            sa.Column('overtime_rate', sa.Numeric(4, 2), nullable=True),
            sa.Column('join_date', sa.Date(), nullable=False),
            sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_employees_id'), 'employees', ['id'], unique=False)
        op.create_index(op.f('ix_employees_emp_code'), 'employees', ['emp_code'], unique=True)

    if 'attendance_records' not in existing:
        op.create_table(
            'attendance_records',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('employee_id', sa.Integer(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('time_in', sa.Time(), nullable=True),
            sa.Column('time_out', sa.Time(), nullable=True),
            sa.Column('break_start', sa.Time(), nullable=True),
            sa.Column('break_end', sa.Time(), nullable=True),
            sa.Column('total_hours', sa.Numeric(5, 2), nullable=True),
            sa.Column('overtime_hours', sa.Numeric(5, 2), nullable=True),
            sa.Column('status', sa.String(), nullable=False, server_default='present'),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
            sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_records_employee_date'),
        )
        op.create_index(op.f('ix_attendance_records_id'), 'attendance_records', ['id'], unique=False)
        op.create_index(op.f('ix_attendance_records_employee_id'), 'attendance_records', ['employee_id'], unique=False)
        op.create_index(op.f('ix_attendance_records_date'), 'attendance_records', ['date'], unique=False)

    if 'audit_logs' not in existing:
        op.create_table(
            'audit_logs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('actor_id', sa.Integer(), nullable=False),
            sa.Column('action', sa.String(), nullable=False),
            sa.Column('entity_type', sa.String(), nullable=False),
            sa.Column('entity_id', sa.Integer(), nullable=True),
            sa.Column('meta_json', sa.JSON(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
            sa.ForeignKeyConstraint(['actor_id'], ['employees.id'], ),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_audit_logs_id'), table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index(op.f('ix_attendance_records_date'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_employee_id'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_id'), table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index(op.f('ix_employees_emp_code'), table_name='employees')
    op.drop_index(op.f('ix_employees_id'), table_name='employees')
    op.drop_table('employees')
