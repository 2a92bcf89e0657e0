"""Time slots and trainer availability windows

Revision ID: 20261012_0002
Revises: 20261012_0001
Create Date: 2026-10-12 09:30:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261012_0002'
down_revision = '20261012_0001'
branch_labels = None
depends_on = None


def _index_exists(inspector, table_name: str, index_name: str) -> bool:
    return any(idx.get('name') == index_name for idx in inspector.get_indexes(table_name))


def _table_exists(inspector, table_name: str) -> bool:
    return table_name in set(inspector.get_table_names())


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _table_exists(inspector, 'time_slots'):
        op.create_table(
            'time_slots',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('tenant_id', sa.Integer(), nullable=False),
            sa.Column('session_id', sa.Integer(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('start_time', sa.Time(), nullable=False),
            sa.Column('end_time', sa.Time(), nullable=False),
            sa.Column('delivery_mode', sa.String(length=20), nullable=False, server_default='on_site'),
            sa.Column('trainer_id', sa.Integer(), nullable=True),
            sa.Column('room_id', sa.Integer(), nullable=True),
            sa.Column('archived_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
            sa.ForeignKeyConstraint(['session_id'], ['training_sessions.id']),
            sa.ForeignKeyConstraint(['trainer_id'], ['trainers.id']),
            sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    if not _table_exists(inspector, 'availability_windows'):
        op.create_table(
            'availability_windows',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('tenant_id', sa.Integer(), nullable=False),
            sa.Column('trainer_id', sa.Integer(), nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('start_time', sa.Time(), nullable=False),
            sa.Column('end_time', sa.Time(), nullable=False),
            sa.Column('kind', sa.String(length=20), nullable=False, server_default='available'),
            sa.Column('recurrence', sa.String(length=20), nullable=False, server_default='none'),
            sa.Column('note', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
            sa.ForeignKeyConstraint(['trainer_id'], ['trainers.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    inspector = sa.inspect(bind)

    if not _index_exists(inspector, 'time_slots', 'ix_time_slots_tenant_date_start'):
        op.create_index('ix_time_slots_tenant_date_start', 'time_slots', ['tenant_id', 'date', 'start_time'])
    if not _index_exists(inspector, 'time_slots', 'ix_time_slots_trainer_date'):
        op.create_index('ix_time_slots_trainer_date', 'time_slots', ['trainer_id', 'date'])
    if not _index_exists(inspector, 'time_slots', 'ix_time_slots_room_date'):
        op.create_index('ix_time_slots_room_date', 'time_slots', ['room_id', 'date'])
    if not _index_exists(inspector, 'time_slots', 'ix_time_slots_session_id'):
        op.create_index('ix_time_slots_session_id', 'time_slots', ['session_id'])
    if not _index_exists(inspector, 'availability_windows', 'ix_availability_windows_trainer_date'):
        op.create_index('ix_availability_windows_trainer_date', 'availability_windows', ['trainer_id', 'date'])
    if not _index_exists(inspector, 'availability_windows', 'ix_availability_windows_tenant_date'):
        op.create_index('ix_availability_windows_tenant_date', 'availability_windows', ['tenant_id', 'date'])


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if _table_exists(inspector, 'availability_windows'):
        op.drop_table('availability_windows')
    if _table_exists(inspector, 'time_slots'):
        op.drop_table('time_slots')
