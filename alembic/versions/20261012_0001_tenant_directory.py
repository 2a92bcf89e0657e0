"""Tenants, training sessions, trainers and rooms

Revision ID: 20261012_0001
Revises:
Create Date: 2026-10-12 09:00:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261012_0001'
down_revision = None
branch_labels = None
depends_on = None


def _index_exists(inspector, table_name: str, index_name: str) -> bool:
    return any(idx.get('name') == index_name for idx in inspector.get_indexes(table_name))


def _table_exists(inspector, table_name: str) -> bool:
    return table_name in set(inspector.get_table_names())


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _table_exists(inspector, 'tenants'):
        op.create_table(
            'tenants',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=180), nullable=False, server_default='default-tenant'),
            sa.Column('slug', sa.String(length=120), nullable=False),
            sa.Column('timezone', sa.String(length=60), nullable=False, server_default='Europe/Paris'),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('slug', name='uq_tenants_slug'),
        )

    if not _table_exists(inspector, 'training_sessions'):
        op.create_table(
            'training_sessions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('tenant_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=200), nullable=False),
            sa.Column('display_number', sa.String(length=40), nullable=False, server_default=''),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
            sa.Column('starts_on', sa.Date(), nullable=True),
            sa.Column('archived_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    if not _table_exists(inspector, 'trainers'):
        op.create_table(
            'trainers',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('tenant_id', sa.Integer(), nullable=False),
            sa.Column('first_name', sa.String(length=120), nullable=False, server_default=''),
            sa.Column('last_name', sa.String(length=120), nullable=False, server_default=''),
            sa.Column('archived_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    if not _table_exists(inspector, 'rooms'):
        op.create_table(
            'rooms',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('tenant_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=120), nullable=False),
            sa.Column('capacity', sa.Integer(), nullable=True),
            sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
            sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
            sa.PrimaryKeyConstraint('id'),
        )

    inspector = sa.inspect(bind)

    if not _index_exists(inspector, 'training_sessions', 'ix_training_sessions_tenant_status'):
        op.create_index('ix_training_sessions_tenant_status', 'training_sessions', ['tenant_id', 'status'])
    if not _index_exists(inspector, 'trainers', 'ix_trainers_tenant_id'):
        op.create_index('ix_trainers_tenant_id', 'trainers', ['tenant_id'])
    if not _index_exists(inspector, 'rooms', 'ix_rooms_tenant_id'):
        op.create_index('ix_rooms_tenant_id', 'rooms', ['tenant_id'])


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name in ('rooms', 'trainers', 'training_sessions', 'tenants'):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)
