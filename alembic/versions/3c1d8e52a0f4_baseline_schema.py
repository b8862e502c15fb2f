"""baseline schema: users, roles, events, stall types, stalls, buyer interests

Revision ID: 3c1d8e52a0f4
Revises:
Create Date: 2026-10-12 10:14:22.518301

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1d8e52a0f4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('phone_number', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text("timezone('utc', now())"),
                  nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('phone_number'),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'role_id'),
    )
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('event_type', sa.Text(), nullable=True),
        sa.Column('location', sa.Text(), nullable=False),
        sa.Column('city', sa.Text(), nullable=False),
        sa.Column('state', sa.Text(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('stall_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('end_date >= start_date', name='chk_event_date_range'),
        sa.CheckConstraint('stall_count >= 0', name='chk_event_stall_count_nonneg'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'stall_types',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('no_of_stalls', sa.Integer(), nullable=False),
        sa.Column('stall_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('no_of_stalls > 0', name='chk_stall_type_qty_gt0'),
        sa.CheckConstraint('stall_price >= 0', name='chk_stall_type_price_nonneg'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stall_types_event_id', 'stall_types', ['event_id'])

    op.create_table(
        'stalls',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('stall_type_id', sa.Integer(), nullable=False),
        sa.Column('stall_number', sa.Integer(), nullable=False),
        sa.Column('builder_id', sa.Integer(), nullable=True),
        sa.Column('booked_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint('stall_number > 0', name='chk_stall_number_gt0'),
        sa.CheckConstraint(
            '(builder_id IS NULL AND booked_at IS NULL) OR (builder_id IS NOT NULL AND booked_at IS NOT NULL)',
            name='chk_stall_booking_consistent'
        ),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['stall_type_id'], ['stall_types.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['builder_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'stall_number', name='uq_event_stall_number'),
    )
    op.create_index('ix_stalls_event_id', 'stalls', ['event_id'])
    op.create_index('ix_stalls_stall_type_id', 'stalls', ['stall_type_id'])
    op.create_index('ix_stalls_builder_id', 'stalls', ['builder_id'])
    op.create_index(
        'ix_stalls_free_by_type',
        'stalls',
        ['event_id', 'stall_type_id', 'stall_number'],
        postgresql_where=sa.text('builder_id IS NULL'),
    )

    op.create_table(
        'buyer_stall_interests',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('stall_type_id', sa.Integer(), nullable=False),
        sa.Column('stall_id', sa.Integer(), nullable=True),
        sa.Column('is_attended', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('attended_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['stall_type_id'], ['stall_types.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['stall_id'], ['stalls.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('buyer_id', 'event_id', 'stall_type_id', name='uq_buyer_event_stall_type'),
    )
    op.create_index('ix_buyer_stall_interests_buyer_id', 'buyer_stall_interests', ['buyer_id'])
    op.create_index('ix_buyer_stall_interests_event_id', 'buyer_stall_interests', ['event_id'])
    op.create_index('ix_buyer_stall_interests_stall_type_id', 'buyer_stall_interests', ['stall_type_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('buyer_stall_interests')
    op.drop_index('ix_stalls_free_by_type', table_name='stalls')
    op.drop_table('stalls')
    op.drop_table('stall_types')
    op.drop_table('events')
    op.drop_table('user_roles')
    op.drop_table('users')
    op.drop_table('roles')
