"""stall number high-water mark on events, stalls keep their stall type

Revision ID: 5f3a9b2d7e10
Revises: d4b07c3e91a8
Create Date: 2026-10-19 09:12:40.118274

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f3a9b2d7e10'
down_revision: Union[str, Sequence[str], None] = 'd4b07c3e91a8'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column('events', sa.Column('last_stall_number', sa.Integer(), server_default='0', nullable=False))
    op.execute(
        """
        UPDATE events e
        SET last_stall_number = s.max_number
        FROM (SELECT event_id, MAX(stall_number) AS max_number FROM stalls GROUP BY event_id) s
        WHERE s.event_id = e.id
        """
    )
    op.create_check_constraint('chk_event_last_stall_number_nonneg', 'events', 'last_stall_number >= 0')

    # NO ACTION (checked at statement end) lets an event delete cascade through both tables,
    # while deleting a stall type that still owns stalls fails
    op.drop_constraint('stalls_stall_type_id_fkey', 'stalls', type_='foreignkey')
    op.create_foreign_key(
        'stalls_stall_type_id_fkey', 'stalls', 'stall_types', ['stall_type_id'], ['id'], ondelete='NO ACTION'
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_constraint('stalls_stall_type_id_fkey', 'stalls', type_='foreignkey')
    op.create_foreign_key(
        'stalls_stall_type_id_fkey', 'stalls', 'stall_types', ['stall_type_id'], ['id'], ondelete='CASCADE'
    )
    op.drop_constraint('chk_event_last_stall_number_nonneg', 'events', type_='check')
    op.drop_column('events', 'last_stall_number')
