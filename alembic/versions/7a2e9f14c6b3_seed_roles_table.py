"""seed roles table

Revision ID: 7a2e9f14c6b3
Revises: 3c1d8e52a0f4
Create Date: 2026-10-12 10:31:05.207716

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '7a2e9f14c6b3'
down_revision: Union[str, Sequence[str], None] = '3c1d8e52a0f4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(
        """
        INSERT INTO roles (name)
        VALUES ('ADMIN'), ('BUILDER'), ('BUYER')
        ON CONFLICT (name) DO NOTHING
        """
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DELETE FROM roles WHERE name IN ('ADMIN', 'BUILDER', 'BUYER')")
