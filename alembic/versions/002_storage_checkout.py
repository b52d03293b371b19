"""Storage checkout state

Revision ID: 002
Revises: 001
Create Date: 2024-02-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        'storage_reservations',
        sa.Column('checkout_status', sa.String(30), nullable=False, server_default='active'),
    )
    op.add_column('storage_reservations', sa.Column('checkout_requested_at', sa.DateTime()))
    op.add_column('storage_reservations', sa.Column('checkout_completed_at', sa.DateTime()))
    op.add_column('storage_reservations', sa.Column('checkout_notes', sa.Text()))
    op.add_column('storage_reservations', sa.Column('checkout_denial_reason', sa.String(255)))

    op.create_index('ix_storage_reservations_checkout_status', 'storage_reservations', ['checkout_status'])


def downgrade() -> None:
    op.drop_index('ix_storage_reservations_checkout_status', table_name='storage_reservations')

    with op.batch_alter_table('storage_reservations') as batch_op:
        batch_op.drop_column('checkout_denial_reason')
        batch_op.drop_column('checkout_notes')
        batch_op.drop_column('checkout_completed_at')
        batch_op.drop_column('checkout_requested_at')
        batch_op.drop_column('checkout_status')
