"""create debt edges table

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a7d9b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'debt_edges',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('group_id', sa.String(), nullable=False),
        sa.Column('from_user', sa.String(), nullable=False),
        sa.Column('to_user', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),

        sa.UniqueConstraint('group_id', 'from_user', 'to_user', name='uq_debt_edge_pair'),
        sa.CheckConstraint('from_user <> to_user', name='ck_debt_edge_no_self_loop'),
    )
    op.create_index('ix_debt_edges_group_id', 'debt_edges', ['group_id'])

def downgrade() -> None:
    op.drop_index('ix_debt_edges_group_id', table_name='debt_edges')
    op.drop_table('debt_edges')
