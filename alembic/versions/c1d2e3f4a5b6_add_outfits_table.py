"""add outfits table

Revision ID: c1d2e3f4a5b6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c1d2e3f4a5b6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Ledger of try-on results, one row per (user, person photo, garment photo)
    op.create_table(
        'outfits',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('man_image_path', sa.Text(), nullable=False),
        sa.Column('cloth_image_path', sa.Text(), nullable=False),
        sa.Column('result_image_path', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            'user_id', 'man_image_path', 'cloth_image_path',
            name='uq_outfits_user_images',
        ),
    )

    # Create index on user_id for history listing
    op.create_index('ix_outfits_user_id', 'outfits', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_outfits_user_id', table_name='outfits')
    op.drop_table('outfits')
