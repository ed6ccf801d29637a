"""create movie and room tables

Revision ID: 5c2d7e1f9a10
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d7e1f9a10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    tables = set(sa.inspect(bind).get_table_names())
    if 'movie' not in tables:
        op.create_table(
            'movie',
            sa.Column('id', sa.String(length=64), primary_key=True),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('image_url', sa.Text(), nullable=False),
            sa.Column('year', sa.Integer(), nullable=False),
            sa.Column('genre', sa.String(length=64), nullable=False),
        )
    if 'room' not in tables:
        op.create_table(
            'room',
            sa.Column('id', sa.String(length=32), primary_key=True),
            sa.Column('state', sa.Text(), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        )


def downgrade():
    op.drop_table('room')
    op.drop_table('movie')
