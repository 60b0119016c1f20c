"""create players and games tables

Revision ID: 4c1d2e7f9a01
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1d2e7f9a01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'players' not in existing_tables:
        op.create_table(
            'players',
            sa.Column('username', sa.String(length=64), primary_key=True),
            sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('losses', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('draws', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('games_played', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        )

    if 'games' not in existing_tables:
        op.create_table(
            'games',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('player1', sa.String(length=64), nullable=False),
            sa.Column('player2', sa.String(length=64), nullable=False),
            sa.Column('winner', sa.String(length=64), nullable=True),
            sa.Column('ended_reason', sa.String(length=16), nullable=True),
            sa.Column('mode', sa.String(length=8), nullable=True),
            sa.Column('difficulty', sa.String(length=8), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True, server_default=sa.func.now()),
        )


def downgrade():
    op.drop_table('games')
    op.drop_table('players')
