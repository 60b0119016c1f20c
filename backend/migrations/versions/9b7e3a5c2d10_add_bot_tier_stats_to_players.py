"""add per-difficulty wins/losses vs bot to players

Revision ID: 9b7e3a5c2d10
Revises: 4c1d2e7f9a01
Create Date: 2026-10-17 00:10:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9b7e3a5c2d10'
down_revision = '4c1d2e7f9a01'
branch_labels = None
depends_on = None

TIER_COLUMNS = [
    f'{outcome}_vs_bot_{tier}'
    for outcome in ('wins', 'losses')
    for tier in ('easy', 'medium', 'hard')
]


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'players' not in set(insp.get_table_names()):
        return

    # Older databases may already carry some of these columns
    player_cols = {c['name'] for c in insp.get_columns('players')}
    for name in TIER_COLUMNS:
        if name not in player_cols:
            op.add_column('players', sa.Column(name, sa.Integer(), nullable=False, server_default='0'))


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    player_cols = {c['name'] for c in insp.get_columns('players')}
    for name in reversed(TIER_COLUMNS):
        if name in player_cols:
            op.drop_column('players', name)
