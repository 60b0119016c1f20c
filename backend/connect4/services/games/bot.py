"""Move selection for the computer opponent.

Three tiers: EASY plays a random legal column, MEDIUM follows a fixed rule
priority (win, block, center, leftmost) and HARD scores every column with a
two-ply lookahead. Every candidate is simulated on a copy of the board; the
board passed in is never modified.
"""
import logging
import random
from typing import Optional

from .rules import (
    CENTER_COLUMN,
    Board,
    apply_move,
    count_connected,
    detect_win,
    valid_columns,
)

logger = logging.getLogger(__name__)

WIN_SCORE = 10000
BLOCK_BONUS = 500
ALLOWS_WIN_PENALTY = 800
THREAT_BONUS = 100
CENTER_WEIGHT = 10
CONNECTED_WEIGHT = 5


def _wins_with(board: Board, column: int, token: str) -> bool:
    scratch = board.copy()
    position = apply_move(scratch, column, token)
    return detect_win(scratch, position, token) is not None


def _winning_column(board: Board, token: str) -> Optional[int]:
    for col in valid_columns(board):
        if _wins_with(board, col, token):
            return col
    return None


def random_move(board: Board, rng=random) -> Optional[int]:
    columns = valid_columns(board)
    if not columns:
        return None
    return rng.choice(columns)


def medium_move(board: Board, me: str, opponent: str) -> Optional[int]:
    columns = valid_columns(board)
    if not columns:
        return None

    win = _winning_column(board, me)
    if win is not None:
        return win

    block = _winning_column(board, opponent)
    if block is not None:
        return block

    if CENTER_COLUMN in columns:
        return CENTER_COLUMN
    return columns[0]


def score_move(board: Board, column: int, me: str, opponent: str) -> int:
    """Heuristic value of playing ``column`` for ``me``; higher is better."""
    after = board.copy()
    position = apply_move(after, column, me)
    if detect_win(after, position, me):
        return WIN_SCORE

    score = (3 - abs(column - CENTER_COLUMN)) * CENTER_WEIGHT

    if _wins_with(board, column, opponent):
        score += BLOCK_BONUS

    replies = valid_columns(after)
    if any(_wins_with(after, reply, opponent) for reply in replies):
        score -= ALLOWS_WIN_PENALTY

    for reply in replies:
        answered = after.copy()
        apply_move(answered, reply, opponent)
        if _winning_column(answered, me) is not None:
            score += THREAT_BONUS

    score += count_connected(after, position, me) * CONNECTED_WEIGHT
    return score


def hard_move(board: Board, me: str, opponent: str) -> Optional[int]:
    columns = valid_columns(board)
    if not columns:
        return None
    scored = [(col, score_move(board, col, me, opponent)) for col in columns]
    # Stable sort keeps the lowest column among equal scores.
    scored.sort(key=lambda item: item[1], reverse=True)
    logger.debug('hard move scores: %s', scored)
    return scored[0][0]


def choose_move(board: Board, me: str, opponent: str, tier='MEDIUM') -> Optional[int]:
    """Pick a column for ``me``, or None when the board has no legal column."""
    tier = getattr(tier, 'value', tier)
    if tier == 'EASY':
        return random_move(board)
    if tier == 'HARD':
        return hard_move(board, me, opponent)
    return medium_move(board, me, opponent)
