from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from connect4 import db
from connect4.models import GameRecord, PlayerStats
from .errors import PersistenceFailure
from .outcomes import GameResult
from .sessions import BOT_USERNAME


def ensure_player_exists(username: str) -> Optional[PlayerStats]:
    """Return the stats row for ``username``, adding it to the session if new.

    The bot never gets a row.
    """
    if username == BOT_USERNAME:
        return None
    player = db.session.get(PlayerStats, username)
    if player is None:
        player = PlayerStats(
            username=username, wins=0, losses=0, draws=0, games_played=0,
            wins_vs_bot_easy=0, wins_vs_bot_medium=0, wins_vs_bot_hard=0,
            losses_vs_bot_easy=0, losses_vs_bot_medium=0, losses_vs_bot_hard=0,
        )
        db.session.add(player)
        db.session.flush()
    return player


def _bump(player: PlayerStats, column: str) -> None:
    setattr(player, column, (getattr(player, column) or 0) + 1)


def record_outcome(winner: str, loser: str, is_draw: bool, mode: str = 'PVP',
                   difficulty: Optional[str] = None) -> None:
    """Update cumulative counters for one finished game.

    For a draw ``winner`` and ``loser`` are simply the two players. Games
    against the bot only touch the human's row, with per-tier counters
    (tier defaults to medium).
    """
    if BOT_USERNAME in (winner, loser):
        human_name = loser if winner == BOT_USERNAME else winner
        human = ensure_player_exists(human_name)
        tier = (difficulty or 'MEDIUM').lower()
        _bump(human, 'games_played')
        if is_draw:
            _bump(human, 'draws')
        elif winner == human_name:
            _bump(human, 'wins')
            _bump(human, f'wins_vs_bot_{tier}')
        else:
            _bump(human, 'losses')
            _bump(human, f'losses_vs_bot_{tier}')
        db.session.commit()
        return

    first = ensure_player_exists(winner)
    second = ensure_player_exists(loser)
    _bump(first, 'games_played')
    _bump(second, 'games_played')
    if is_draw:
        _bump(first, 'draws')
        _bump(second, 'draws')
    else:
        _bump(first, 'wins')
        _bump(second, 'losses')
    db.session.commit()


def record_game(result: GameResult) -> None:
    """Store the game row and update both players' counters.

    Raises PersistenceFailure on any database error, after rolling back.
    """
    try:
        db.session.add(GameRecord(
            id=result.game_id,
            player1=result.player1,
            player2=result.player2,
            winner=result.winner,
            ended_reason=result.reason,
            mode=result.mode,
            difficulty=result.difficulty,
        ))
        if result.is_draw:
            record_outcome(result.player1, result.player2, True, result.mode, result.difficulty)
        else:
            record_outcome(result.winner, result.loser, False, result.mode, result.difficulty)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceFailure(f'game {result.game_id}: {exc}') from exc
