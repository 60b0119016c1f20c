"""Outbound event payloads.

The client depends on these shapes; every game payload goes through
``build_game_payload`` so the field set stays identical across events.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .errors import IdentityConflict
from .rules import Position
from .sessions import GameSession

WAITING_FOR_OPPONENT = 'waiting_for_opponent'
GAME_START = 'game_start'
GAME_UPDATE = 'game_update'
GAME_OVER = 'game_over'
GAME_RESUME = 'game_resume'
OPPONENT_DISCONNECTED = 'opponent_disconnected'
OPPONENT_RECONNECTED = 'opponent_reconnected'
JOIN_ERROR = 'join_error'
ERROR = 'error'

REASON_WIN = 'win'
REASON_DRAW = 'draw'
REASON_FORFEIT = 'forfeit'

_UNSET = object()


@dataclass
class Notification:
    event: str
    payload: Dict[str, Any]
    to: List[str] = field(default_factory=list)


def build_game_payload(session: GameSession, reason: Optional[str] = None,
                       winner=_UNSET,
                       winning_cells: Optional[Sequence[Position]] = None) -> Dict[str, Any]:
    payload = {
        'gameId': session.game_id,
        'players': session.usernames,
        'currentTurn': session.current_turn,
        'board': session.board.to_list(),
        'mode': session.mode.value,
        'difficulty': session.difficulty.value if session.difficulty else None,
    }
    if winner is not _UNSET:
        payload['winner'] = winner
    if reason:
        payload['reason'] = reason
    if winning_cells:
        payload['winningCells'] = [cell.to_dict() for cell in winning_cells]
    return payload


def waiting_for_opponent(connection: str) -> Notification:
    return Notification(WAITING_FOR_OPPONENT, {}, [connection])


def game_start(session: GameSession) -> Notification:
    return Notification(GAME_START, build_game_payload(session), session.connections())


def game_update(session: GameSession) -> Notification:
    return Notification(GAME_UPDATE, build_game_payload(session), session.connections())


def game_resume(session: GameSession, connection: str) -> Notification:
    return Notification(GAME_RESUME, build_game_payload(session), [connection])


def game_over(session: GameSession, winner: Optional[str], reason: str,
              winning_cells: Optional[Sequence[Position]] = None) -> Notification:
    payload = build_game_payload(session, reason=reason, winner=winner,
                                 winning_cells=winning_cells)
    return Notification(GAME_OVER, payload, session.connections())


def opponent_disconnected(username: str, connections: List[str]) -> Notification:
    return Notification(OPPONENT_DISCONNECTED, {'username': username}, connections)


def opponent_reconnected(username: str, connections: List[str]) -> Notification:
    return Notification(OPPONENT_RECONNECTED, {'username': username}, connections)


def join_error(connection: str, exc: IdentityConflict) -> Notification:
    return Notification(JOIN_ERROR, {'code': exc.code, 'message': exc.message}, [connection])


def error(connection: str, message: str) -> Notification:
    return Notification(ERROR, {'message': message}, [connection])
