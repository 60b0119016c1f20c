from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from . import notifications
from .notifications import Notification
from .rules import Position
from .sessions import GameSession, SessionStatus, SessionStore


@dataclass
class GameResult:
    """A finished game, handed to the persistence layer."""
    game_id: str
    player1: str
    player2: str
    winner: Optional[str]
    reason: str
    mode: str
    difficulty: Optional[str]

    @property
    def is_draw(self) -> bool:
        return self.winner is None

    @property
    def loser(self) -> Optional[str]:
        if self.winner is None:
            return None
        return self.player2 if self.winner == self.player1 else self.player1


@dataclass
class Outcome:
    """What handling one event produced: messages to send, games to persist."""
    notifications: List[Notification] = field(default_factory=list)
    results: List[GameResult] = field(default_factory=list)

    def events(self) -> List[str]:
        return [n.event for n in self.notifications]


def finish_session(store: SessionStore, session: GameSession, winner: Optional[str],
                   reason: str, winning_cells: Optional[Sequence[Position]] = None) -> Outcome:
    """Mark the session FINISHED, build game_over and evict it."""
    session.status = SessionStatus.FINISHED
    note = notifications.game_over(session, winner, reason, winning_cells)
    p1, p2 = session.usernames
    result = GameResult(
        game_id=session.game_id,
        player1=p1,
        player2=p2,
        winner=winner,
        reason=reason,
        mode=session.mode.value,
        difficulty=session.difficulty.value if session.difficulty else None,
    )
    store.evict(session.game_id)
    return Outcome([note], [result])
