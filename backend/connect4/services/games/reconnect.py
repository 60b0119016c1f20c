"""Forfeit timers for players who drop out of a running game.

A disconnect starts a grace period; reconnecting inside it resumes the game
untouched, otherwise the opponent wins by forfeit. If the opponent is gone
too the game ends without a winner. One timer per game id.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from . import notifications
from .notifications import REASON_FORFEIT
from .outcomes import Outcome, finish_session
from .sessions import GameSession, SessionStore, same_username

logger = logging.getLogger(__name__)

DEFAULT_GRACE_SEC = 30.0


@dataclass
class ForfeitTimer:
    game_id: str
    username: str
    handle: Any


class ReconnectionSupervisor:
    def __init__(self, store: SessionStore, scheduler, grace_sec: float = DEFAULT_GRACE_SEC):
        self.store = store
        self.scheduler = scheduler
        self.grace_sec = grace_sec
        self._timers: Dict[str, ForfeitTimer] = {}

    def pending(self, game_id: str) -> Optional[ForfeitTimer]:
        return self._timers.get(game_id)

    def _schedule(self, game_id: str, username: str, delay: float) -> None:
        self.cancel(game_id)
        handle = self.scheduler.call_later(delay, self.expire, game_id, username)
        self._timers[game_id] = ForfeitTimer(game_id, username, handle)
        logger.info('[forfeit-set] game=%s user=%s in %.1fs', game_id, username, delay)

    def cancel(self, game_id: str) -> bool:
        timer = self._timers.pop(game_id, None)
        if timer is None:
            return False
        timer.handle.cancel()
        logger.info('[forfeit-cancel] game=%s user=%s', game_id, timer.username)
        return True

    def on_disconnect(self, username: str) -> Outcome:
        reg = self.store.registration(username)
        session = self.store.get(reg.game_id) if reg else None
        if session is None or not session.is_active:
            return Outcome()

        self.store.mark_disconnected(username)
        player = session.participant(username)
        logger.info('[disconnect] %s left game %s', player.username, session.game_id)

        # Both players gone: the first one to leave keeps the running timer.
        if session.game_id not in self._timers:
            self._schedule(session.game_id, player.username, self.grace_sec)

        outcome = Outcome()
        opponent = session.opponent_of(username)
        if opponent and not opponent.is_bot and not self.store.is_disconnected(opponent.username):
            outcome.notifications.append(
                notifications.opponent_disconnected(player.username, [opponent.connection])
            )
        return outcome

    def resume(self, username: str, connection: str) -> GameSession:
        """Rebind ``username`` to its running game; raises NoResumableSession."""
        session = self.store.resumable_session(username)
        self.cancel(session.game_id)
        session = self.store.reconnect(username, connection)

        opponent = session.opponent_of(username)
        if opponent and not opponent.is_bot and self.store.is_disconnected(opponent.username):
            gone_since = self.store.registration(opponent.username).disconnected_at
            remaining = max(0.0, gone_since + self.grace_sec - self.store.now())
            self._schedule(session.game_id, opponent.username, remaining)
        return session

    def expire(self, game_id: str, username: str) -> Outcome:
        timer = self._timers.get(game_id)
        if timer is not None and same_username(timer.username, username):
            del self._timers[game_id]

        session = self.store.get(game_id)
        if session is None or not session.is_active:
            logger.info('[forfeit-skip] game=%s already ended', game_id)
            return Outcome()
        if not self.store.is_disconnected(username):
            logger.info('[forfeit-skip] game=%s %s is back', game_id, username)
            return Outcome()

        opponent = session.opponent_of(username)
        assert opponent is not None, 'forfeit without an opponent'
        if not opponent.is_bot and self.store.is_disconnected(opponent.username):
            logger.info('[forfeit] both players left game %s, no winner', game_id)
            return finish_session(self.store, session, None, REASON_FORFEIT)
        logger.info('[forfeit] %s did not reconnect, %s wins game %s',
                    username, opponent.username, game_id)
        return finish_session(self.store, session, opponent.username, REASON_FORFEIT)
