"""Event dispatcher for the match server.

``GameProtocol`` takes inbound client events one at a time, drives the
session store, rules and bot, and returns an ``Outcome`` listing the
notifications to send and the finished games to persist. It never talks to
the transport directly; delayed work (bot replies, forfeits) goes through the
injected scheduler, whose callbacks return outcomes of their own.

The scheduler needs a single method::

    call_later(delay_sec, callback, *args) -> handle   # handle.cancel()
"""
import logging
from typing import Any, Dict, Optional

from . import bot, notifications
from .errors import IdentityConflict, InvalidMove, NoResumableSession, NotYourTurn, ValidationError
from .notifications import REASON_DRAW, REASON_WIN
from .outcomes import Outcome, finish_session
from .reconnect import DEFAULT_GRACE_SEC, ReconnectionSupervisor
from .rules import COLS, Position, apply_move, detect_win, is_full, is_valid_column
from .sessions import (
    BOT_USERNAME,
    Difficulty,
    GameMode,
    GameSession,
    SessionStore,
    same_username,
)

logger = logging.getLogger(__name__)

DEFAULT_BOT_DELAY_SEC = 0.7

JOIN_GAME = 'join_game'
MAKE_MOVE = 'make_move'
DISCONNECT = 'disconnect'


def clean_username(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError('Username required')
    username = raw.strip()
    if same_username(username, BOT_USERNAME):
        raise ValidationError('Username is reserved')
    return username


def parse_mode(raw) -> GameMode:
    if raw is None:
        return GameMode.PVP
    try:
        return GameMode(str(raw).upper())
    except ValueError:
        raise ValidationError(f'Unknown game mode: {raw}')


def parse_difficulty(raw) -> Difficulty:
    try:
        return Difficulty(str(raw).upper())
    except ValueError:
        return Difficulty.MEDIUM


class GameProtocol:
    def __init__(self, scheduler, store: Optional[SessionStore] = None,
                 bot_delay_sec: float = DEFAULT_BOT_DELAY_SEC,
                 grace_sec: float = DEFAULT_GRACE_SEC,
                 choose_move=bot.choose_move):
        self.store = store or SessionStore()
        self.scheduler = scheduler
        self.bot_delay_sec = bot_delay_sec
        self.supervisor = ReconnectionSupervisor(self.store, scheduler, grace_sec)
        self.choose_move = choose_move
        self._handlers = {
            JOIN_GAME: self.join,
            MAKE_MOVE: self.move,
            DISCONNECT: lambda connection, data=None: self.disconnect(connection),
        }

    def dispatch(self, event: str, connection: str, data=None) -> Outcome:
        handler = self._handlers.get(event)
        if handler is None:
            raise ValueError(f'unsupported event: {event}')
        return handler(connection, data)

    # ---- join ----

    def join(self, connection: str, data: Optional[Dict[str, Any]] = None) -> Outcome:
        data = data if isinstance(data, dict) else {}
        try:
            username = clean_username(data.get('username'))
            mode = parse_mode(data.get('mode'))
        except ValidationError as exc:
            return Outcome([notifications.error(connection, exc.message)])
        difficulty = parse_difficulty(data.get('difficulty', Difficulty.MEDIUM.value))

        if self.store.is_waiting(username):
            logger.info('[reject] %s is already waiting for an opponent', username)
            return Outcome([notifications.join_error(connection, IdentityConflict())])

        try:
            session = self.supervisor.resume(username, connection)
        except NoResumableSession:
            pass
        else:
            player = session.participant(username)
            logger.info('[resume] %s rejoined game %s', player.username, session.game_id)
            outcome = Outcome([notifications.game_resume(session, connection)])
            opponent = session.opponent_of(username)
            if not opponent.is_bot and not self.store.is_disconnected(opponent.username):
                outcome.notifications.append(
                    notifications.opponent_reconnected(player.username, [opponent.connection])
                )
            return outcome

        try:
            self.store.reject_if_active_elsewhere(username)
        except IdentityConflict as exc:
            logger.info('[reject] %s already plays in another session', username)
            return Outcome([notifications.join_error(connection, exc)])

        if mode == GameMode.BOT:
            session = self.store.start_bot_session(username, connection, difficulty)
            logger.info('[start] bot game %s for %s (difficulty: %s)',
                        session.game_id, username, difficulty.value)
            return Outcome([notifications.game_start(session)])

        try:
            session = self.store.enqueue_or_match(username, connection)
        except IdentityConflict as exc:
            return Outcome([notifications.join_error(connection, exc)])
        if session is None:
            logger.info('[queue] %s is waiting for a PVP opponent', username)
            return Outcome([notifications.waiting_for_opponent(connection)])
        logger.info('[start] PVP game %s: %s vs %s', session.game_id, *session.usernames)
        return Outcome([notifications.game_start(session)])

    # ---- moves ----

    def move(self, connection: str, data: Optional[Dict[str, Any]] = None) -> Outcome:
        data = data if isinstance(data, dict) else {}
        session = self.store.get(data.get('gameId'))
        if session is None or not session.is_active:
            return Outcome()

        username = data.get('username')
        if not isinstance(username, str) or not same_username(username, session.current_turn):
            return Outcome([notifications.error(connection, NotYourTurn().message)])

        mover = session.current_turn
        try:
            position = apply_move(session.board, data.get('column'), mover)
        except InvalidMove as exc:
            return Outcome([notifications.error(connection, exc.message)])
        self.store.touch(session, mover)
        return self._after_move(session, mover, position)

    def _after_move(self, session: GameSession, mover: str, position: Position) -> Outcome:
        winning_cells = detect_win(session.board, position, mover)
        if winning_cells:
            return self._finish(session, mover, REASON_WIN, winning_cells)
        if is_full(session.board):
            return self._finish(session, None, REASON_DRAW)

        session.switch_turn()
        if session.current_turn == BOT_USERNAME:
            self.scheduler.call_later(self.bot_delay_sec, self.bot_turn, session.game_id)
        return Outcome([notifications.game_update(session)])

    def bot_turn(self, game_id: str) -> Outcome:
        session = self.store.get(game_id)
        if session is None or not session.is_active or session.current_turn != BOT_USERNAME:
            logger.info('[bot] game %s no longer waiting on the bot, skipping', game_id)
            return Outcome()

        human = session.opponent_of(BOT_USERNAME)
        column = self.choose_move(session.board.copy(), BOT_USERNAME, human.username,
                                  session.difficulty)
        position = None
        if column is not None:
            try:
                position = apply_move(session.board, column, BOT_USERNAME)
            except InvalidMove:
                logger.warning('[bot] chose illegal column %r in game %s', column, game_id)

        if position is None:
            for col in range(COLS):
                if is_valid_column(session.board, col):
                    position = apply_move(session.board, col, BOT_USERNAME)
                    logger.info('[bot] fell back to column %s', col)
                    break

        if position is None:
            logger.info('[bot] no legal column left in game %s, ending as draw', game_id)
            return self._finish(session, None, REASON_DRAW)
        return self._after_move(session, BOT_USERNAME, position)

    def _finish(self, session: GameSession, winner: Optional[str], reason: str,
                winning_cells=None) -> Outcome:
        self.supervisor.cancel(session.game_id)
        logger.info('[finish] game %s winner=%s reason=%s', session.game_id, winner, reason)
        return finish_session(self.store, session, winner, reason, winning_cells)

    # ---- connection loss ----

    def disconnect(self, connection: str) -> Outcome:
        entry = self.store.withdraw(connection)
        if entry is not None:
            logger.info('[queue] waiting player %s disconnected, clearing queue', entry.username)
            return Outcome()

        reg = self.store.registration_for_connection(connection)
        if reg is None:
            return Outcome()
        return self.supervisor.on_disconnect(reg.username)
