import threading
from typing import Set

from flask import current_app, request
from connect4 import socketio
from connect4.services.games import notifications
from connect4.services.games.errors import PersistenceFailure
from connect4.services.games.outcomes import GameResult, Outcome
from connect4.services.games.protocol import DISCONNECT, JOIN_GAME, MAKE_MOVE, GameProtocol
from connect4.services.games.sessions import SessionStore
from connect4.services.games.stats import record_game

EXTENSION_KEY = 'connect4_match'


class BackgroundTimer:
    """Handle for a delayed callback; cancel() makes the callback a no-op."""

    def __init__(self, delay: float):
        self.delay = delay
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class SocketIOScheduler:
    """Runs protocol callbacks later as Socket.IO background tasks."""

    def __init__(self, server: 'MatchServer'):
        self.server = server

    def call_later(self, delay, callback, *args) -> BackgroundTimer:
        timer = BackgroundTimer(delay)
        socketio.start_background_task(self._runner, timer, callback, args)
        return timer

    def _runner(self, timer: BackgroundTimer, callback, args) -> None:
        if timer.delay:
            socketio.sleep(timer.delay)
        with self.server.app.app_context():
            with self.server.lock:
                if timer.cancelled:
                    return
                try:
                    outcome = callback(*args)
                except Exception:
                    current_app.logger.exception(f"[timer] {getattr(callback, '__name__', callback)} failed")
                    return
                self.server.deliver(outcome)


class MatchServer:
    """Binds one GameProtocol to the Socket.IO server of a Flask app.

    Every inbound event and every timer callback runs under ``lock``, so the
    protocol sees one event at a time.
    """

    def __init__(self, app):
        self.app = app
        self.namespace = app.config.get('SOCKETIO_NAMESPACE', '/')
        self.lock = threading.RLock()
        self.live_sids: Set[str] = set()
        self.protocol = GameProtocol(
            SocketIOScheduler(self),
            store=SessionStore(is_live=self.is_live),
            bot_delay_sec=int(app.config.get('BOT_MOVE_DELAY_MS', 700)) / 1000.0,
            grace_sec=float(app.config.get('RECONNECT_GRACE_SEC', 30)),
        )

    def is_live(self, sid: str) -> bool:
        return sid in self.live_sids

    def handle(self, event: str, sid: str, data=None) -> None:
        with self.lock:
            try:
                outcome = self.protocol.dispatch(event, sid, data)
            except Exception:
                current_app.logger.exception(f"[{event}] handler failed for sid={sid}")
                outcome = Outcome([notifications.error(sid, 'Internal server error')])
            self.deliver(outcome)

    def deliver(self, outcome: Outcome) -> None:
        for note in outcome.notifications:
            for sid in note.to:
                socketio.emit(note.event, note.payload, to=sid, namespace=self.namespace)
        # Results are persisted only after game_over went out
        for result in outcome.results:
            if self.app.config.get('TESTING'):
                self.persist(result)
            else:
                socketio.start_background_task(self.persist, result)

    def persist(self, result: GameResult) -> None:
        with self.app.app_context():
            self.app.logger.info(
                f"[persist] game={result.game_id} {result.player1} vs {result.player2} "
                f"winner={result.winner} reason={result.reason} mode={result.mode} difficulty={result.difficulty}"
            )
            try:
                record_game(result)
            except PersistenceFailure as exc:
                self.app.logger.error(f"[persist] failed: {exc}")
                return
            self.app.logger.info(f"[persist] saved game={result.game_id}")


def _server() -> MatchServer:
    return current_app.extensions[EXTENSION_KEY]


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    sid = _get_sid()
    _server().live_sids.add(sid)
    current_app.logger.info(f"[connect] sid={sid}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    server = _server()
    server.live_sids.discard(sid)
    current_app.logger.info(f"[disconnect] sid={sid}")
    server.handle(DISCONNECT, sid)


def handle_join_game(data):
    _server().handle(JOIN_GAME, _get_sid(), data)


def handle_make_move(data):
    _server().handle(MAKE_MOVE, _get_sid(), data)


def register_socketio_handlers(flask_app) -> MatchServer:
    """Create the app's match server and bind the Socket.IO handlers.

    Handlers live on the namespace named by SOCKETIO_NAMESPACE.
    """
    server = MatchServer(flask_app)
    flask_app.extensions[EXTENSION_KEY] = server
    namespace = server.namespace
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event(JOIN_GAME, handle_join_game, namespace=namespace)
    socketio.on_event(MAKE_MOVE, handle_make_move, namespace=namespace)
    return server
