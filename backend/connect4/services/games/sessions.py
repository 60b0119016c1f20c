"""In-memory matchmaking queue and active game registry.

``SessionStore`` is the single owner of the waiting slot, the active
sessions and the username registry. Callers only go through its methods so
the invariants below hold at one place:

- the waiting slot holds at most one player
- a username maps to at most one ACTIVE session
- the bot is never registered
- usernames compare case-insensitively
- an evicted game id is never handed out or resolved again
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Tuple
from uuid import uuid4

from .errors import IdentityConflict, NoResumableSession
from .rules import Board

logger = logging.getLogger(__name__)

BOT_USERNAME = 'BOT'


class GameMode(str, Enum):
    PVP = 'PVP'
    BOT = 'BOT'


class Difficulty(str, Enum):
    EASY = 'EASY'
    MEDIUM = 'MEDIUM'
    HARD = 'HARD'


class SessionStatus(str, Enum):
    ACTIVE = 'ACTIVE'
    FINISHED = 'FINISHED'


def username_key(username: str) -> str:
    return username.casefold()


def same_username(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return username_key(a) == username_key(b)


@dataclass
class Participant:
    username: str
    connection: Optional[str] = None

    @property
    def is_bot(self) -> bool:
        return self.username == BOT_USERNAME


@dataclass
class GameSession:
    game_id: str
    participants: Tuple[Participant, Participant]
    mode: GameMode
    difficulty: Optional[Difficulty]
    board: Board = field(default_factory=Board)
    current_turn: str = ''
    status: SessionStatus = SessionStatus.ACTIVE
    last_seen: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if not self.current_turn:
            self.current_turn = self.participants[0].username

    @property
    def usernames(self):
        return [p.username for p in self.participants]

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def participant(self, username: str) -> Optional[Participant]:
        for p in self.participants:
            if same_username(p.username, username):
                return p
        return None

    def opponent_of(self, username: str) -> Optional[Participant]:
        for p in self.participants:
            if not same_username(p.username, username):
                return p
        return None

    def humans(self):
        return [p for p in self.participants if not p.is_bot]

    def connections(self):
        return [p.connection for p in self.humans() if p.connection]

    def switch_turn(self) -> str:
        nxt = self.opponent_of(self.current_turn)
        self.current_turn = nxt.username
        return self.current_turn


@dataclass
class Registration:
    username: str
    connection: str
    game_id: str
    disconnected_at: Optional[float] = None


@dataclass
class WaitingEntry:
    username: str
    connection: str


class SessionStore:
    def __init__(self, is_live: Optional[Callable[[str], bool]] = None,
                 clock: Callable[[], float] = time.time):
        self._is_live = is_live or (lambda connection: True)
        self._clock = clock
        self._waiting: Optional[WaitingEntry] = None
        self._sessions: Dict[str, GameSession] = {}
        self._players: Dict[str, Registration] = {}

    def now(self) -> float:
        return self._clock()

    # ---- lookups ----

    def get(self, game_id) -> Optional[GameSession]:
        if not isinstance(game_id, str):
            return None
        return self._sessions.get(game_id)

    def registration(self, username: str) -> Optional[Registration]:
        return self._players.get(username_key(username))

    def registration_for_connection(self, connection: str) -> Optional[Registration]:
        for reg in self._players.values():
            if reg.connection == connection:
                return reg
        return None

    def waiting(self) -> Optional[WaitingEntry]:
        return self._waiting

    def is_waiting(self, username: str) -> bool:
        return self._waiting is not None and same_username(self._waiting.username, username)

    def is_disconnected(self, username: str) -> bool:
        reg = self.registration(username)
        return reg is not None and reg.disconnected_at is not None

    def active_count(self) -> int:
        return len(self._sessions)

    # ---- matchmaking ----

    def _create(self, first: Participant, second: Participant, mode: GameMode,
                difficulty: Optional[Difficulty]) -> GameSession:
        game_id = str(uuid4())
        now = self._clock()
        session = GameSession(
            game_id=game_id,
            participants=(first, second),
            mode=mode,
            difficulty=difficulty if mode == GameMode.BOT else None,
            last_seen={first.username: now, second.username: now},
        )
        self._sessions[game_id] = session
        for p in session.humans():
            self._players[username_key(p.username)] = Registration(
                username=p.username, connection=p.connection, game_id=game_id,
            )
        return session

    def enqueue_or_match(self, username: str, connection: str) -> Optional[GameSession]:
        """Pair with the waiting player or take the waiting slot.

        Returns the new session, or None when the caller is now waiting.
        """
        waiting = self._waiting
        if waiting is not None and not self._is_live(waiting.connection):
            logger.info('[queue] waiting player %s is gone, clearing slot', waiting.username)
            self._waiting = waiting = None

        if waiting is None:
            self._waiting = WaitingEntry(username=username, connection=connection)
            return None

        if same_username(waiting.username, username):
            raise IdentityConflict()

        self._waiting = None
        return self._create(
            Participant(waiting.username, waiting.connection),
            Participant(username, connection),
            GameMode.PVP,
            None,
        )

    def start_bot_session(self, username: str, connection: str,
                          difficulty: Difficulty = Difficulty.MEDIUM) -> GameSession:
        return self._create(
            Participant(username, connection),
            Participant(BOT_USERNAME, None),
            GameMode.BOT,
            difficulty,
        )

    def withdraw(self, connection: str) -> Optional[WaitingEntry]:
        """Clear the waiting slot if ``connection`` holds it."""
        waiting = self._waiting
        if waiting is not None and waiting.connection == connection:
            self._waiting = None
            return waiting
        return None

    # ---- identity and reconnection ----

    def reject_if_active_elsewhere(self, username: str) -> None:
        reg = self.registration(username)
        if reg is None or reg.disconnected_at is not None:
            return
        session = self.get(reg.game_id)
        if session is not None and session.is_active:
            raise IdentityConflict()

    def resumable_session(self, username: str) -> GameSession:
        reg = self.registration(username)
        if reg is None or reg.disconnected_at is None:
            raise NoResumableSession()
        session = self.get(reg.game_id)
        if session is None or not session.is_active:
            raise NoResumableSession()
        return session

    def reconnect(self, username: str, connection: str) -> GameSession:
        session = self.resumable_session(username)
        reg = self.registration(username)
        reg.connection = connection
        reg.disconnected_at = None
        participant = session.participant(username)
        participant.connection = connection
        session.last_seen[participant.username] = self._clock()
        return session

    def mark_disconnected(self, username: str) -> Optional[Registration]:
        reg = self.registration(username)
        if reg is None:
            return None
        reg.disconnected_at = self._clock()
        return reg

    def touch(self, session: GameSession, username: str) -> None:
        participant = session.participant(username)
        if participant is not None:
            session.last_seen[participant.username] = self._clock()

    # ---- teardown ----

    def evict(self, game_id: str) -> Optional[GameSession]:
        session = self._sessions.pop(game_id, None)
        if session is None:
            return None
        for p in session.humans():
            reg = self.registration(p.username)
            if reg is not None and reg.game_id == game_id:
                del self._players[username_key(p.username)]
        return session
