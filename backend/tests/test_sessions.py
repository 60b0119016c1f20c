import pytest

from connect4.services.games.errors import IdentityConflict, NoResumableSession
from connect4.services.games.sessions import (
    BOT_USERNAME,
    Difficulty,
    GameMode,
    SessionStatus,
    SessionStore,
)


def test_first_player_waits_second_player_matches(store):
    assert store.enqueue_or_match('Alice', 'sid-a') is None
    assert store.is_waiting('alice')

    session = store.enqueue_or_match('Bob', 'sid-b')
    assert session is not None
    assert session.usernames == ['Alice', 'Bob']
    assert session.current_turn == 'Alice'
    assert session.mode == GameMode.PVP
    assert session.difficulty is None
    assert session.status == SessionStatus.ACTIVE
    assert store.waiting() is None
    assert store.registration('alice').game_id == session.game_id
    assert store.registration('BOB').connection == 'sid-b'
    assert store.get(session.game_id) is session


def test_same_name_in_queue_conflicts_and_keeps_queue(store):
    store.enqueue_or_match('Alice', 'sid-a')
    with pytest.raises(IdentityConflict):
        store.enqueue_or_match('ALICE', 'sid-x')
    entry = store.waiting()
    assert entry.username == 'Alice'
    assert entry.connection == 'sid-a'


def test_dead_waiting_entry_is_replaced(clock):
    live = {'sid-b'}
    store = SessionStore(is_live=live.__contains__, clock=clock)
    store.enqueue_or_match('Alice', 'sid-a')
    assert store.enqueue_or_match('Bob', 'sid-b') is None
    assert store.waiting().username == 'Bob'
    assert store.registration('Alice') is None


def test_bot_session_registers_only_the_human(store):
    session = store.start_bot_session('Carol', 'sid-c', Difficulty.HARD)
    assert session.usernames == ['Carol', BOT_USERNAME]
    assert session.mode == GameMode.BOT
    assert session.difficulty == Difficulty.HARD
    assert session.participants[1].is_bot
    assert session.connections() == ['sid-c']
    assert store.registration('Carol') is not None
    assert store.registration(BOT_USERNAME) is None


def test_reject_if_active_elsewhere(store):
    store.start_bot_session('Carol', 'sid-c')
    with pytest.raises(IdentityConflict):
        store.reject_if_active_elsewhere('carol')
    store.mark_disconnected('Carol')
    store.reject_if_active_elsewhere('carol')
    store.reject_if_active_elsewhere('nobody')


def test_reconnect_requires_a_disconnect(store, clock):
    session = store.start_bot_session('Carol', 'sid-c')
    with pytest.raises(NoResumableSession):
        store.reconnect('Carol', 'sid-new')
    with pytest.raises(NoResumableSession):
        store.reconnect('Dave', 'sid-new')

    store.mark_disconnected('Carol')
    assert store.is_disconnected('Carol')
    clock.now += 5
    resumed = store.reconnect('carol', 'sid-new')
    assert resumed is session
    assert session.participants[0].connection == 'sid-new'
    assert store.registration('Carol').disconnected_at is None
    assert session.last_seen['Carol'] == clock.now
    assert store.registration_for_connection('sid-new').username == 'Carol'


def test_reconnect_fails_once_session_is_gone(store):
    session = store.start_bot_session('Carol', 'sid-c')
    store.mark_disconnected('Carol')
    store.evict(session.game_id)
    with pytest.raises(NoResumableSession):
        store.reconnect('Carol', 'sid-new')


def test_evict_is_idempotent_and_unregisters(store):
    store.enqueue_or_match('Alice', 'sid-a')
    session = store.enqueue_or_match('Bob', 'sid-b')
    assert store.evict(session.game_id) is session
    assert store.evict(session.game_id) is None
    assert store.get(session.game_id) is None
    assert store.registration('Alice') is None
    assert store.registration('Bob') is None
    assert store.active_count() == 0


def test_withdraw_only_matches_the_waiting_connection(store):
    store.enqueue_or_match('Alice', 'sid-a')
    assert store.withdraw('sid-z') is None
    assert store.withdraw('sid-a').username == 'Alice'
    assert store.waiting() is None


def test_get_ignores_non_string_ids(store):
    assert store.get(None) is None
    assert store.get(42) is None


def test_finished_games_leave_nothing_behind(store):
    game_ids = []
    for i in range(200):
        session = store.start_bot_session(f'player{i}', f'sid-{i}')
        game_ids.append(session.game_id)
        store.evict(session.game_id)

    assert len(set(game_ids)) == 200
    assert all(store.get(game_id) is None for game_id in game_ids)
    assert store.evict('never-created') is None
    assert store.active_count() == 0
    assert store.registration('player0') is None
    # No per-game bookkeeping survives eviction
    leftovers = [name for name, value in vars(store).items()
                 if isinstance(value, (dict, set, list)) and value]
    assert leftovers == []
