import time

from connect4 import db, socketio
from connect4.models import GameRecord, PlayerStats


def _events(client):
    return [(pkt['name'], pkt['args'][0] if pkt['args'] else None) for pkt in client.get_received()]


def _named(events, name):
    return [payload for event, payload in events if event == name]


def _wait_for(client, name, timeout=3.0, where=lambda payload: True):
    """Poll a test client until an event arrives (timers run in background tasks)."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        for payload in _named(_events(client), name):
            if where(payload):
                return payload
        time.sleep(0.05)
    raise AssertionError(f'no {name} within {timeout}s')


def _pvp_pair(flask_app):
    alice = socketio.test_client(flask_app)
    bob = socketio.test_client(flask_app)
    alice.emit('join_game', {'username': 'Alice', 'mode': 'PVP'})
    assert _named(_events(alice), 'waiting_for_opponent') == [{}]
    bob.emit('join_game', {'username': 'Bob', 'mode': 'PVP'})
    start_a = _named(_events(alice), 'game_start')
    start_b = _named(_events(bob), 'game_start')
    assert start_a == start_b
    return alice, bob, start_a[0]['gameId']


def test_socket_connect_tracks_live_sids(flask_app, sio_client):
    assert sio_client.is_connected()
    server = flask_app.extensions['connect4_match']
    assert len(server.live_sids) == 1


def test_blank_username_gets_error(sio_client):
    sio_client.emit('join_game', {'username': '  '})
    assert _named(_events(sio_client), 'error') == [{'message': 'Username required'}]


def test_pvp_game_to_win_is_persisted(flask_app):
    alice, bob, game_id = _pvp_pair(flask_app)

    alice.emit('make_move', {'gameId': game_id, 'column': 3, 'username': 'Alice'})
    update = _named(_events(bob), 'game_update')[0]
    assert update['currentTurn'] == 'Bob'
    assert update['board'][5][3] == 'Alice'
    _events(alice)

    # Out of turn: only Alice hears about it
    alice.emit('make_move', {'gameId': game_id, 'column': 3, 'username': 'Alice'})
    assert _named(_events(alice), 'error') == [{'message': 'Not your turn'}]
    assert _events(bob) == []

    for column, player, client in [(0, 'Bob', bob), (3, 'Alice', alice), (0, 'Bob', bob),
                                   (3, 'Alice', alice), (0, 'Bob', bob), (3, 'Alice', alice)]:
        client.emit('make_move', {'gameId': game_id, 'column': column, 'username': player})

    over = _named(_events(bob), 'game_over')[0]
    assert over['winner'] == 'Alice'
    assert over['reason'] == 'win'
    assert len(over['winningCells']) == 4
    assert _named(_events(alice), 'game_over')[0] == over

    record = db.session.get(GameRecord, game_id)
    assert record.winner == 'Alice'
    assert db.session.get(PlayerStats, 'Bob').losses == 1
    alice.disconnect()
    bob.disconnect()


def test_duplicate_username_is_rejected(flask_app):
    first = socketio.test_client(flask_app)
    second = socketio.test_client(flask_app)
    first.emit('join_game', {'username': 'Alice'})
    second.emit('join_game', {'username': 'ALICE'})
    [err] = _named(_events(second), 'join_error')
    assert err['code'] == 'USERNAME_IN_USE'
    first.disconnect()
    second.disconnect()


def test_waiting_player_disconnect_frees_the_slot(flask_app):
    first = socketio.test_client(flask_app)
    first.emit('join_game', {'username': 'Alice'})
    first.disconnect()
    second = socketio.test_client(flask_app)
    second.emit('join_game', {'username': 'Alice'})
    assert _named(_events(second), 'waiting_for_opponent') == [{}]
    second.disconnect()


def test_bot_replies_in_background(flask_app):
    human = socketio.test_client(flask_app)
    human.emit('join_game', {'username': 'Carol', 'mode': 'BOT', 'difficulty': 'EASY'})
    [start] = _named(_events(human), 'game_start')
    assert start['players'] == ['Carol', 'BOT']
    assert start['difficulty'] == 'EASY'

    human.emit('make_move', {'gameId': start['gameId'], 'column': 0, 'username': 'Carol'})
    update = _wait_for(human, 'game_update', where=lambda p: p['currentTurn'] == 'Carol')
    pieces = [cell for row in update['board'] for cell in row if cell]
    assert sorted(pieces) == ['BOT', 'Carol']
    human.disconnect()


def test_reconnect_resumes_same_game(flask_app):
    alice, bob, game_id = _pvp_pair(flask_app)
    alice.emit('make_move', {'gameId': game_id, 'column': 2, 'username': 'Alice'})
    board = _named(_events(alice), 'game_update')[0]['board']
    _events(bob)

    bob.disconnect()
    assert _named(_events(alice), 'opponent_disconnected') == [{'username': 'Bob'}]

    bob_again = socketio.test_client(flask_app)
    bob_again.emit('join_game', {'username': 'Bob', 'mode': 'PVP'})
    [resume] = _named(_events(bob_again), 'game_resume')
    assert resume['gameId'] == game_id
    assert resume['board'] == board
    assert resume['currentTurn'] == 'Bob'
    assert _named(_events(alice), 'opponent_reconnected') == [{'username': 'Bob'}]

    bob_again.emit('make_move', {'gameId': game_id, 'column': 4, 'username': 'Bob'})
    assert _named(_events(alice), 'game_update')[0]['currentTurn'] == 'Alice'
    alice.disconnect()
    bob_again.disconnect()


def test_disconnect_forfeits_after_grace(flask_app):
    alice, bob, game_id = _pvp_pair(flask_app)
    bob.disconnect()
    over = _wait_for(alice, 'game_over')
    assert over['winner'] == 'Alice'
    assert over['reason'] == 'forfeit'

    # Persistence runs after game_over under the dispatch lock
    server = flask_app.extensions['connect4_match']
    with server.lock:
        assert server.protocol.store.get(game_id) is None
    assert db.session.get(GameRecord, game_id).ended_reason == 'forfeit'
    alice.disconnect()
