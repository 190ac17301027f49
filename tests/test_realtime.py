from http import HTTPStatus as status

from conftest import DB_IDS, AuthActions
from kanban.extensions import sio
from kanban.realtime import Presence, room_name


def _events(socket, name):
    return [e['args'][0] for e in socket.get_received() if e['name'] == name]


def _connect(app, auth, who='owner'):
    auth.login(who)
    return sio.test_client(app, auth={'token': auth.token})


def test_presence_registry():
    presence = Presence()
    presence.connect('s1', {'id': 'u1'})
    presence.connect('s2', {'id': 'u1'})
    presence.connect('s3', {'id': 'u2'})
    presence.join('s1', 'b')
    presence.join('s2', 'b')
    presence.join('s3', 'b')

    assert sorted(u['id'] for u in presence.online('b')) == ['u1', 'u2']
    assert presence.leave('s3', 'b')
    assert not presence.leave('s3', 'b')
    assert presence.in_room('s1', 'b')

    user, rooms = presence.disconnect('s1')
    assert user == {'id': 'u1'} and rooms == {'b'}
    assert [u['id'] for u in presence.online('b')] == ['u1']


def test_room_name():
    assert room_name(DB_IDS['board']) == f'board_{DB_IDS["board"]}'


def test_connect_requires_token(app):
    socket = sio.test_client(app)
    assert not socket.is_connected()


def test_connect_rejects_bad_token(app):
    socket = sio.test_client(app, auth={'token': 'garbage'})
    assert not socket.is_connected()


def test_connect_rejects_refresh_token(app, auth):
    auth.login()
    socket = sio.test_client(app, auth={'token': auth.refresh_token})
    assert not socket.is_connected()


def test_join_board(app, client):
    owner = _connect(app, AuthActions(client), 'owner')
    member = _connect(app, AuthActions(client), 'member')
    assert owner.is_connected() and member.is_connected()

    owner.emit('join_board', {'boardId': str(DB_IDS['board'])})
    presence = _events(owner, 'board-presence')
    assert [u['id'] for u in presence[0]['users']] == [str(DB_IDS['owner'])]

    member.emit('join_board', {'boardId': str(DB_IDS['board'])})
    joined = _events(owner, 'user-joined')
    assert joined[0]['user']['id'] == str(DB_IDS['member'])
    assert joined[0]['boardId'] == str(DB_IDS['board'])
    # the joiner does not hear about itself
    assert _events(member, 'user-joined') == []


def test_join_board_requires_membership(app, auth):
    socket = _connect(app, auth, 'outsider')
    socket.emit('join_board', {'boardId': str(DB_IDS['board'])})
    errors = _events(socket, 'error')
    assert errors[0]['message'] == "Not a board member"


def test_join_unknown_board(app, auth):
    socket = _connect(app, auth)
    socket.emit('join_board', {'boardId': str(DB_IDS['nonexistent'])})
    assert _events(socket, 'error')[0]['message'] == "Board not found"


def test_leave_and_disconnect(app, client):
    owner = _connect(app, AuthActions(client), 'owner')
    member = _connect(app, AuthActions(client), 'member')
    for socket in (owner, member):
        socket.emit('join_board', {'boardId': str(DB_IDS['board'])})
    owner.get_received()

    member.emit('leave_board', {'boardId': str(DB_IDS['board'])})
    left = _events(owner, 'user-left')
    assert left[0]['user']['id'] == str(DB_IDS['member'])

    member.emit('join_board', {'boardId': str(DB_IDS['board'])})
    owner.get_received()
    member.disconnect()
    assert len(_events(owner, 'user-left')) == 1


def test_typing(app, client):
    owner = _connect(app, AuthActions(client), 'owner')
    member = _connect(app, AuthActions(client), 'member')
    for socket in (owner, member):
        socket.emit('join_board', {'boardId': str(DB_IDS['board'])})
    owner.get_received()

    member.emit('typing_start', {'boardId': str(DB_IDS['board']),
                                 'cardId': str(DB_IDS['review'])})
    typing = _events(owner, 'user-typing')
    assert typing[0]['isTyping'] is True
    assert typing[0]['cardId'] == str(DB_IDS['review'])

    member.emit('typing_stop', {'boardId': str(DB_IDS['board'])})
    assert _events(owner, 'user-typing')[0]['isTyping'] is False


def test_http_mutation_is_broadcast(app, client, auth):
    socket = _connect(app, auth)
    socket.emit('join_board', {'boardId': str(DB_IDS['board'])})
    socket.get_received()

    response = client.put(f'/api/cards/{DB_IDS["review"]}/move',
                          headers=auth.headers, json={
                              'targetColumnId': str(DB_IDS['done']),
                              'newPosition': 0})
    assert response.status_code == status.OK

    moved = _events(socket, 'card-moved')
    assert moved[0]['card']['id'] == str(DB_IDS['review'])
    assert moved[0]['fromColumnId'] == str(DB_IDS['doing'])
    assert moved[0]['toColumnId'] == str(DB_IDS['done'])
    assert moved[0]['user']['id'] == str(DB_IDS['owner'])
    assert 'timestamp' in moved[0]


def test_broadcast_skips_other_boards(app, client, auth):
    socket = _connect(app, auth)
    socket.emit('join_board', {'boardId': str(DB_IDS['board'])})
    socket.get_received()

    outsider = AuthActions(client)
    outsider.login('outsider')
    client.put(f'/api/cards/{DB_IDS["secret"]}', headers=outsider.headers,
               json={'title': 'Still secret'})
    assert _events(socket, 'card-updated') == []


def test_connect_rejects_revoked_token(app, auth):
    auth.login()
    token = auth.token
    assert auth.logout().status_code == status.OK

    socket = sio.test_client(app, auth={'token': token})
    assert not socket.is_connected()
