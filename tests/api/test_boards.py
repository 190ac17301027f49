import uuid

import pytest

from http import HTTPStatus as status

from conftest import DB_IDS
from kanban.extensions import db
from kanban.models.board import Board
from kanban.models.member import BoardMember


def test_get_all(client, auth):
    auth.login()
    response = client.get('/api/boards', headers=auth.headers)
    assert response.status_code == status.OK
    boards = response.json['data']['boards']
    assert [b['id'] for b in boards] == [str(DB_IDS['board'])]
    assert boards[0]['membership']['role'] == 'owner'
    assert [c['name'] for c in boards[0]['columns']] == \
        ['To Do', 'Doing', 'Done']
    assert boards[0]['columns'][0]['cardCount'] == 2
    assert response.json['data']['pagination']['total'] == 1


def test_get_all_as_member(client, auth):
    auth.login('member')
    response = client.get('/api/boards', headers=auth.headers)
    boards = response.json['data']['boards']
    assert [b['id'] for b in boards] == [str(DB_IDS['board'])]
    assert boards[0]['membership']['permissions']['canCreateCards'] is True
    assert boards[0]['membership']['permissions']['canDeleteBoard'] is False


def test_get_all_sorting_and_paging(client, auth):
    auth.login()
    for name in ('Alpha', 'Zulu'):
        client.post('/api/boards', headers=auth.headers, json={'name': name})

    response = client.get('/api/boards?sortBy=name&sortOrder=asc&limit=2',
                          headers=auth.headers)
    data = response.json['data']
    assert [b['name'] for b in data['boards']] == ['Alpha', 'Project']
    assert data['pagination'] == {'page': 1, 'limit': 2, 'total': 3,
                                  'pages': 2}


@pytest.mark.parametrize('query', ('limit=101', 'page=0', 'sortBy=owner'))
def test_get_all_validate_query(client, auth, query):
    auth.login()
    response = client.get(f'/api/boards?{query}', headers=auth.headers)
    assert response.status_code == status.BAD_REQUEST


def test_create(app, client, auth):
    auth.login('member')
    response = client.post('/api/boards', headers=auth.headers, json={
        'name': 'Roadmap', 'color': '#10B981',
        'settings': {'allowVoting': True}})
    assert response.status_code == status.CREATED
    data = response.json['data']
    assert data['ownerId'] == str(DB_IDS['member'])
    assert data['color'] == '#10B981'
    assert data['settings']['allowVoting'] is True
    assert data['settings']['allowComments'] is True
    assert data['membership']['role'] == 'owner'
    assert [m['role'] for m in data['members']] == ['owner']

    with app.app_context():
        member = BoardMember.find(uuid.UUID(data['id']), DB_IDS['member'])
        assert member.permissions.can_delete_board


@pytest.mark.parametrize(
    ('body', 'field'),
    (
        ({'name': ''}, 'name'),
        ({'name': 'x', 'color': 'blue'}, 'color'),
        ({}, 'name'),
    ),
)
def test_create_validate_input(client, auth, body, field):
    auth.login()
    response = client.post('/api/boards', headers=auth.headers, json=body)
    assert response.status_code == status.BAD_REQUEST
    assert field in [e['field'] for e in response.json['errors']]


def test_get(client, auth):
    auth.login('viewer')
    response = client.get(f'/api/boards/{DB_IDS["board"]}',
                          headers=auth.headers)
    data = response.json['data']
    assert data['name'] == 'Project'
    assert data['owner']['email'] == 'owner@example.com'
    assert [c['name'] for c in data['columns']] == ['To Do', 'Doing', 'Done']
    assert [c['title'] for c in data['columns'][0]['cards']] == \
        ['Write tests', 'Fix bug']
    assert len(data['members']) == 4


def test_update(app, client, auth):
    auth.login('admin')
    response = client.put(f'/api/boards/{DB_IDS["board"]}',
                          headers=auth.headers, json={
                              'name': 'Renamed',
                              'settings': {'allowVoting': True}})
    assert response.status_code == status.OK
    assert response.json['data']['name'] == 'Renamed'

    with app.app_context():
        board = Board.get(DB_IDS['board'])
        assert board.name == 'Renamed'
        assert board.settings['allowVoting'] is True
        assert board.settings['allowComments'] is True
        assert board.last_activity_at is not None


def test_update_requires_capability(client, auth):
    auth.login('member')
    response = client.put(f'/api/boards/{DB_IDS["board"]}',
                          headers=auth.headers, json={'name': 'Renamed'})
    assert response.status_code == status.FORBIDDEN
    assert response.json['message'] == \
        "Insufficient permissions: canEditBoard required"


def test_delete_and_restore(client, auth):
    auth.login()
    response = client.delete(f'/api/boards/{DB_IDS["board"]}',
                             headers=auth.headers)
    assert response.status_code == status.OK

    response = client.get('/api/boards', headers=auth.headers)
    assert response.json['data']['boards'] == []

    response = client.put(f'/api/boards/{DB_IDS["board"]}/restore',
                          headers=auth.headers)
    assert response.json['data']['isArchived'] is False
    response = client.get('/api/boards', headers=auth.headers)
    assert len(response.json['data']['boards']) == 1


def test_delete_requires_capability(client, auth):
    auth.login('member')
    response = client.delete(f'/api/boards/{DB_IDS["board"]}',
                             headers=auth.headers)
    assert response.status_code == status.FORBIDDEN
    assert 'canDeleteBoard' in response.json['message']


def test_get_columns(client, auth):
    auth.login('viewer')
    response = client.get(f'/api/boards/{DB_IDS["board"]}/columns',
                          headers=auth.headers)
    assert [c['name'] for c in response.json['data']] == \
        ['To Do', 'Doing', 'Done']


def test_create_column(client, auth):
    auth.login('member')
    response = client.post(f'/api/boards/{DB_IDS["board"]}/columns',
                           headers=auth.headers, json={'name': 'Blocked'})
    assert response.status_code == status.CREATED
    assert response.json['data']['position'] == 3
    assert response.json['data']['boardId'] == str(DB_IDS['board'])


def test_requires_token(client):
    response = client.get('/api/boards')
    assert response.status_code == status.UNAUTHORIZED


def test_archived_board_hidden_from_other_members(app, client, auth):
    with app.app_context():
        Board.get(DB_IDS['board']).is_archived = True
        db.session.commit()

    auth.login('member')
    response = client.get('/api/boards', headers=auth.headers)
    assert response.json['data']['boards'] == []
