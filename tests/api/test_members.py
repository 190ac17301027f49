from http import HTTPStatus as status

from conftest import DB_IDS, AuthActions
from kanban.extensions import db
from kanban.models.member import BoardMember


def _members_url(user_key=None):
    url = f'/api/boards/{DB_IDS["board"]}/members'
    return f'{url}/{DB_IDS[user_key]}' if user_key else url


def test_get_members(client, auth):
    auth.login('viewer')
    response = client.get(_members_url(), headers=auth.headers)
    assert response.status_code == status.OK
    members = response.json['data']
    assert {m['user']['email'] for m in members} == {
        'owner@example.com', 'admin@example.com', 'member@example.com',
        'viewer@example.com'}


def test_add_by_email(client, auth):
    auth.login()
    response = client.post(_members_url(), headers=auth.headers,
                           json={'email': 'outsider@example.com'})
    assert response.status_code == status.CREATED
    data = response.json['data']
    assert data['userId'] == str(DB_IDS['outsider'])
    assert data['role'] == 'member'
    assert data['isActive'] is True
    assert data['permissions']['canCreateCards'] is True
    assert data['permissions']['canDeleteBoard'] is False

    response = client.post(_members_url(), headers=auth.headers,
                           json={'email': 'outsider@example.com'})
    assert response.status_code == status.CONFLICT


def test_add_by_id_as_viewer_role(client, auth):
    auth.login('admin')
    response = client.post(_members_url(), headers=auth.headers, json={
        'userId': str(DB_IDS['outsider']), 'role': 'viewer'})
    assert response.status_code == status.CREATED
    assert not any(response.json['data']['permissions'].values())


def test_add_unknown_user(client, auth):
    auth.login()
    response = client.post(_members_url(), headers=auth.headers,
                           json={'email': 'nobody@example.com'})
    assert response.status_code == status.NOT_FOUND
    assert response.json['message'] == "User not found"


def test_add_validate_input(client, auth):
    auth.login()
    response = client.post(_members_url(), headers=auth.headers, json={})
    assert response.status_code == status.BAD_REQUEST

    response = client.post(_members_url(), headers=auth.headers, json={
        'email': 'outsider@example.com', 'role': 'owner'})
    assert response.status_code == status.BAD_REQUEST


def test_add_requires_capability(client, auth):
    auth.login('viewer')
    response = client.post(_members_url(), headers=auth.headers,
                           json={'email': 'outsider@example.com'})
    assert response.status_code == status.FORBIDDEN
    assert 'canInviteMembers' in response.json['message']


def test_update_role(client, auth):
    auth.login()
    response = client.put(_members_url('viewer'), headers=auth.headers,
                          json={'role': 'admin'})
    assert response.status_code == status.OK
    assert response.json['data']['role'] == 'admin'
    assert all(response.json['data']['permissions'].values())


def test_update_permissions(client, auth):
    auth.login()
    response = client.put(_members_url('viewer'), headers=auth.headers,
                          json={'permissions': {'canComment': True}})
    permissions = response.json['data']['permissions']
    assert permissions['canComment'] is True
    assert permissions['canEditCards'] is False
    assert response.json['data']['role'] == 'viewer'


def test_owner_cannot_be_changed(client, auth):
    auth.login('admin')
    response = client.put(_members_url('owner'), headers=auth.headers,
                          json={'role': 'viewer'})
    assert response.status_code == status.FORBIDDEN

    response = client.delete(_members_url('owner'), headers=auth.headers)
    assert response.status_code == status.FORBIDDEN


def test_update_unknown_member(client, auth):
    auth.login()
    response = client.put(_members_url('outsider'), headers=auth.headers,
                          json={'role': 'viewer'})
    assert response.status_code == status.NOT_FOUND


def test_remove_and_readd(app, client, auth):
    auth.login()
    response = client.delete(_members_url('member'), headers=auth.headers)
    assert response.status_code == status.OK

    member = AuthActions(client)
    member.login('member')
    response = client.get(f'/api/boards/{DB_IDS["board"]}',
                          headers=member.headers)
    assert response.status_code == status.FORBIDDEN

    response = client.post(_members_url(), headers=auth.headers, json={
        'userId': str(DB_IDS['member']), 'role': 'viewer'})
    assert response.status_code == status.CREATED
    assert response.json['data']['role'] == 'viewer'

    with app.app_context():
        rows = db.session.execute(
            db.select(BoardMember).filter_by(board_id=DB_IDS['board'],
                                             user_id=DB_IDS['member'])
        ).scalars().all()
        assert len(rows) == 1
        assert rows[0].is_active


def test_remove_requires_capability(client, auth):
    auth.login('member')
    response = client.delete(_members_url('viewer'), headers=auth.headers)
    assert response.status_code == status.FORBIDDEN
    assert 'canRemoveMembers' in response.json['message']
