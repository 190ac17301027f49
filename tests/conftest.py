import shutil
import tempfile
import uuid

import pytest

from kanban import create_app
from kanban.capabilities import Role
from kanban.extensions import db
from kanban.models.board import Board
from kanban.models.card import Card
from kanban.models.column import Column
from kanban.models.member import BoardMember
from kanban.models.user import User
from kanban.utils.first_init import _generate_rsa_keys


PASSWORD = 'password123'

DB_IDS = dict(
    owner=uuid.UUID('6f0c3c1e8d2a4b7f9e1a2b3c4d5e6f70'),
    admin=uuid.UUID('0b4a1c2d3e4f45a6b7c8d9e0f1a2b3c4'),
    member=uuid.UUID('9d8c7b6a5f4e4d3c8b2a1f0e9d8c7b6a'),
    viewer=uuid.UUID('a1b2c3d4e5f64a7b8c9d0e1f2a3b4c5d'),
    outsider=uuid.UUID('f0e1d2c3b4a54968a7b6c5d4e3f2a1b0'),
    board=uuid.UUID('3fb905fd802740b4a13d43a81f36d81d'),
    todo=uuid.UUID('bc31128fe48e4ab899312a849571782f'),
    doing=uuid.UUID('51aa638a88334be1b5860b4bf4ad3bb7'),
    done=uuid.UUID('b8be0857e88345819e0e02a377b49ad4'),
    write_tests=uuid.UUID('7d1cc6ea25eb47f9a83d25b5e0a0179f'),
    fix_bug=uuid.UUID('d85d5df4562c4b878eebaeb7bb676ec9'),
    review=uuid.UUID('b8789424e29c4d5fa288c5b614adea3d'),
    deploy=uuid.UUID('230e04a092ce42189a3c23bf3cde2b05'),
    other_board=uuid.UUID('c619045af435427797cb1e2c1fddcfeb'),
    backlog=uuid.UUID('3e799d5a5652430e900c06a3277ab1dc'),
    secret=uuid.UUID('12f4a1b922f74524abcbdaa99a5c1c3a'),
    nonexistent=uuid.UUID('00000000-0000-0000-0000-000000000000'),
)

EMAILS = dict(
    owner='owner@example.com',
    admin='admin@example.com',
    member='member@example.com',
    viewer='viewer@example.com',
    outsider='outsider@example.com',
)


class RecordingMailer:
    def __init__(self):
        self.outbox = []

    def send(self, msg):
        self.outbox.append(msg)


def add_test_data():
    for name, email in EMAILS.items():
        db.session.add(User(
            id=DB_IDS[name],
            email=email,
            password=PASSWORD,
            first_name=name.capitalize(),
            last_name='Tester',
        ))

    board = Board(id=DB_IDS['board'], name='Project',
                  owner_id=DB_IDS['owner'])
    other_board = Board(id=DB_IDS['other_board'], name='Private',
                        owner_id=DB_IDS['outsider'])
    db.session.add_all([board, other_board])
    db.session.flush()

    for name, role in (('owner', Role.OWNER), ('admin', Role.ADMIN),
                       ('member', Role.MEMBER), ('viewer', Role.VIEWER)):
        db.session.add(BoardMember(board_id=DB_IDS['board'],
                                   user_id=DB_IDS[name], role=role))
    db.session.add(BoardMember(board_id=DB_IDS['other_board'],
                               user_id=DB_IDS['outsider'], role=Role.OWNER))

    columns = (
        ('todo', 'To Do', 0, DB_IDS['board']),
        ('doing', 'Doing', 1, DB_IDS['board']),
        ('done', 'Done', 2, DB_IDS['board']),
        ('backlog', 'Backlog', 0, DB_IDS['other_board']),
    )
    for key, name, position, board_id in columns:
        db.session.add(Column(id=DB_IDS[key], name=name, position=position,
                              board_id=board_id))
    db.session.flush()

    cards = (
        ('write_tests', 'Write tests', 'todo', 0, DB_IDS['board']),
        ('fix_bug', 'Fix bug', 'todo', 1, DB_IDS['board']),
        ('review', 'Review', 'doing', 0, DB_IDS['board']),
        ('deploy', 'Deploy', 'doing', 1, DB_IDS['board']),
        ('secret', 'Secret', 'backlog', 0, DB_IDS['other_board']),
    )
    for key, title, column, position, board_id in cards:
        db.session.add(Card(id=DB_IDS[key], title=title,
                            column_id=DB_IDS[column], position=position,
                            board_id=board_id))
    db.session.commit()


@pytest.fixture
def app_config():
    tmp_dir = tempfile.mkdtemp()
    priv_key = f'{tmp_dir}/private_key.pem'
    pub_key = f'{tmp_dir}/public_key.pem'

    _generate_rsa_keys(priv_key, pub_key)

    yield {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'JWT_PRIVATE_KEY_FILE': priv_key,
        'JWT_PUBLIC_KEY_FILE': pub_key,
        'JWT_CSRF_METHODS': [],
        'FRONTEND_URL': 'http://kanban.test',
    }

    shutil.rmtree(tmp_dir)


@pytest.fixture
def app(app_config):
    app = create_app(app_config, mailer=RecordingMailer())

    with app.app_context():
        db.create_all()
        add_test_data()

    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def outbox(app):
    """Messages delivered so far; waits for the mail worker to drain."""
    def delivered():
        app.extensions['mail_queue'].join()
        return app.extensions['mailer'].outbox
    return delivered


class AuthActions:
    def __init__(self, client):
        self._client = client
        self.token = None
        self.refresh_token = None

    def login(self, who='owner', password=PASSWORD):
        email = EMAILS.get(who, who)
        response = self._client.post(
            '/auth/login', json={'email': email, 'password': password}
        )
        if response.status_code == 200:
            tokens = response.json['data']['tokens']
            self.token = tokens['accessToken']
            self.refresh_token = tokens['refreshToken']
        return response

    def register(self, email='new@example.com', password=PASSWORD,
                 first_name='New', last_name='User'):
        return self._client.post('/auth/register', json={
            'email': email,
            'password': password,
            'firstName': first_name,
            'lastName': last_name,
        })

    def logout(self):
        return self._client.delete('/auth/logout', headers=self.headers)

    @property
    def headers(self):
        return {'Authorization': f'Bearer {self.token}'}


@pytest.fixture
def auth(client):
    return AuthActions(client)
